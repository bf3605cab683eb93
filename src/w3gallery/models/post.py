"""
Post model and the key layout of post objects in the bucket.

A post is a photo and a caption stored under the shared prefix
``posts/<index>/``. Nothing else ties the two objects together, so the set of
live posts is recovered by matching keys against that prefix.
"""

import re
from dataclasses import dataclass, field

POSTS_PREFIX = "posts/"
CAPTION_FILENAME = "caption.md"
PHOTO_STEM = "photo"
BIO_KEY = "bio.md"
PROFILE_KEY = "profile.png"

POST_KEY_PATTERN = re.compile(r"posts/(\d+)/")


def post_prefix(index: int) -> str:
    """Prefix shared by every object of the post at ``index``."""
    return f"{POSTS_PREFIX}{index}/"


def photo_key(index: int, extension: str) -> str:
    return f"{post_prefix(index)}{PHOTO_STEM}.{extension.lstrip('.').lower()}"


def caption_key(index: int) -> str:
    return f"{post_prefix(index)}{CAPTION_FILENAME}"


def is_photo_key(key: str) -> bool:
    return key.rsplit("/", 1)[-1].startswith(f"{PHOTO_STEM}.")


def parse_post_index(key: str) -> int | None:
    """Extract the post index from an object key, or None for non-post keys."""
    match = POST_KEY_PATTERN.search(key)
    if match is None:
        return None
    return int(match.group(1))


@dataclass
class PhotoUpload:
    """Photo bytes as submitted by the user, before an extension is resolved."""

    data: bytes
    filename: str = ""
    content_type: str | None = None


@dataclass
class Post:
    """A post as shown in the album."""

    index: int
    caption: str
    photo_url: str


@dataclass
class PostPage:
    """
    One page of the post listing.

    ``indices`` is a set, so iteration order carries no meaning.
    ``next_marker`` is the last key inspected and can be used to resume.
    """

    indices: set[int] = field(default_factory=set)
    is_truncated: bool = False
    next_marker: str | None = None

    def __contains__(self, index: object) -> bool:
        return index in self.indices

    def __len__(self) -> int:
        return len(self.indices)
