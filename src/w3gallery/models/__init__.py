"""
Models module for w3gallery.

- GalleryMetadata: the ``metadata.json`` document
- Post key layout helpers, PhotoUpload, Post and PostPage
"""

from .metadata import METADATA_KEY, GalleryMetadata
from .post import (
    BIO_KEY,
    POSTS_PREFIX,
    PROFILE_KEY,
    PhotoUpload,
    Post,
    PostPage,
    caption_key,
    parse_post_index,
    photo_key,
    post_prefix,
)

__all__ = [
    "BIO_KEY",
    "METADATA_KEY",
    "POSTS_PREFIX",
    "PROFILE_KEY",
    "GalleryMetadata",
    "PhotoUpload",
    "Post",
    "PostPage",
    "caption_key",
    "parse_post_index",
    "photo_key",
    "post_prefix",
]
