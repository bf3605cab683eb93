"""
Pytest configuration and fixtures for w3gallery tests.
"""

import io
from collections.abc import Generator
from unittest.mock import patch

import pytest
from PIL import Image

from w3gallery.config import get_config
from w3gallery.models.metadata import METADATA_KEY, GalleryMetadata
from w3gallery.models.post import caption_key, photo_key
from w3gallery.services.gallery import GalleryManager
from w3gallery.services.storage import InMemoryStorageBackend, StorageClient, StoredObject

PUBLIC_ENDPOINT = "https://storage.example.com/test-gallery"


def make_image_bytes(image_format: str = "PNG", size: tuple[int, int] = (4, 4)) -> bytes:
    """Encode a small solid-color image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=image_format)
    return buffer.getvalue()


def seed_post(backend: InMemoryStorageBackend, index: int, caption: str = "", extension: str = "png") -> None:
    """Store the objects of one post directly in a memory backend."""
    backend.objects[photo_key(index, extension)] = StoredObject(b"photo", f"image/{extension}", True)
    backend.objects[caption_key(index)] = StoredObject(
        (caption or f"caption {index}").encode("utf-8"), "text/markdown; charset=utf-8", True
    )


def seed_metadata(backend: InMemoryStorageBackend, metadata: GalleryMetadata) -> None:
    backend.objects[METADATA_KEY] = StoredObject(metadata.to_json_bytes(), "application/json", True)


@pytest.fixture(autouse=True)
def test_environment() -> Generator[None, None, None]:
    """Run every test against a known configuration."""
    env = {
        "ENVIRONMENT": "test",
        "GALLERY_BUCKET": "test-gallery",
        "GALLERY_STORAGE_BACKEND": "memory",
        "GALLERY_PUBLIC_ENDPOINT": PUBLIC_ENDPOINT,
    }
    with patch.dict("os.environ", env, clear=False):
        get_config().clear_cache()
        yield
    get_config().clear_cache()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def memory_backend() -> InMemoryStorageBackend:
    return InMemoryStorageBackend()


@pytest.fixture
def storage_client(memory_backend: InMemoryStorageBackend) -> StorageClient:
    return StorageClient(memory_backend)


@pytest.fixture
async def manager(storage_client: StorageClient) -> GalleryManager:
    """A gallery manager whose initialization has finished."""
    gallery = GalleryManager(storage_client, PUBLIC_ENDPOINT)
    await gallery.ready()
    return gallery
