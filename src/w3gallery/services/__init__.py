"""
Services module for w3gallery.

This module contains the service classes behind the gallery:
- StorageClient: async object storage adapter over pluggable backends
- GalleryManager: post create/update/delete/list and the metadata document
- ImageProcessor: photo validation
- Credential: storage credentials used by login
"""

from .auth import Credential
from .gallery import GalleryManager
from .image_processor import ImageProcessor, get_image_processor
from .storage import (
    GCSStorageBackend,
    InMemoryStorageBackend,
    ListResult,
    StorageBackend,
    StorageClient,
    create_storage_backend,
    create_storage_client,
)

__all__ = [
    "Credential",
    "GalleryManager",
    "ImageProcessor",
    "get_image_processor",
    "GCSStorageBackend",
    "InMemoryStorageBackend",
    "ListResult",
    "StorageBackend",
    "StorageClient",
    "create_storage_backend",
    "create_storage_client",
]
