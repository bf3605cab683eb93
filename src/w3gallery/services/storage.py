"""Storage adapter for the gallery bucket.

``StorageClient`` is the async contract the rest of the application uses
(get / put / list_by_prefix / delete_many). The vendor SDK calls are blocking,
so each one runs in a worker thread and the event loop stays cooperative.
Backends translate vendor exceptions into StorageError.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, TypeVar

from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound

from w3gallery.ui.handlers.error import ObjectNotFoundError, StorageError
from ..config import get_gallery_bucket, get_gallery_project, get_public_read, get_storage_backend
from ..logging_config import get_logger, log_performance
from .auth import Credential, build_service_account_credentials

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".md": "text/markdown; charset=utf-8",
    ".json": "application/json",
    ".html": "text/html; charset=utf-8",
}


def get_content_type(key: str) -> str:
    """Determine the MIME type of an object from its key."""
    return CONTENT_TYPES.get(PurePosixPath(key).suffix.lower(), DEFAULT_CONTENT_TYPE)


@dataclass
class ListResult:
    """Keys in lexicographic order plus whether more keys follow."""

    keys: list[str]
    is_truncated: bool = False


class StorageBackend(ABC):
    """Blocking, vendor-facing object store operations."""

    name = "abstract"

    @abstractmethod
    def set_credentials(self, credential: Credential | None) -> None:
        """Switch to authorized access, or back to anonymous access with None."""

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """Download an object. Raises ObjectNotFoundError for a missing key."""

    @abstractmethod
    def put_object(self, key: str, data: bytes, content_type: str, public_read: bool) -> None:
        """Create or overwrite an object."""

    @abstractmethod
    def list_objects(self, prefix: str, limit: int, marker: str | None) -> ListResult:
        """List up to ``limit`` keys under ``prefix`` that sort strictly after ``marker``."""

    @abstractmethod
    def delete_objects(self, keys: list[str]) -> None:
        """Delete several objects in one batch call."""


class GCSStorageBackend(StorageBackend):
    """Backend for Google Cloud Storage buckets."""

    name = "gcs"

    def __init__(self, bucket_name: str, project_id: str | None = None) -> None:
        """
        Connect anonymously; public objects are readable without credentials.

        Args:
            bucket_name: Bucket holding the gallery
            project_id: Project used once credentials are configured
        """
        if not bucket_name:
            raise StorageError("GALLERY_BUCKET is required for the GCS backend")

        self.bucket_name = bucket_name
        self.project_id = project_id
        self.authorized = False
        self._connect(None)

    def _connect(self, credentials: Any) -> None:
        try:
            if credentials is None:
                self.client = storage.Client.create_anonymous_client()
            else:
                self.client = storage.Client(project=self.project_id, credentials=credentials)
            self.bucket = self.client.bucket(self.bucket_name)
        except Exception as e:
            raise StorageError(f"Failed to initialize GCS client: {e}", original_exception=e) from e

        self.authorized = credentials is not None
        logger.info("gcs_client_connected", bucket=self.bucket_name, authorized=self.authorized)

    def set_credentials(self, credential: Credential | None) -> None:
        if credential is None:
            self._connect(None)
            return

        try:
            credentials = build_service_account_credentials(credential)
        except (ValueError, KeyError) as e:
            raise StorageError(
                f"Invalid service account credential for '{credential.key}': {e}",
                code="invalid_credentials",
                original_exception=e,
            ) from e
        self._connect(credentials)

    def get_object(self, key: str) -> bytes:
        try:
            data: bytes = self.bucket.blob(key).download_as_bytes()
            return data
        except NotFound as e:
            raise ObjectNotFoundError(key, original_exception=e) from e
        except GoogleCloudError as e:
            raise StorageError(f"Failed to download '{key}': {e}", original_exception=e) from e

    def put_object(self, key: str, data: bytes, content_type: str, public_read: bool) -> None:
        try:
            blob = self.bucket.blob(key)
            blob.upload_from_string(
                data,
                content_type=content_type,
                predefined_acl="publicRead" if public_read else None,
            )
        except GoogleCloudError as e:
            raise StorageError(f"Failed to upload '{key}': {e}", original_exception=e) from e

    def list_objects(self, prefix: str, limit: int, marker: str | None) -> ListResult:
        # start_offset is inclusive, so the marker itself may take one slot
        max_results = limit + 2 if marker else limit + 1
        try:
            blobs = self.client.list_blobs(
                self.bucket,
                prefix=prefix,
                start_offset=marker,
                max_results=max_results,
            )
            names = [blob.name for blob in blobs if blob.name != marker]
        except GoogleCloudError as e:
            raise StorageError(f"Failed to list objects under '{prefix}': {e}", original_exception=e) from e

        return ListResult(keys=names[:limit], is_truncated=len(names) > limit)

    def delete_objects(self, keys: list[str]) -> None:
        def _already_gone(blob: Any) -> None:
            logger.warning("object_already_deleted", key=blob.name)

        try:
            self.bucket.delete_blobs([self.bucket.blob(key) for key in keys], on_error=_already_gone)
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete {len(keys)} objects: {e}", original_exception=e) from e


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    public_read: bool


class InMemoryStorageBackend(StorageBackend):
    """
    Dict-backed object store for development mode and tests.

    When ``accepted_credentials`` (key -> secret) is given, writes require a
    configured credential and any request made with an unknown credential is
    rejected, the way a real bucket rejects a bad signature.
    """

    name = "memory"

    def __init__(
        self,
        objects: dict[str, StoredObject] | None = None,
        accepted_credentials: dict[str, str] | None = None,
    ) -> None:
        self.objects: dict[str, StoredObject] = objects if objects is not None else {}
        self.accepted_credentials = accepted_credentials
        self.credential: Credential | None = None

    def set_credentials(self, credential: Credential | None) -> None:
        self.credential = credential

    def _check_access(self, write: bool) -> None:
        if self.accepted_credentials is None:
            return
        if self.credential is None:
            if write:
                raise StorageError("Anonymous caller does not have write access to the bucket", code="access_denied")
            return
        if self.accepted_credentials.get(self.credential.key) != self.credential.secret:
            raise StorageError(
                f"The credential '{self.credential.key}' was rejected by the bucket", code="invalid_credentials"
            )

    def get_object(self, key: str) -> bytes:
        self._check_access(write=False)
        stored = self.objects.get(key)
        if stored is None:
            raise ObjectNotFoundError(key)
        return stored.data

    def put_object(self, key: str, data: bytes, content_type: str, public_read: bool) -> None:
        self._check_access(write=True)
        self.objects[key] = StoredObject(data=data, content_type=content_type, public_read=public_read)

    def list_objects(self, prefix: str, limit: int, marker: str | None) -> ListResult:
        self._check_access(write=False)
        names = sorted(key for key in self.objects if key.startswith(prefix) and (marker is None or key > marker))
        return ListResult(keys=names[:limit], is_truncated=len(names) > limit)

    def delete_objects(self, keys: list[str]) -> None:
        self._check_access(write=True)
        for key in keys:
            self.objects.pop(key, None)


class StorageClient:
    """Async adapter over a StorageBackend, addressed by key within one bucket."""

    def __init__(self, backend: StorageBackend, public_read: bool = True) -> None:
        self.backend = backend
        self.public_read = public_read
        self.credential: Credential | None = None

    @property
    def is_authorized(self) -> bool:
        return self.credential is not None

    def configure_credentials(self, credential: Credential | None) -> None:
        """
        Authorize subsequent requests with ``credential`` (None reverts to anonymous).

        Raises:
            StorageError: If the backend cannot use the credential
        """
        self.backend.set_credentials(credential)
        self.credential = credential
        logger.info(
            "storage_credentials_configured",
            backend=self.backend.name,
            key=credential.key if credential else None,
        )

    async def _run(self, operation: str, func: Callable[..., T], *args: Any, **context: Any) -> T:
        start_time = time.perf_counter()
        try:
            result = await asyncio.to_thread(func, *args)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Unexpected error during {operation}: {e}",
                details={"operation": operation, **context},
                original_exception=e,
            ) from e

        log_performance(operation, time.perf_counter() - start_time, backend=self.backend.name, **context)
        return result

    async def get(self, key: str) -> bytes:
        """
        Download an object.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StorageError: If the download fails
        """
        data = await self._run("storage_get", self.backend.get_object, key, key=key)
        logger.debug("object_downloaded", key=key, size=len(data))
        return data

    async def get_text(self, key: str) -> str:
        return (await self.get(key)).decode("utf-8")

    async def put(self, key: str, data: bytes | str, content_type: str | None = None) -> None:
        """
        Upload an object, overwriting any existing one.

        Raises:
            StorageError: If the upload fails
        """
        body = data.encode("utf-8") if isinstance(data, str) else data
        content_type = content_type or get_content_type(key)
        await self._run(
            "storage_put",
            self.backend.put_object,
            key,
            body,
            content_type,
            self.public_read,
            key=key,
            size=len(body),
        )
        logger.info("object_uploaded", key=key, size=len(body), content_type=content_type)

    async def list_by_prefix(self, prefix: str, limit: int = 1000, marker: str | None = None) -> ListResult:
        """
        List keys under ``prefix`` that sort strictly after ``marker``.

        Raises:
            StorageError: If the listing fails
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        result = await self._run(
            "storage_list", self.backend.list_objects, prefix, limit, marker, prefix=prefix, marker=marker
        )
        logger.debug("objects_listed", prefix=prefix, count=len(result.keys), truncated=result.is_truncated)
        return result

    async def delete_many(self, keys: list[str]) -> None:
        """
        Delete objects in a single batch call.

        Raises:
            StorageError: If the deletion fails
        """
        if not keys:
            return
        await self._run("storage_delete_many", self.backend.delete_objects, list(keys), count=len(keys))
        logger.info("objects_deleted", count=len(keys), keys=keys)


_shared_memory_objects: dict[str, StoredObject] = {}


def create_storage_backend(backend_name: str | None = None) -> StorageBackend:
    """
    Create the configured storage backend.

    Development memory backends share one object dict so that content
    survives Streamlit reruns within the process.
    """
    backend_name = backend_name or get_storage_backend()

    if backend_name == "memory":
        return InMemoryStorageBackend(objects=_shared_memory_objects)

    return GCSStorageBackend(bucket_name=get_gallery_bucket(), project_id=get_gallery_project())


def create_storage_client(backend: StorageBackend | None = None) -> StorageClient:
    """Create a storage client over the configured (or given) backend."""
    return StorageClient(backend or create_storage_backend(), public_read=get_public_read())
