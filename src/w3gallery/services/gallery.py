"""Gallery manager: posts and the metadata document as grouped storage operations.

Every post lives under ``posts/<index>/`` as ``photo.<ext>`` and
``caption.md``. The manager owns the in-memory copy of ``metadata.json`` and
rewrites it after each post creation. There is no locking: two writers racing
on ``latestIndex`` resolve as last-writer-wins.
"""

import asyncio
from dataclasses import replace

from w3gallery.ui.handlers.error import AuthenticationError, ObjectNotFoundError, StorageError, ValidationError
from ..logging_config import get_logger, log_user_action
from ..models.metadata import METADATA_KEY, GalleryMetadata
from ..models.post import (
    BIO_KEY,
    POSTS_PREFIX,
    PROFILE_KEY,
    PhotoUpload,
    PostPage,
    caption_key,
    is_photo_key,
    parse_post_index,
    photo_key,
    post_prefix,
)
from .auth import Credential
from .image_processor import ImageProcessor, get_image_processor
from .storage import StorageClient

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 100
DELETE_LIST_LIMIT = 1000


class GalleryManager:
    """Creates, updates, deletes and lists posts in the gallery bucket."""

    def __init__(
        self,
        storage: StorageClient,
        public_endpoint: str,
        image_processor: ImageProcessor | None = None,
    ) -> None:
        """
        Initialize the manager and start loading metadata.

        Loading starts right away when an event loop is running; otherwise it
        starts on the first call to ``ready()``.

        Args:
            storage: Storage client for the gallery bucket
            public_endpoint: Base URL under which bucket objects are publicly readable
            image_processor: Photo validator (defaults to the global instance)
        """
        self.storage = storage
        self.public_endpoint = public_endpoint.rstrip("/")
        self.image_processor = image_processor or get_image_processor()
        self.metadata: GalleryMetadata = GalleryMetadata.default()
        self.credential: Credential | None = None
        self._initialized: asyncio.Future[None] | None = None
        self._create_lock = asyncio.Lock()

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._initialized = asyncio.ensure_future(self.initialize())

    async def initialize(self) -> None:
        """
        Load ``metadata.json``, falling back to default metadata on any failure.

        Never raises.
        """
        try:
            self.metadata = await self.fetch_metadata()
            logger.info("metadata_loaded", latest_index=self.metadata.latest_index)
        except Exception as e:
            self.metadata = GalleryMetadata.default()
            logger.warning("metadata_fallback", error=str(e), latest_index=0)

    async def ready(self) -> GalleryMetadata:
        """Wait for initialization to finish and return the in-memory metadata."""
        if self._initialized is None:
            self._initialized = asyncio.ensure_future(self.initialize())
        await self._initialized
        return self.metadata

    @property
    def is_logged_in(self) -> bool:
        return self.credential is not None

    async def fetch_metadata(self) -> GalleryMetadata:
        """
        Read the metadata document straight from the bucket.

        Raises:
            StorageError: If the document cannot be downloaded
            ValueError: If the document is not valid metadata
        """
        return GalleryMetadata.from_json_bytes(await self.storage.get(METADATA_KEY))

    async def fetch_bio(self) -> str:
        return await self.storage.get_text(BIO_KEY)

    async def login(self, key: str, secret: str, display_name: str = "", icon_url: str | None = None) -> bytes:
        """
        Configure storage credentials and probe them by reading ``metadata.json``.

        Returns:
            bytes: Raw metadata document returned by the probe

        Raises:
            AuthenticationError: If the credentials are unusable or the probe fails
        """
        await self.ready()
        credential = Credential(key=key, secret=secret, display_name=display_name, icon_url=icon_url)

        try:
            self.storage.configure_credentials(credential)
            data = await self.storage.get(METADATA_KEY)
        except StorageError as e:
            self.credential = None
            self.storage.configure_credentials(None)
            raise AuthenticationError(
                f"Login failed for '{key}': {e}",
                details={"key": key},
                original_exception=e,
            ) from e

        self.credential = credential
        log_user_action(key, "login", display_name=display_name)
        return data

    def restore_credential(self, credential: Credential) -> None:
        """Reuse a credential that passed the login probe earlier in the session."""
        self.storage.configure_credentials(credential)
        self.credential = credential

    async def bootstrap(self, key: str, secret: str, name: str | None = None) -> bool:
        """
        Write a default ``metadata.json`` into a bucket that has none.

        The login probe reads ``metadata.json``, so a new bucket needs this
        before its first login. An existing document is left untouched.

        Returns:
            bool: Whether a new document was written

        Raises:
            StorageError: If the bucket cannot be read or written with the credential
            ValueError: If the existing document is not valid metadata
        """
        await self.ready()
        self.storage.configure_credentials(Credential(key=key, secret=secret))
        try:
            try:
                self.metadata = await self.fetch_metadata()
            except ObjectNotFoundError:
                pass
            else:
                logger.info("gallery_already_initialized", latest_index=self.metadata.latest_index)
                return False

            metadata = GalleryMetadata.default()
            metadata.name = name
            await self.storage.put(METADATA_KEY, metadata.to_json_bytes(), "application/json")
        finally:
            self.storage.configure_credentials(self.credential)

        self.metadata = metadata
        log_user_action(key, "gallery_initialized")
        return True

    def logout(self) -> None:
        """Forget the credential and return to anonymous access."""
        if self.credential is None:
            return
        key = self.credential.key
        self.credential = None
        self.storage.configure_credentials(None)
        log_user_action(key, "logout")

    async def create(self, photo: PhotoUpload, caption: str) -> int:
        """
        Create a post at index ``latestIndex + 1``.

        Photo and caption are uploaded concurrently; ``metadata.json`` is
        written only after both succeed, and the in-memory counter moves only
        after that write succeeds. A failure leaves the counter where it was,
        so the next create reuses (and overwrites) the same index. Photo objects
        left at that index by a failed create are removed. Creates on one
        manager run one at a time so each gets its own index.

        Returns:
            int: Index of the new post

        Raises:
            ValidationError: If the photo is not a usable image
            StorageError: If any upload fails
        """
        await self.ready()
        extension = self.image_processor.validate_photo(photo)

        async with self._create_lock:
            metadata = self.metadata
            index = metadata.next_index()
            new_photo_key = photo_key(index, extension)
            new_caption_key = caption_key(index)

            try:
                existing = await self.storage.list_by_prefix(post_prefix(index), limit=DELETE_LIST_LIMIT)
                stale_photo_keys = [key for key in existing.keys if is_photo_key(key) and key != new_photo_key]
                if stale_photo_keys:
                    logger.warning("stale_photos_removed", index=index, keys=stale_photo_keys)
                    await self.storage.delete_many(stale_photo_keys)

                await asyncio.gather(
                    self.storage.put(new_photo_key, photo.data, photo.content_type),
                    self.storage.put(new_caption_key, caption),
                )
                committed = replace(metadata, latest_index=index)
                await self.storage.put(METADATA_KEY, committed.to_json_bytes(), "application/json")
            except StorageError as e:
                logger.error("post_create_failed", index=index, error=str(e))
                raise

            metadata.advance_to(index)

        log_user_action(
            self.credential.key if self.credential else "anonymous",
            "post_created",
            index=index,
            photo_key=new_photo_key,
        )
        return index

    async def update(self, index: int, photo: PhotoUpload | None = None, caption: str | None = None) -> None:
        """
        Overwrite the photo and/or caption of an existing post.

        Omitted fields are left untouched. A new photo with a different
        extension replaces the old photo object.

        Raises:
            ValidationError: If the index is not a created post or the photo is invalid
            StorageError: If any upload fails
        """
        metadata = await self.ready()
        if index < 1 or index > metadata.latest_index:
            raise ValidationError(
                f"Post {index} does not exist (latest index is {metadata.latest_index})",
                code="unknown_post",
                details={"index": index, "latest_index": metadata.latest_index},
            )

        uploads = []
        stale_photo_keys: list[str] = []

        if photo is not None:
            new_photo_key = photo_key(index, self.image_processor.validate_photo(photo))
            existing = await self.storage.list_by_prefix(post_prefix(index), limit=DELETE_LIST_LIMIT)
            stale_photo_keys = [key for key in existing.keys if is_photo_key(key) and key != new_photo_key]
            uploads.append(self.storage.put(new_photo_key, photo.data, photo.content_type))

        if caption is not None:
            uploads.append(self.storage.put(caption_key(index), caption))

        if not uploads:
            return

        try:
            await asyncio.gather(*uploads)
            if stale_photo_keys:
                await self.storage.delete_many(stale_photo_keys)
        except StorageError as e:
            logger.error("post_update_failed", index=index, error=str(e))
            raise

        logger.info(
            "post_updated",
            index=index,
            photo_updated=photo is not None,
            caption_updated=caption is not None,
        )

    async def delete(self, index: int) -> int:
        """
        Delete every object under ``posts/<index>/``.

        All listing pages are collected first, then removed in one batch call.
        Deleting a post that has no objects is a no-op.

        Returns:
            int: Number of objects deleted

        Raises:
            StorageError: If listing or deletion fails
        """
        await self.ready()
        prefix = post_prefix(index)
        keys: list[str] = []
        marker: str | None = None

        try:
            while True:
                listing = await self.storage.list_by_prefix(prefix, limit=DELETE_LIST_LIMIT, marker=marker)
                keys.extend(listing.keys)
                if not listing.is_truncated or not listing.keys:
                    break
                marker = listing.keys[-1]

            if not keys:
                logger.debug("post_delete_noop", index=index)
                return 0

            await self.storage.delete_many(keys)
        except StorageError as e:
            logger.error("post_delete_failed", index=index, error=str(e))
            raise

        logger.info("post_deleted", index=index, objects=len(keys))
        return len(keys)

    async def list(self, page_size: int = DEFAULT_PAGE_SIZE, start_index: int = 0) -> PostPage:
        """
        List post indices starting at ``start_index``.

        Keys are scanned in bucket order from marker ``posts/<start_index>/``
        and indices are taken from the key text. Up to ``page_size`` distinct
        indices are returned; ``is_truncated`` says whether more follow.

        Raises:
            StorageError: If listing fails
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")

        await self.ready()
        page = PostPage()
        marker: str | None = post_prefix(start_index)

        try:
            while True:
                listing = await self.storage.list_by_prefix(POSTS_PREFIX, limit=page_size, marker=marker)
                for key in listing.keys:
                    index = parse_post_index(key)
                    if index is None or index in page.indices:
                        continue
                    if len(page.indices) == page_size:
                        page.is_truncated = True
                        return page
                    page.indices.add(index)
                    page.next_marker = key

                if not listing.is_truncated or not listing.keys:
                    return page
                marker = listing.keys[-1]
        except StorageError as e:
            logger.error("post_list_failed", start_index=start_index, error=str(e))
            raise

    async def get_caption(self, index: int) -> str:
        return await self.storage.get_text(caption_key(index))

    async def find_photo_key(self, index: int) -> str | None:
        """Key of the photo object of a post, whatever its extension."""
        listing = await self.storage.list_by_prefix(post_prefix(index), limit=DELETE_LIST_LIMIT)
        return next((key for key in listing.keys if is_photo_key(key)), None)

    async def photo_url(self, index: int) -> str | None:
        """Public URL of a post's photo, or None when the post has no photo object."""
        key = await self.find_photo_key(index)
        return self.asset_url(key) if key else None

    def asset_url(self, key: str) -> str:
        """Public URL of a bucket object."""
        return f"{self.public_endpoint}/{key}"

    @property
    def profile_url(self) -> str:
        return self.asset_url(PROFILE_KEY)

    async def display_name(self) -> str:
        """Gallery owner's name as stored in the current metadata document."""
        try:
            metadata = await self.fetch_metadata()
        except (StorageError, ValueError):
            metadata = await self.ready()
        return metadata.display_name
