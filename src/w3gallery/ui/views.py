"""
View initialization for each router state.

Views wait on the document for their anchor element, wait for the gallery
manager to finish loading, then populate elements or attach form handlers.
"""

import asyncio

from w3gallery.ui.handlers.error import ObjectNotFoundError, StorageError, ValidationError
from ..logging_config import get_logger
from ..models.metadata import GalleryMetadata
from ..models.post import Post
from ..services.gallery import GalleryManager
from .components.gallery import render_card
from .document import Document, Event
from .router import RouteState

logger = get_logger(__name__)

DEFAULT_ELEMENT_TIMEOUT = 10.0

PROFILE_ID = "gallery-profile"
TITLE_ID = "gallery-title"
BIO_ID = "gallery-bio"
ALBUM_ID = "gallery-album"
LOGIN_FORM_ID = "gallery-login"
LOGIN_KEY_ID = "floatingInput"
LOGIN_SECRET_ID = "floatingPassword"
CREATE_FORM_ID = "gallery-create"
CREATE_CAPTION_ID = "createCaption"
CREATE_STATUS_ID = "gallery-create-status"


class ViewInitializer:
    """Populates the mounted fragment of each route."""

    def __init__(
        self,
        manager: GalleryManager,
        document: Document,
        element_timeout: float | None = DEFAULT_ELEMENT_TIMEOUT,
    ) -> None:
        self.manager = manager
        self.document = document
        self.element_timeout = element_timeout

    async def initialize(self, state: RouteState) -> None:
        if state is RouteState.HOME:
            await self.init_gallery()
        elif state is RouteState.LOGIN:
            await self.init_login()
        elif state is RouteState.CREATE:
            await self.init_create()
        else:
            logger.debug("view_skipped", state=state.value)

    async def init_gallery(self) -> int:
        """
        Populate the profile, title, bio and album.

        Captions are fetched concurrently and cards are appended as they
        arrive, so album order is not index order.

        Returns:
            int: Number of cards appended
        """
        profile = await self.document.wait_for(PROFILE_ID, self.element_timeout)
        await self.manager.ready()
        profile.set_attribute("src", self.manager.profile_url)

        metadata, bio = await asyncio.gather(self._load_metadata(), self._load_bio())
        self.document.require(TITLE_ID).set_text(metadata.display_name)
        self.document.require(BIO_ID).set_text(bio)

        appended = await asyncio.gather(*(self.append_post(index) for index in range(1, metadata.latest_index + 1)))
        logger.info("gallery_rendered", latest_index=metadata.latest_index, cards=sum(appended))
        return sum(appended)

    async def _load_metadata(self) -> GalleryMetadata:
        try:
            return await self.manager.fetch_metadata()
        except (StorageError, ValueError) as e:
            logger.warning("gallery_metadata_unavailable", error=str(e))
            return await self.manager.ready()

    async def _load_bio(self) -> str:
        try:
            return await self.manager.fetch_bio()
        except ObjectNotFoundError:
            return ""

    async def append_post(self, index: int) -> bool:
        """
        Append the card of one post to the album.

        Indices without a caption or photo (deleted or partially created
        posts) are skipped.
        """
        album = self.document.require(ALBUM_ID)
        try:
            caption, photo_url = await asyncio.gather(self.manager.get_caption(index), self.manager.photo_url(index))
        except ObjectNotFoundError:
            logger.debug("post_skipped", index=index, reason="missing_caption")
            return False

        if photo_url is None:
            logger.debug("post_skipped", index=index, reason="missing_photo")
            return False

        post = Post(index=index, caption=caption, photo_url=photo_url)
        album.append_html(render_card(post, editable=self.manager.is_logged_in))
        return True

    async def init_login(self) -> None:
        """Attach the login submit handler to the login form."""
        await self.manager.ready()
        form = await self.document.wait_for(LOGIN_FORM_ID, self.element_timeout)

        async def handle_submit(event: Event) -> None:
            event.prevent_default()
            key = self.document.require(LOGIN_KEY_ID).value
            secret = self.document.require(LOGIN_SECRET_ID).value
            event.data["result"] = await self.login(key, secret)

        form.add_event_listener("submit", handle_submit)

    async def login(self, key: str, secret: str) -> bytes:
        """Log in with the gallery owner's name and profile photo as the credential's identity."""
        await self.manager.ready()
        display_name = await self.manager.display_name()
        return await self.manager.login(key, secret, display_name.strip(), self.manager.profile_url)

    async def init_create(self) -> None:
        """Attach the post creation handler to the create form."""
        await self.manager.ready()
        form = await self.document.wait_for(CREATE_FORM_ID, self.element_timeout)

        async def handle_submit(event: Event) -> None:
            event.prevent_default()
            photo = event.data.get("photo")
            if photo is None:
                raise ValidationError(
                    "No photo selected",
                    code="missing_photo",
                    user_message="Choose a photo to post.",
                )

            caption = self.document.require(CREATE_CAPTION_ID).value
            index = await self.manager.create(photo, caption)
            event.data["index"] = index

            status = self.document.get_element_by_id(CREATE_STATUS_ID)
            if status is not None:
                status.set_text(f"Post {index} created.")

        form.add_event_listener("submit", handle_submit)
