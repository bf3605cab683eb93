"""
Unit tests for view initialization.
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from tests.conftest import PUBLIC_ENDPOINT, seed_metadata, seed_post
from w3gallery.models.metadata import GalleryMetadata
from w3gallery.models.post import PhotoUpload
from w3gallery.services.gallery import GalleryManager
from w3gallery.services.storage import InMemoryStorageBackend, StorageClient, StoredObject
from w3gallery.ui.document import Document
from w3gallery.ui.handlers.error import AuthenticationError, StorageError, ValidationError
from w3gallery.ui.router import FragmentLoader, Router, RouteState
from w3gallery.ui.views import ViewInitializer


@pytest.fixture
def gallery_backend():
    backend = InMemoryStorageBackend(accepted_credentials={"owner": "s3cret"})
    seed_metadata(backend, GalleryMetadata(3, datetime.now(UTC), name="jdoe", first_name="Jane", last_name="Doe"))
    backend.objects["bio.md"] = StoredObject(b"Street <photographer>", "text/markdown", True)
    seed_post(backend, 1, caption="First light")
    seed_post(backend, 2, caption="<script>alert(1)</script>")
    seed_post(backend, 3, caption="Night", extension="jpg")
    return backend


@pytest.fixture
async def gallery(gallery_backend):
    manager = GalleryManager(StorageClient(gallery_backend), PUBLIC_ENDPOINT)
    await manager.ready()
    document = Document()
    views = ViewInitializer(manager, document, element_timeout=1)
    router = Router(document, FragmentLoader(), views)
    return manager, document, views, router


class TestHomeView:
    """Test cases for the home view."""

    async def test_populates_profile_title_bio_and_album(self, gallery):
        manager, document, views, router = gallery

        await router.navigate("/")

        assert document.require("gallery-profile").get_attribute("src") == f"{PUBLIC_ENDPOINT}/profile.png"
        assert document.require("gallery-title").text == "Jane Doe"
        assert document.require("gallery-bio").text == "Street <photographer>"
        assert len(document.require("gallery-album").children) == 3

    async def test_cards_escape_captions(self, gallery):
        manager, document, views, router = gallery

        await router.navigate("/")
        rendered = document.render()

        assert "<script>" not in rendered
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in rendered
        assert f"{PUBLIC_ENDPOINT}/posts/3/photo.jpg" in rendered
        assert 'id="gallery-image-1"' in rendered

    async def test_deleted_posts_are_skipped(self, gallery):
        manager, document, views, router = gallery
        await manager.login("owner", "s3cret")
        await manager.delete(2)

        await router.navigate("/")

        album = "".join(document.require("gallery-album").children)
        assert "gallery-image-2" not in album
        assert "gallery-image-1" in album and "gallery-image-3" in album

    async def test_missing_bio_renders_empty(self, gallery, gallery_backend):
        manager, document, views, router = gallery
        del gallery_backend.objects["bio.md"]

        await router.navigate("/")

        assert document.require("gallery-bio").text == ""

    async def test_empty_gallery(self, storage_client):
        manager = GalleryManager(storage_client, PUBLIC_ENDPOINT)
        document = Document()
        router = Router(document, FragmentLoader(), ViewInitializer(manager, document))

        await router.navigate("/")

        assert document.require("gallery-title").text == ""
        assert document.require("gallery-album").children == []

    async def test_latest_index_comes_from_fetched_metadata(self, gallery, gallery_backend):
        manager, document, views, router = gallery
        seed_post(gallery_backend, 4, caption="Fresh")
        seed_metadata(gallery_backend, GalleryMetadata(4, datetime.now(UTC), name="jdoe"))

        await router.navigate("/")

        assert len(document.require("gallery-album").children) == 4
        assert document.require("gallery-title").text == "jdoe"

    async def test_captions_fetched_concurrently(self, gallery):
        manager, document, views, router = gallery
        in_flight = 0
        peak = 0
        original = manager.get_caption

        async def slow_caption(index):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await original(index)

        manager.get_caption = slow_caption

        await router.navigate("/")

        assert peak == 3

    async def test_edit_buttons_only_for_owner(self, gallery):
        manager, document, views, router = gallery

        await router.navigate("/")
        assert 'data-action="delete"' not in document.render()

        await manager.login("owner", "s3cret")
        await router.navigate("/")
        assert 'data-action="delete"' in document.render()

    async def test_storage_errors_propagate(self, gallery, gallery_backend):
        manager, document, views, router = gallery
        manager.get_caption = AsyncMock(side_effect=StorageError("listing failed"))

        with pytest.raises(StorageError):
            await router.navigate("/")


class TestLoginView:
    """Test cases for the login view."""

    async def test_submit_calls_login_once(self, gallery):
        manager, document, views, router = gallery
        await router.navigate("/login")

        document.require("floatingInput").value = "owner"
        document.require("floatingPassword").value = "s3cret"
        with patch.object(manager, "login", wraps=manager.login) as login:
            event = await document.dispatch("gallery-login", "submit")

        login.assert_awaited_once_with("owner", "s3cret", "Jane Doe", f"{PUBLIC_ENDPOINT}/profile.png")
        assert event.default_prevented
        assert manager.is_logged_in
        assert document.require("gallery-login").listener_count("submit") == 1

    async def test_renavigation_attaches_a_fresh_handler(self, gallery):
        manager, document, views, router = gallery
        await router.navigate("/login")
        await router.navigate("/login")

        document.require("floatingInput").value = "owner"
        document.require("floatingPassword").value = "s3cret"
        with patch.object(manager, "login", wraps=manager.login) as login:
            await document.dispatch("gallery-login", "submit")

        assert login.await_count == 1

    async def test_wrong_secret_raises(self, gallery):
        manager, document, views, router = gallery
        await router.navigate("/login")

        document.require("floatingInput").value = "owner"
        document.require("floatingPassword").value = "nope"

        with pytest.raises(AuthenticationError):
            await document.dispatch("gallery-login", "submit")
        assert not manager.is_logged_in

    async def test_login_uses_plain_name_without_first_name(self, storage_client, memory_backend):
        seed_metadata(memory_backend, GalleryMetadata(0, datetime.now(UTC), name="  Studio  "))
        manager = GalleryManager(storage_client, PUBLIC_ENDPOINT)
        views = ViewInitializer(manager, Document())

        await views.login("owner", "s3cret")

        assert manager.credential.display_name == "Studio"
        assert manager.credential.icon_url == f"{PUBLIC_ENDPOINT}/profile.png"


class TestCreateView:
    """Test cases for the create view."""

    async def test_submit_creates_post(self, gallery, gallery_backend, png_bytes):
        manager, document, views, router = gallery
        await manager.login("owner", "s3cret")
        await router.navigate("/create")

        document.require("createCaption").value = "From the form"
        event = await document.dispatch("gallery-create", "submit", photo=PhotoUpload(png_bytes, "new.png"))

        assert event.data["index"] == 4
        assert event.default_prevented
        assert gallery_backend.objects["posts/4/caption.md"].data == b"From the form"
        assert document.require("gallery-create-status").text == "Post 4 created."

    async def test_submit_without_photo(self, gallery):
        manager, document, views, router = gallery
        await router.navigate("/create")

        with pytest.raises(ValidationError) as exc_info:
            await document.dispatch("gallery-create", "submit")
        assert exc_info.value.code == "missing_photo"

    async def test_anonymous_create_is_rejected_by_the_bucket(self, gallery, png_bytes):
        manager, document, views, router = gallery
        await router.navigate("/create")

        with pytest.raises(StorageError):
            await document.dispatch("gallery-create", "submit", photo=PhotoUpload(png_bytes, "new.png"))
        assert manager.metadata.latest_index == 3


class TestInitializeDispatch:
    """Test cases for state dispatch."""

    async def test_not_found_state_does_nothing(self):
        manager = AsyncMock()
        views = ViewInitializer(manager, Document())

        await views.initialize(RouteState.NOT_FOUND)

        manager.ready.assert_not_awaited()

    async def test_home_view_times_out_without_anchor(self, gallery):
        manager, document, views, router = gallery
        views.element_timeout = 0.01

        with pytest.raises(TimeoutError):
            await views.initialize(RouteState.HOME)
