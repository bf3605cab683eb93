"""
Unit tests for the Streamlit pages.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from tests.conftest import PUBLIC_ENDPOINT, seed_metadata, seed_post
from w3gallery.context import AppContext
from w3gallery.models.metadata import GalleryMetadata
from w3gallery.services.storage import InMemoryStorageBackend, StorageClient
from w3gallery.ui.handlers.error import AuthenticationError
from w3gallery.ui.pages.create import render_create_page
from w3gallery.ui.pages.home import render_home_page
from w3gallery.ui.pages.login import render_login_page


class RerunCalled(Exception):
    """Stands in for Streamlit's rerun control flow."""


def mock_streamlit(mock_st, session_state=None):
    mock_st.session_state = MagicMock() if session_state is None else session_state
    mock_st.query_params = {}
    mock_st.rerun.side_effect = RerunCalled
    return mock_st


@pytest.fixture
def backend():
    backend = InMemoryStorageBackend(accepted_credentials={"owner": "s3cret"})
    seed_metadata(backend, GalleryMetadata(1, datetime.now(UTC)))
    seed_post(backend, 1, caption="Only post")
    return backend


@pytest.fixture
async def make_context(backend):
    async def factory(path):
        context = AppContext.create(path, storage=StorageClient(backend), public_endpoint=PUBLIC_ENDPOINT)
        await context.router.navigate()
        return context

    return factory


class TestLoginPage:
    """Test cases for the login page."""

    @patch("w3gallery.ui.pages.login.st")
    async def test_not_submitted(self, mock_st, make_context):
        mock_streamlit(mock_st)
        mock_st.form_submit_button.return_value = False
        context = await make_context("/login")

        await render_login_page(context)

        assert not context.manager.is_logged_in

    @patch("w3gallery.ui.pages.login.st")
    async def test_submit_logs_in_and_stores_credential(self, mock_st, make_context):
        mock_streamlit(mock_st)
        mock_st.text_input.return_value = "owner"
        mock_st.text_area.return_value = "s3cret"
        mock_st.form_submit_button.return_value = True
        context = await make_context("/login")

        with pytest.raises(RerunCalled):
            await render_login_page(context)

        assert context.manager.is_logged_in
        assert mock_st.session_state.credential == context.manager.credential
        assert mock_st.query_params["page"] == "/"

    @patch("w3gallery.ui.pages.login.st")
    async def test_wrong_secret_propagates(self, mock_st, make_context):
        mock_streamlit(mock_st)
        mock_st.text_input.return_value = "owner"
        mock_st.text_area.return_value = "wrong"
        mock_st.form_submit_button.return_value = True
        context = await make_context("/login")

        with pytest.raises(AuthenticationError):
            await render_login_page(context)

        mock_st.rerun.assert_not_called()

    @patch("w3gallery.ui.pages.login.st")
    async def test_missing_fields(self, mock_st, make_context):
        mock_streamlit(mock_st)
        mock_st.text_input.return_value = "owner"
        mock_st.text_area.return_value = ""
        mock_st.form_submit_button.return_value = True
        context = await make_context("/login")

        await render_login_page(context)

        mock_st.warning.assert_called_once()
        assert not context.manager.is_logged_in


class TestCreatePage:
    """Test cases for the create page."""

    @patch("w3gallery.ui.pages.create.st")
    async def test_submit_creates_post(self, mock_st, make_context, backend, png_bytes):
        mock_streamlit(mock_st)
        uploaded = MagicMock()
        uploaded.getvalue.return_value = png_bytes
        uploaded.name = "beach.png"
        uploaded.type = "image/png"
        mock_st.file_uploader.return_value = uploaded
        mock_st.text_area.return_value = "Beach day"
        mock_st.form_submit_button.return_value = True
        context = await make_context("/create")
        await context.manager.login("owner", "s3cret")

        with pytest.raises(RerunCalled):
            await render_create_page(context)

        assert backend.objects["posts/2/caption.md"].data == b"Beach day"
        assert backend.objects["posts/2/photo.png"].content_type == "image/png"
        assert mock_st.session_state.flash_message == "Post 2 created."

    @patch("w3gallery.ui.pages.create.st")
    async def test_no_photo_selected(self, mock_st, make_context, backend):
        mock_streamlit(mock_st)
        mock_st.file_uploader.return_value = None
        mock_st.form_submit_button.return_value = True
        context = await make_context("/create")

        await render_create_page(context)

        mock_st.warning.assert_called_once_with("Choose a photo to post.")
        assert "posts/2/caption.md" not in backend.objects


class TestHomePage:
    """Test cases for the home page."""

    @patch("w3gallery.ui.components.common.st")
    @patch("w3gallery.ui.pages.home.st")
    async def test_anonymous_sees_album_only(self, mock_st, mock_common_st, make_context):
        mock_streamlit(mock_st)
        context = await make_context("/")

        await render_home_page(context)

        markup = mock_common_st.markdown.call_args.args[0]
        assert "Only post" in markup
        mock_st.expander.assert_not_called()

    @patch("w3gallery.ui.components.common.st")
    @patch("w3gallery.ui.pages.home.st")
    async def test_owner_can_delete(self, mock_st, mock_common_st, make_context, backend):
        mock_streamlit(mock_st)
        mock_st.number_input.return_value = 1
        mock_st.form_submit_button.return_value = False
        mock_st.button.return_value = True
        context = await make_context("/")
        await context.manager.login("owner", "s3cret")

        with pytest.raises(RerunCalled):
            await render_home_page(context)

        assert "posts/1/caption.md" not in backend.objects
        assert mock_st.session_state.flash_message == "Post 1 deleted."

    @patch("w3gallery.ui.components.common.st")
    @patch("w3gallery.ui.pages.home.st")
    async def test_owner_can_update_caption(self, mock_st, mock_common_st, make_context, backend):
        mock_streamlit(mock_st)
        mock_st.number_input.return_value = 1
        mock_st.text_area.return_value = "Renamed"
        mock_st.file_uploader.return_value = None
        mock_st.form_submit_button.return_value = True
        mock_st.button.return_value = False
        context = await make_context("/")
        await context.manager.login("owner", "s3cret")

        with pytest.raises(RerunCalled):
            await render_home_page(context)

        assert backend.objects["posts/1/caption.md"].data == b"Renamed"
        assert "posts/1/photo.png" in backend.objects
