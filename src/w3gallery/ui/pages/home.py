"""Home page: the populated album plus post management for the owner."""

import streamlit as st

from w3gallery.context import AppContext
from w3gallery.logging_config import get_logger
from w3gallery.models.post import PhotoUpload
from w3gallery.ui.components.common import render_document

logger = get_logger(__name__)


async def render_home_page(context: AppContext) -> None:
    """Render the album; logged-in owners also get update and delete controls."""
    render_document(context.document.render())

    if not context.manager.is_logged_in:
        return

    latest_index = context.manager.metadata.latest_index
    if latest_index < 1:
        return

    with st.expander("🛠️ Manage posts", expanded=False):
        index = st.number_input("Post index", min_value=1, max_value=latest_index, value=latest_index, step=1)

        with st.form("gallery-update", clear_on_submit=True):
            caption = st.text_area("New caption (leave empty to keep)")
            photo_file = st.file_uploader("New photo (optional)", type=["jpg", "jpeg", "png", "gif", "webp"])
            update_clicked = st.form_submit_button("Update post", use_container_width=True)

        delete_clicked = st.button("🗑️ Delete post", key="delete_post", use_container_width=True)

    if update_clicked:
        photo = None
        if photo_file is not None:
            photo = PhotoUpload(data=photo_file.getvalue(), filename=photo_file.name, content_type=photo_file.type)
        if photo is None and not caption:
            st.warning("Nothing to update.")
            return
        await context.manager.update(int(index), photo=photo, caption=caption or None)
        st.session_state.flash_message = f"Post {int(index)} updated."
        st.rerun()

    if delete_clicked:
        deleted = await context.manager.delete(int(index))
        logger.info("post_deleted_from_ui", index=int(index), objects=deleted)
        st.session_state.flash_message = f"Post {int(index)} deleted." if deleted else f"Post {int(index)} was empty."
        st.rerun()
