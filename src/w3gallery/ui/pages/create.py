"""Create page: upload a new post."""

import streamlit as st

from w3gallery.context import AppContext
from w3gallery.models.post import PhotoUpload
from w3gallery.ui.views import CREATE_CAPTION_ID, CREATE_FORM_ID


async def render_create_page(context: AppContext) -> None:
    """Render the new post form and submit it through the create form's handler."""
    st.markdown("### 📤 New post")

    if not context.manager.is_logged_in:
        st.info("Log in before posting; anonymous access is read-only.")

    with st.form(CREATE_FORM_ID, clear_on_submit=True):
        photo_file = st.file_uploader("Photo", type=["jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff"])
        caption = st.text_area("Caption")
        submitted = st.form_submit_button("Post", type="primary", use_container_width=True)

    if not submitted:
        return

    if photo_file is None:
        st.warning("Choose a photo to post.")
        return

    photo = PhotoUpload(data=photo_file.getvalue(), filename=photo_file.name, content_type=photo_file.type)
    context.document.require(CREATE_CAPTION_ID).value = caption
    event = await context.document.dispatch(CREATE_FORM_ID, "submit", photo=photo)

    st.session_state.flash_message = f"Post {event.data['index']} created."
    st.query_params["page"] = "/"
    st.rerun()
