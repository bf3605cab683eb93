"""Login page."""

import streamlit as st

from w3gallery.context import AppContext
from w3gallery.logging_config import get_logger
from w3gallery.ui.views import LOGIN_FORM_ID, LOGIN_KEY_ID, LOGIN_SECRET_ID

logger = get_logger(__name__)


async def render_login_page(context: AppContext) -> None:
    """
    Render the sign-in form.

    A submission fills the fragment's inputs and dispatches one submit event
    to the login form, which runs the login probe. A successful credential is
    kept in the session; failures propagate to the page's error boundary.
    """
    st.markdown("### 🔐 Sign in")
    st.caption("Use the storage service account e-mail as the key and its private key as the secret.")

    with st.form(LOGIN_FORM_ID):
        key = st.text_input("Access key", key="login_key")
        secret = st.text_area("Secret", key="login_secret")
        submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)

    if not submitted:
        return

    if not key or not secret:
        st.warning("Enter both the access key and the secret.")
        return

    context.document.require(LOGIN_KEY_ID).value = key
    context.document.require(LOGIN_SECRET_ID).value = secret
    await context.document.dispatch(LOGIN_FORM_ID, "submit")

    st.session_state.credential = context.manager.credential
    st.session_state.flash_message = f"Signed in as {key}."
    logger.info("session_login", key=key)

    st.query_params["page"] = "/"
    st.rerun()
