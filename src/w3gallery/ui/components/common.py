"""Reusable UI components for the w3gallery shell."""

import streamlit as st

from w3gallery import __version__
from ...logging_config import get_logger

logger = get_logger(__name__)

NAVIGATION_LINKS = {"🖼️ Gallery": "/", "📤 New post": "/create", "🔐 Login": "/login"}


def render_header(title: str = "w3gallery") -> None:
    """Render the application header."""
    st.markdown(f"# 📸 {title}")
    st.divider()


def render_sidebar(current_path: str, logged_in: bool, display_name: str = "") -> tuple[str | None, bool]:
    """
    Render the navigation sidebar.

    Args:
        current_path: Path of the current route
        logged_in: Whether a credential is configured
        display_name: Name shown for the logged-in gallery owner

    Returns:
        tuple: (href of the clicked link or None, whether logout was clicked)
    """
    clicked: str | None = None
    logout_clicked = False

    with st.sidebar:
        st.markdown("### 📸 w3gallery")
        st.divider()
        st.subheader("Navigation")

        for label, href in NAVIGATION_LINKS.items():
            if href == "/login" and logged_in:
                continue
            if st.button(
                label,
                key=f"nav_{href}",
                use_container_width=True,
                type="primary" if href == current_path else "secondary",
            ):
                logger.info("page_navigation", from_path=current_path, to_path=href)
                clicked = href

        st.divider()

        if logged_in:
            st.markdown(f"👤 {display_name or 'Signed in'}")
            logout_clicked = st.button("Logout", key="nav_logout", use_container_width=True)
        else:
            st.info("Browsing anonymously. Log in to add posts.")

    return clicked, logout_clicked


def render_document(markup: str) -> None:
    """Render the populated main content region."""
    st.markdown(markup, unsafe_allow_html=True)


def render_footer() -> None:
    st.divider()
    st.markdown(
        f"""
    <div style='text-align: center; color: #666; font-size: 0.8em;'>
        <strong>w3gallery v{__version__}</strong>
    </div>
    """,
        unsafe_allow_html=True,
    )
