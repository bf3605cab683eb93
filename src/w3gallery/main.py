"""
Main Streamlit application for w3gallery.

The ``page`` query parameter is the location path. Each run builds an
AppContext, routes the path into the document and renders the page for the
entered route.
"""

import asyncio

import streamlit as st

from w3gallery.config import get_config
from w3gallery.context import AppContext
from w3gallery.logging_config import configure_structured_logging, get_logger
from w3gallery.ui.components.common import render_document, render_footer, render_header, render_sidebar
from w3gallery.ui.components.error_display import error_context, get_error_display_manager
from w3gallery.ui.pages.create import render_create_page
from w3gallery.ui.pages.home import render_home_page
from w3gallery.ui.pages.login import render_login_page
from w3gallery.ui.router import RouteState, normalize_path

configure_structured_logging()
logger = get_logger(__name__)
error_display = get_error_display_manager()

PAGE_RENDERERS = {
    RouteState.HOME: render_home_page,
    RouteState.LOGIN: render_login_page,
    RouteState.CREATE: render_create_page,
}


def initialize_session_state() -> None:
    """Initialize session state variables."""
    if "credential" not in st.session_state:
        st.session_state.credential = None

    if "flash_message" not in st.session_state:
        st.session_state.flash_message = None


def get_current_path() -> str:
    return normalize_path(st.query_params.get("page", "/"))


async def run_page(path: str) -> None:
    """Route ``path`` and render the page of the entered route."""
    context = AppContext.create(path, credential=st.session_state.credential)

    clicked, logout_clicked = render_sidebar(
        path,
        context.manager.is_logged_in,
        context.manager.credential.display_name if context.manager.credential else "",
    )

    if logout_clicked:
        context.manager.logout()
        st.session_state.credential = None
        st.rerun()

    if clicked is not None:
        context.router.history.push_state(clicked)
        st.query_params["page"] = context.router.history.current
        st.rerun()

    route = await context.router.navigate()
    render_header(await context.manager.display_name() or "w3gallery")

    if st.session_state.flash_message:
        error_display.display_success_message(st.session_state.flash_message)
        st.session_state.flash_message = None

    renderer = PAGE_RENDERERS.get(route.state)
    if renderer is None:
        render_document(context.document.render())
    else:
        await renderer(context)


def main() -> None:
    """Main application entry point."""
    st.set_page_config(
        page_title="w3gallery",
        page_icon="📸",
        layout="wide",
        initial_sidebar_state="expanded",
        menu_items={
            "Get Help": None,
            "Report a bug": None,
            "About": "w3gallery - Photo gallery served from an object-storage bucket",
        },
    )

    initialize_session_state()
    path = get_current_path()
    logger.info("page_requested", path=path, logged_in=st.session_state.credential is not None)

    with error_context(f"The page '{path}' could not be loaded", show_details=get_config().is_development()):
        asyncio.run(run_page(path))

    render_footer()

    try:
        if get_config().get("DEBUG", False, bool):
            with st.expander("Debug Info"):
                st.write("Path:", path)
                st.write("Logged in:", st.session_state.credential is not None)
    except Exception as e:
        logger.debug("debug_section_error", error=str(e))


if __name__ == "__main__":
    main()
