"""
Streamlit error display components.

The shell wraps every render in ``error_context``, the error boundary that
turns exceptions escaping the router, views or gallery manager into a
user-visible message.
"""

from collections.abc import Callable
from typing import Any

import streamlit as st
from streamlit.runtime.scriptrunner_utils.exceptions import RerunException, StopException

from w3gallery.ui.handlers.error import ErrorInfo, ErrorSeverity, handle_error
from ...logging_config import get_logger

# Type alias for Streamlit container
StreamlitContainer = Any

logger = get_logger(__name__)


class ErrorDisplayManager:
    """Manager for displaying errors in Streamlit interface."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

    def display_error(
        self,
        error_info: ErrorInfo,
        container: StreamlitContainer | None = None,
        show_details: bool = False,
        retry_callback: Callable | None = None,
    ) -> None:
        """
        Display error information in Streamlit interface.

        Args:
            error_info: Structured error information
            container: Streamlit container to display in (optional)
            show_details: Whether to show technical details
            retry_callback: Function to call when retry is clicked
        """
        alert_type = self._get_alert_type(error_info.severity)

        def _display_content() -> None:
            if alert_type == "error":
                st.error(error_info.user_message)
            elif alert_type == "warning":
                st.warning(error_info.user_message)
            else:
                st.info(error_info.user_message)

            if show_details and error_info.details:
                with st.expander("Details", expanded=False):
                    st.write("**Error code:**", error_info.code)
                    st.write("**Category:**", error_info.category.value)
                    st.write("**Time:**", error_info.timestamp.strftime("%Y-%m-%d %H:%M:%S"))
                    for key, value in error_info.details.items():
                        if key not in ["original_exception", "secret"]:
                            st.write(f"- {key}: {value}")

            if error_info.retry_suggested and retry_callback:
                if st.button("Retry", key=f"retry_{error_info.code}_{error_info.timestamp}"):
                    retry_callback()
                    st.rerun()

        if container is not None:
            with container:
                _display_content()
        else:
            _display_content()

        self.logger.info(
            "error_displayed_to_user",
            error_code=error_info.code,
            category=error_info.category.value,
            severity=error_info.severity.value,
            user_message=error_info.user_message,
        )

    def display_exception(
        self,
        exception: Exception,
        context: dict[str, Any] | None = None,
        container: StreamlitContainer | None = None,
        show_details: bool = False,
        retry_callback: Callable | None = None,
    ) -> None:
        """Classify an exception and display it."""
        error_info = handle_error(exception, context)
        self.display_error(
            error_info=error_info,
            container=container,
            show_details=show_details,
            retry_callback=retry_callback,
        )

    def display_success_message(self, message: str, container: StreamlitContainer | None = None) -> None:
        display_container = container if container is not None else st
        with display_container:  # type: ignore
            st.success(message)

    def _get_alert_type(self, severity: ErrorSeverity) -> str:
        """Get appropriate Streamlit alert type for error severity."""
        severity_mapping = {
            ErrorSeverity.LOW: "info",
            ErrorSeverity.MEDIUM: "warning",
            ErrorSeverity.HIGH: "error",
            ErrorSeverity.CRITICAL: "error",
        }
        return severity_mapping.get(severity, "error")


error_display_manager = ErrorDisplayManager()


def get_error_display_manager() -> ErrorDisplayManager:
    """Get the global error display manager instance."""
    return error_display_manager


class StreamlitErrorContext:
    """Error boundary for Streamlit code blocks."""

    def __init__(
        self,
        error_message: str = "Something went wrong",
        show_details: bool = False,
        container: StreamlitContainer | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.error_message = error_message
        self.show_details = show_details
        self.container = container
        self.context = context or {}
        self.error_info: ErrorInfo | None = None

    def __enter__(self) -> "StreamlitErrorContext":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        if exc_type is None:
            return False

        # Streamlit control flow, not errors
        if isinstance(exc_val, (RerunException, StopException)):
            return False

        if not isinstance(exc_val, Exception):
            return False

        logger.error("error_boundary_caught", message=self.error_message, error=str(exc_val), **self.context)
        self.error_info = handle_error(exc_val, self.context)
        error_display_manager.display_error(
            self.error_info,
            container=self.container,
            show_details=self.show_details,
        )
        return True


def error_context(
    error_message: str = "Something went wrong",
    show_details: bool = False,
    container: StreamlitContainer | None = None,
    context: dict[str, Any] | None = None,
) -> StreamlitErrorContext:
    """Create an error boundary for Streamlit operations."""
    return StreamlitErrorContext(error_message, show_details, container, context)
