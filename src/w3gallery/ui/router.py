"""
Page router for the gallery's main content region.

Paths map to static page fragments. Entering a route clears the document,
starts the route's view initializer, fetches the fragment (never cached) and
mounts it; the view picks up its elements once the mount resolves them.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
from importlib.resources import files
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import requests

from w3gallery.ui.handlers.error import RoutingError
from ..logging_config import get_logger, log_performance
from .document import Document

if TYPE_CHECKING:
    from .views import ViewInitializer

logger = get_logger(__name__)

DEFAULT_FRAGMENT_TIMEOUT = 10.0


class RouteState(Enum):
    """States of the router."""

    HOME = "home"
    LOGIN = "login"
    CREATE = "create"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class Route:
    path: str
    fragment: str
    state: RouteState


NOT_FOUND_ROUTE = Route("404", "/pages/404.html", RouteState.NOT_FOUND)

DEFAULT_ROUTES = {
    "/": Route("/", "/pages/index.html", RouteState.HOME),
    "/login": Route("/login", "/pages/login.html", RouteState.LOGIN),
    "/create": Route("/create", "/pages/create.html", RouteState.CREATE),
}


def normalize_path(path: str) -> str:
    """Reduce a path or URL to the path the route table is keyed by."""
    path = urlsplit(path).path or "/"
    if not path.startswith("/"):
        path = f"/{path}"
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


class FragmentLoader:
    """Fetches page fragments over HTTP or from the packaged ``static`` directory."""

    def __init__(
        self,
        base_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_FRAGMENT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.session = session or requests.Session()
        self.timeout = timeout

    async def load(self, fragment_path: str) -> str:
        """
        Fetch a fragment's markup.

        Raises:
            RoutingError: If the fragment cannot be fetched
        """
        if self.base_url:
            return await asyncio.to_thread(self._fetch, f"{self.base_url}{fragment_path}")
        return self._read_packaged(fragment_path)

    def _fetch(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RoutingError(
                f"Failed to fetch fragment {url}: {e}",
                details={"url": url},
                original_exception=e,
            ) from e
        return response.text

    def _read_packaged(self, fragment_path: str) -> str:
        resource = files("w3gallery").joinpath("static", *fragment_path.strip("/").split("/"))
        try:
            return resource.read_text(encoding="utf-8")
        except OSError as e:
            raise RoutingError(
                f"Packaged fragment not found: {fragment_path}",
                code="fragment_not_found",
                details={"fragment": fragment_path},
                original_exception=e,
            ) from e


class NavigationHistory:
    """Session history of visited paths."""

    def __init__(self, initial_path: str = "/") -> None:
        self.entries = [normalize_path(initial_path)]
        self.position = 0

    @property
    def current(self) -> str:
        return self.entries[self.position]

    def push_state(self, path: str) -> None:
        """Add a path after the current entry, dropping any forward entries."""
        del self.entries[self.position + 1 :]
        self.entries.append(normalize_path(path))
        self.position += 1

    def back(self) -> str | None:
        if self.position == 0:
            return None
        self.position -= 1
        return self.current


class Router:
    """Maps paths to fragments and runs view initialization on every transition."""

    def __init__(
        self,
        document: Document,
        loader: FragmentLoader,
        views: "ViewInitializer",
        routes: dict[str, Route] | None = None,
        history: NavigationHistory | None = None,
    ) -> None:
        self.document = document
        self.loader = loader
        self.views = views
        self.routes = routes if routes is not None else dict(DEFAULT_ROUTES)
        self.history = history or NavigationHistory()
        self.current_route: Route | None = None

    def resolve(self, path: str) -> Route:
        return self.routes.get(normalize_path(path), NOT_FOUND_ROUTE)

    async def navigate(self, path: str | None = None) -> Route:
        """
        Enter the route for ``path`` (the current history entry by default).

        The view initializer runs concurrently with the fragment fetch and
        waits on the document for its elements. A failed fetch cancels the
        view; view failures propagate to the caller.

        Raises:
            RoutingError: If the fragment cannot be fetched
        """
        route = self.resolve(path if path is not None else self.history.current)
        start_time = asyncio.get_running_loop().time()

        self.document.clear()
        view_task = asyncio.create_task(self.views.initialize(route.state))

        try:
            markup = await self.loader.load(route.fragment)
            self.document.mount(markup)
        except BaseException:
            view_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await view_task
            logger.error("route_load_failed", path=route.path, fragment=route.fragment)
            raise

        self.current_route = route
        await view_task

        log_performance(
            "route_entered",
            asyncio.get_running_loop().time() - start_time,
            path=route.path,
            state=route.state.value,
        )
        return route

    async def on_link_click(self, href: str) -> Route:
        """Push the link target onto the history and route to it."""
        self.history.push_state(href)
        logger.info("link_followed", path=self.history.current)
        return await self.navigate()

    async def on_popstate(self) -> Route:
        """Re-route the current history entry."""
        return await self.navigate()

    async def on_hashchange(self) -> Route:
        return await self.navigate()

    async def back(self) -> Route | None:
        if self.history.back() is None:
            return None
        return await self.on_popstate()
