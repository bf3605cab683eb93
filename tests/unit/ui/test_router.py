"""
Unit tests for the page router.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests

from w3gallery.ui.document import Document
from w3gallery.ui.handlers.error import RoutingError
from w3gallery.ui.router import (
    DEFAULT_ROUTES,
    NOT_FOUND_ROUTE,
    FragmentLoader,
    NavigationHistory,
    Route,
    Router,
    RouteState,
    normalize_path,
)


class StubViews:
    """Records the states the router initializes."""

    def __init__(self, document):
        self.document = document
        self.states = []

    async def initialize(self, state):
        self.states.append(state)


class TestNormalizePath:
    """Test cases for path normalization."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/", "/"),
            ("", "/"),
            ("login", "/login"),
            ("/login/", "/login"),
            ("/create?draft=1", "/create"),
            ("/#section", "/"),
            ("https://gallery.example.com/login", "/login"),
        ],
    )
    def test_normalize_path(self, path, expected):
        assert normalize_path(path) == expected


class TestFragmentLoader:
    """Test cases for fragment loading."""

    @pytest.mark.parametrize("route", list(DEFAULT_ROUTES.values()) + [NOT_FOUND_ROUTE])
    async def test_packaged_fragments_exist(self, route):
        markup = await FragmentLoader().load(route.fragment)
        assert markup.strip()

    async def test_missing_packaged_fragment(self):
        with pytest.raises(RoutingError) as exc_info:
            await FragmentLoader().load("/pages/missing.html")
        assert exc_info.value.code == "fragment_not_found"

    async def test_http_fragment(self):
        session = MagicMock()
        session.get.return_value.text = "<p>remote</p>"
        loader = FragmentLoader(base_url="https://gallery.example.com/", session=session, timeout=3)

        markup = await loader.load("/pages/index.html")

        assert markup == "<p>remote</p>"
        session.get.assert_called_once_with("https://gallery.example.com/pages/index.html", timeout=3)
        session.get.return_value.raise_for_status.assert_called_once_with()

    async def test_http_fragment_failure(self):
        session = MagicMock()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        loader = FragmentLoader(base_url="https://gallery.example.com", session=session)

        with pytest.raises(RoutingError, match="503"):
            await loader.load("/pages/index.html")

    async def test_http_fragment_is_not_cached(self):
        session = MagicMock()
        session.get.return_value.text = "<p></p>"
        loader = FragmentLoader(base_url="https://gallery.example.com", session=session)

        await loader.load("/pages/index.html")
        await loader.load("/pages/index.html")

        assert session.get.call_count == 2


class TestNavigationHistory:
    """Test cases for NavigationHistory."""

    def test_push_and_back(self):
        history = NavigationHistory("/")
        history.push_state("/login")
        history.push_state("/create")

        assert history.current == "/create"
        assert history.back() == "/login"
        assert history.back() == "/"
        assert history.back() is None

    def test_push_drops_forward_entries(self):
        history = NavigationHistory("/")
        history.push_state("/login")
        history.back()
        history.push_state("/create")

        assert history.entries == ["/", "/create"]
        assert history.current == "/create"


class TestRouter:
    """Test cases for Router."""

    def setup_method(self):
        self.document = Document()
        self.views = StubViews(self.document)
        self.router = Router(self.document, FragmentLoader(), self.views)

    def test_resolve(self):
        assert self.router.resolve("/").state is RouteState.HOME
        assert self.router.resolve("/login").state is RouteState.LOGIN
        assert self.router.resolve("/create/").state is RouteState.CREATE
        assert self.router.resolve("/nope") is NOT_FOUND_ROUTE

    async def test_unknown_path_renders_404_fragment(self):
        route = await self.router.navigate("/does-not-exist")

        assert route.state is RouteState.NOT_FOUND
        expected = await FragmentLoader().load("/pages/404.html")
        assert self.document.render() == expected
        assert self.views.states == [RouteState.NOT_FOUND]

    async def test_login_path_mounts_login_fragment(self):
        await self.router.navigate("/login")

        assert self.document.get_element_by_id("gallery-login") is not None
        assert self.document.get_element_by_id("floatingInput") is not None
        assert self.document.get_element_by_id("floatingPassword") is not None
        assert self.router.current_route.state is RouteState.LOGIN

    async def test_home_fragment_has_view_anchors(self):
        await self.router.navigate("/")

        for element_id in ["gallery-profile", "gallery-title", "gallery-bio", "gallery-album"]:
            assert self.document.get_element_by_id(element_id) is not None

    async def test_create_fragment_has_form_fields(self):
        await self.router.navigate("/create")

        for element_id in ["gallery-create", "createPhoto", "createCaption"]:
            assert self.document.get_element_by_id(element_id) is not None

    async def test_navigate_uses_current_history_entry(self):
        router = Router(self.document, FragmentLoader(), self.views, history=NavigationHistory("/create"))

        route = await router.navigate()

        assert route.state is RouteState.CREATE

    async def test_link_click_pushes_history(self):
        route = await self.router.on_link_click("/login")

        assert route.state is RouteState.LOGIN
        assert self.router.history.entries == ["/", "/login"]

    async def test_popstate_reroutes_current_entry(self):
        await self.router.on_link_click("/login")
        self.router.history.back()

        route = await self.router.on_popstate()

        assert route.state is RouteState.HOME
        assert self.views.states == [RouteState.LOGIN, RouteState.HOME]

    async def test_hashchange_reroutes(self):
        await self.router.navigate()
        await self.router.on_hashchange()

        assert self.views.states == [RouteState.HOME, RouteState.HOME]
        assert self.document.mount_count == 2

    async def test_back(self):
        await self.router.on_link_click("/create")

        route = await self.router.back()

        assert route.state is RouteState.HOME
        assert await self.router.back() is None

    async def test_view_waiting_on_an_element_runs_after_mount(self):
        seen = []

        async def initialize(state):
            element = await self.document.wait_for("gallery-login", timeout=1)
            seen.append(element.id)

        self.views.initialize = initialize

        await self.router.navigate("/login")

        assert seen == ["gallery-login"]

    async def test_view_does_not_see_previous_fragment(self):
        await self.router.navigate("/login")
        mounts_seen = []

        async def initialize(state):
            await self.document.wait_for("gallery-profile", timeout=1)
            mounts_seen.append(self.document.mount_count)

        self.views.initialize = initialize
        await self.router.navigate("/")

        assert mounts_seen == [2]

    async def test_fetch_failure_cancels_view(self):
        loader = MagicMock()
        cancelled = []

        async def failing_load(fragment):
            await asyncio.sleep(0)
            raise RoutingError("fragment unavailable")

        loader.load = failing_load

        async def initialize(state):
            try:
                await self.document.wait_for("gallery-profile")
            except asyncio.CancelledError:
                cancelled.append(state)
                raise

        self.views.initialize = initialize
        router = Router(self.document, loader, self.views)

        with pytest.raises(RoutingError):
            await router.navigate("/")

        assert cancelled == [RouteState.HOME]
        assert router.current_route is None

    async def test_view_errors_propagate(self):
        async def initialize(state):
            raise ValueError("view failed")

        self.views.initialize = initialize

        with pytest.raises(ValueError, match="view failed"):
            await self.router.navigate("/")

    async def test_every_transition_refetches(self):
        loader = MagicMock()
        loader.load = AsyncMock(return_value='<div id="gallery-profile"></div>')
        router = Router(self.document, loader, self.views)

        await router.navigate("/")
        await router.navigate("/")

        assert loader.load.await_count == 2

    async def test_custom_routes(self):
        loader = MagicMock()
        loader.load = AsyncMock(return_value="<p>about</p>")
        routes = dict(DEFAULT_ROUTES)
        routes["/about"] = Route("/about", "/pages/about.html", RouteState.NOT_FOUND)
        router = Router(self.document, loader, self.views, routes=routes)

        await router.navigate("/about")

        loader.load.assert_awaited_once_with("/pages/about.html")
