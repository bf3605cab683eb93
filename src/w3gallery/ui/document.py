"""In-process model of the page's main content region.

The router mounts fragment markup into a Document; views look elements up by
id, change their text and attributes, append child markup and register event
handlers. ``render()`` serializes the fragment back to HTML with those changes
applied. Views that run before a fragment is mounted wait on ``wait_for``,
which resolves as soon as a fragment containing the id is mounted.
"""

import asyncio
import html
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any

from w3gallery.ui.handlers.error import ElementNotFoundError
from ..logging_config import get_logger

logger = get_logger(__name__)

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "param", "source", "track", "wbr"}
)


@dataclass
class Event:
    """An event dispatched to an element's handlers."""

    type: str
    target: "Element"
    data: dict[str, Any] = field(default_factory=dict)
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


EventHandler = Callable[[Event], Awaitable[None] | None]


class Element:
    """An element of the mounted fragment that carries an id."""

    def __init__(self, element_id: str, tag: str, attributes: dict[str, str | None]) -> None:
        self.id = element_id
        self.tag = tag
        self.attributes = attributes
        self.text: str | None = None
        self.children: list[str] = []
        self._listeners: dict[str, list[EventHandler]] = {}

    def __repr__(self) -> str:
        return f"Element(id={self.id!r}, tag={self.tag!r})"

    @property
    def value(self) -> str:
        return self.attributes.get("value") or ""

    @value.setter
    def value(self, value: str) -> None:
        self.attributes["value"] = value

    def set_attribute(self, name: str, value: str | None) -> None:
        self.attributes[name] = value

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def set_text(self, text: str) -> None:
        """Replace the element's content with plain text."""
        self.text = text
        self.children.clear()

    def append_html(self, markup: str) -> None:
        self.children.append(markup)

    def add_event_listener(self, event_type: str, handler: EventHandler) -> None:
        self._listeners.setdefault(event_type, []).append(handler)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    async def dispatch(self, event: Event) -> Event:
        """Run every handler registered for the event type, in registration order."""
        for handler in list(self._listeners.get(event.type, [])):
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        return event


class _ElementCollector(HTMLParser):
    """Collects every element that has an id attribute."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.elements: dict[str, Element] = {}

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = dict(attrs)
        element_id = attributes.get("id")
        if element_id and element_id not in self.elements:
            self.elements[element_id] = Element(element_id, tag, attributes)

    handle_startendtag = handle_starttag


class _Serializer(HTMLParser):
    """Re-emits fragment markup with element changes applied."""

    def __init__(self, elements: dict[str, Element]) -> None:
        super().__init__(convert_charrefs=False)
        self.elements = elements
        self.output: list[str] = []
        self._open: list[tuple[str, Element | None]] = []
        self._suppress_depth: int | None = None

    @property
    def _suppressed(self) -> bool:
        return self._suppress_depth is not None

    def _emit(self, text: str) -> None:
        if not self._suppressed:
            self.output.append(text)

    def _managed(self, attrs: list[tuple[str, str | None]]) -> Element | None:
        element_id = dict(attrs).get("id")
        if element_id is None:
            return None
        # Only the first element with a given id is managed, like getElementById
        return self.elements.pop(element_id, None)

    @staticmethod
    def _start_tag(tag: str, attributes: dict[str, str | None], self_closing: bool = False) -> str:
        parts = [f"<{tag}"]
        for name, value in attributes.items():
            if value is None:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{html.escape(value, quote=True)}"')
        parts.append(" />" if self_closing else ">")
        return "".join(parts)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = self._managed(attrs)
        if element is not None and not self._suppressed:
            self.output.append(self._start_tag(tag, element.attributes))
        else:
            self._emit(self.get_starttag_text() or "")

        if tag in VOID_ELEMENTS:
            return

        self._open.append((tag, element))
        if element is not None and element.text is not None and not self._suppressed:
            self.output.append(html.escape(element.text))
            self._suppress_depth = len(self._open)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = self._managed(attrs)
        if element is not None and not self._suppressed:
            self.output.append(self._start_tag(tag, element.attributes, self_closing=True))
        else:
            self._emit(self.get_starttag_text() or "")

    def handle_endtag(self, tag: str) -> None:
        if tag in VOID_ELEMENTS:
            return

        # Close until the matching open tag; stray end tags are dropped
        if not any(open_tag == tag for open_tag, _ in self._open):
            return

        while self._open:
            open_tag, element = self._open.pop()
            depth = len(self._open) + 1

            if self._suppress_depth == depth:
                self._suppress_depth = None
            if element is not None and not self._suppressed:
                self.output.extend(element.children)
            self._emit(f"</{open_tag}>")

            if open_tag == tag:
                break

    def handle_data(self, data: str) -> None:
        self._emit(data)

    def handle_entityref(self, name: str) -> None:
        self._emit(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self._emit(f"&#{name};")

    def handle_comment(self, data: str) -> None:
        self._emit(f"<!--{data}-->")

    def handle_decl(self, decl: str) -> None:
        self._emit(f"<!{decl}>")

    def handle_pi(self, data: str) -> None:
        self._emit(f"<?{data}>")

    def unknown_decl(self, data: str) -> None:
        self._emit(f"<![{data}]>")

    def close(self) -> None:
        super().close()
        while self._open:
            open_tag, element = self._open.pop()
            if self._suppress_depth == len(self._open) + 1:
                self._suppress_depth = None
            if element is not None and not self._suppressed:
                self.output.extend(element.children)
            self._emit(f"</{open_tag}>")


class Document:
    """The main content region: one mounted fragment and its elements."""

    def __init__(self) -> None:
        self.markup = ""
        self.elements: dict[str, Element] = {}
        self.mount_count = 0
        self._waiters: dict[str, list[asyncio.Future[Element]]] = {}

    def mount(self, markup: str) -> None:
        """Replace the region's markup and resolve waiters for the ids it contains."""
        collector = _ElementCollector()
        collector.feed(markup)
        collector.close()

        self.markup = markup
        self.elements = collector.elements
        self.mount_count += 1
        logger.debug("fragment_mounted", element_ids=sorted(self.elements), mount_count=self.mount_count)

        for element_id, element in self.elements.items():
            for waiter in self._waiters.pop(element_id, []):
                if not waiter.done():
                    waiter.set_result(element)

    def clear(self) -> None:
        """Empty the region so that waiters only see elements of the next mount."""
        self.markup = ""
        self.elements = {}

    def get_element_by_id(self, element_id: str) -> Element | None:
        return self.elements.get(element_id)

    def require(self, element_id: str) -> Element:
        """
        Look up an element of the mounted fragment.

        Raises:
            ElementNotFoundError: If the fragment has no such id
        """
        element = self.elements.get(element_id)
        if element is None:
            raise ElementNotFoundError(element_id)
        return element

    async def wait_for(self, element_id: str, timeout: float | None = None) -> Element:
        """
        Wait until a fragment containing ``element_id`` is mounted.

        Raises:
            TimeoutError: If ``timeout`` seconds pass first
        """
        element = self.elements.get(element_id)
        if element is not None:
            return element

        waiter: asyncio.Future[Element] = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(element_id, []).append(waiter)
        return await asyncio.wait_for(waiter, timeout)

    async def dispatch(self, element_id: str, event_type: str, **data: Any) -> Event:
        """
        Dispatch an event to an element's handlers.

        Handler exceptions propagate to the caller.
        """
        element = self.require(element_id)
        return await element.dispatch(Event(type=event_type, target=element, data=data))

    def render(self) -> str:
        """Serialize the mounted fragment with all element changes applied."""
        serializer = _Serializer(dict(self.elements))
        serializer.feed(self.markup)
        serializer.close()
        return "".join(serializer.output)
