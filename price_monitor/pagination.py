"""Paged views over a result list.

A view is bound to the identity of the rendered message (``presentation_id``)
and lives in a TTL store; once it expires, navigation on that message is
ignored.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, List, Optional, Sequence, TypeVar, Union

from .cache import TTLStore
from .config import CACHE_TTL_SECONDS, PAGE_SIZE
from .utils import MonitorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Above this many pages the button row gives way to a selector.
MAX_BUTTON_PAGES = 3

BUTTON_ID_PREFIX = "page_"
SELECTOR_ID = "select_page"


class PageIndexError(MonitorError, IndexError):
    """Navigation named a page outside [0, page_count - 1]."""


def chunk(items: Sequence[T], page_size: int = PAGE_SIZE) -> List[List[T]]:
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return [list(items[i:i + page_size]) for i in range(0, len(items), page_size)]


@dataclass(frozen=True)
class PageButton:
    custom_id: str
    label: str
    active: bool


@dataclass(frozen=True)
class ButtonRow:
    buttons: List[PageButton]


@dataclass(frozen=True)
class SelectOption:
    label: str
    description: str
    value: str


@dataclass(frozen=True)
class PageSelector:
    custom_id: str
    placeholder: str
    options: List[SelectOption]


ControlDescriptor = Union[ButtonRow, PageSelector]


def build_controls(page_index: int, page_count: int) -> ControlDescriptor:
    """Buttons for a handful of pages, a selector beyond that."""
    if page_count <= MAX_BUTTON_PAGES:
        return ButtonRow(buttons=[
            PageButton(custom_id=f"{BUTTON_ID_PREFIX}{i}", label=f"{i + 1}", active=(i == page_index))
            for i in range(page_count)
        ])
    return PageSelector(
        custom_id=SELECTOR_ID,
        placeholder=f"Select Page (1-{page_count})",
        options=[
            SelectOption(
                label=f"Page {i + 1}",
                description=f"View page {i + 1} of product status",
                value=f"{i}",
            )
            for i in range(page_count)
        ],
    )


@dataclass(frozen=True)
class NavigationEvent:
    page_index: int

    @classmethod
    def from_component(cls, custom_id: str, values: Sequence[str] = ()) -> Optional["NavigationEvent"]:
        """Decode a button press (``page_<i>``) or a selector choice."""
        if custom_id.startswith(BUTTON_ID_PREFIX):
            return cls(page_index=int(custom_id[len(BUTTON_ID_PREFIX):]))
        if custom_id == SELECTOR_ID and values:
            return cls(page_index=int(values[0]))
        return None


@dataclass
class PageView(Generic[T]):
    pages: List[List[T]]
    presentation_id: Hashable
    current_page: int = 0

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(frozen=True)
class RenderedPage(Generic[T]):
    items: List[T]
    page_index: int
    page_count: int
    content: str
    controls: ControlDescriptor = field(repr=False)


PageRenderer = Callable[[Sequence, int, int], str]


def _plain_renderer(items: Sequence, page_index: int, page_count: int) -> str:
    lines = "\n".join(str(i) for i in items)
    return f"Page {page_index + 1}/{page_count}\n{lines}"


class PageViewRegistry:
    """Page views keyed by presentation id, abandoned once the TTL passes."""

    def __init__(
        self,
        *,
        renderer: PageRenderer = _plain_renderer,
        page_size: int = PAGE_SIZE,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.renderer = renderer
        self.page_size = page_size
        self._views: TTLStore[Hashable, PageView] = TTLStore(ttl=ttl, clock=clock)

    @property
    def store(self) -> TTLStore[Hashable, PageView]:
        return self._views

    def _render(self, view: PageView) -> RenderedPage:
        items = view.pages[view.current_page]
        return RenderedPage(
            items=items,
            page_index=view.current_page,
            page_count=view.page_count,
            content=self.renderer(items, view.current_page, view.page_count),
            controls=build_controls(view.current_page, view.page_count),
        )

    def open(self, presentation_id: Hashable, results: Sequence) -> Optional[RenderedPage]:
        """Bind a new view to `presentation_id` and render its first page.

        Returns None for an empty result list; no view is stored then.
        """
        pages = chunk(results, self.page_size)
        if not pages:
            return None
        view = PageView(pages=pages, presentation_id=presentation_id)
        self._views.set(presentation_id, view)
        return self._render(view)

    def rebind(self, old_id: Hashable, new_id: Hashable) -> None:
        """Move a view when the presentation layer assigns its final identity."""
        view = self._views.get(old_id)
        if view is None:
            return
        self._views.delete(old_id)
        view.presentation_id = new_id
        self._views.set(new_id, view)

    def navigate(self, presentation_id: Hashable, event: NavigationEvent) -> Optional[RenderedPage]:
        """Switch the bound view to `event.page_index`; None if the view is gone."""
        view = self._views.get(presentation_id)
        if view is None:
            logger.debug("Navigation for unknown or expired view %r ignored", presentation_id)
            return None
        if not 0 <= event.page_index < view.page_count:
            raise PageIndexError(
                f"Page {event.page_index} out of range for {view.page_count} pages"
            )
        view.current_page = event.page_index
        self._views.set(presentation_id, view)
        return self._render(view)
