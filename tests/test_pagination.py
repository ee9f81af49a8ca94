"""pagination module unit tests."""

import pytest

from price_monitor.pagination import (
    ButtonRow,
    NavigationEvent,
    PageIndexError,
    PageSelector,
    PageViewRegistry,
    build_controls,
    chunk,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestChunk:
    """chunk tests."""

    def test_twelve_by_five(self):
        assert chunk(list(range(1, 13)), 5) == [
            [1, 2, 3, 4, 5],
            [6, 7, 8, 9, 10],
            [11, 12],
        ]

    def test_exact_multiple(self):
        assert chunk([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_empty(self):
        assert chunk([], 5) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestBuildControls:
    """build_controls tests."""

    def test_buttons_up_to_three_pages(self):
        controls = build_controls(1, 3)

        assert isinstance(controls, ButtonRow)
        assert [b.custom_id for b in controls.buttons] == ["page_0", "page_1", "page_2"]
        assert [b.label for b in controls.buttons] == ["1", "2", "3"]
        assert [b.active for b in controls.buttons] == [False, True, False]

    def test_selector_beyond_three_pages(self):
        controls = build_controls(0, 4)

        assert isinstance(controls, PageSelector)
        assert controls.custom_id == "select_page"
        assert controls.placeholder == "Select Page (1-4)"
        assert [o.value for o in controls.options] == ["0", "1", "2", "3"]
        assert controls.options[3].label == "Page 4"

    @pytest.mark.parametrize("page_count", [1, 2, 3, 4, 9])
    def test_indices_always_in_range(self, page_count):
        controls = build_controls(0, page_count)
        if isinstance(controls, ButtonRow):
            indices = [NavigationEvent.from_component(b.custom_id).page_index for b in controls.buttons]
        else:
            indices = [
                NavigationEvent.from_component(controls.custom_id, [o.value]).page_index
                for o in controls.options
            ]
        assert indices == list(range(page_count))


class TestNavigationEvent:
    """NavigationEvent.from_component tests."""

    def test_button(self):
        assert NavigationEvent.from_component("page_2") == NavigationEvent(page_index=2)

    def test_selector(self):
        assert NavigationEvent.from_component("select_page", ["5"]) == NavigationEvent(page_index=5)

    def test_unrelated_component(self):
        assert NavigationEvent.from_component("confirm_add") is None
        assert NavigationEvent.from_component("select_page", []) is None


class TestPageViewRegistry:
    """PageViewRegistry tests."""

    def _registry(self, clock=None):
        return PageViewRegistry(
            renderer=lambda items, i, n: f"{i + 1}/{n}: {items}",
            page_size=5,
            ttl=300,
            clock=clock or FakeClock(),
        )

    def test_open_renders_first_page(self):
        rendered = self._registry().open("msg-1", list(range(1, 13)))

        assert rendered.items == [1, 2, 3, 4, 5]
        assert rendered.page_index == 0
        assert rendered.page_count == 3
        assert rendered.content == "1/3: [1, 2, 3, 4, 5]"
        assert isinstance(rendered.controls, ButtonRow)

    def test_open_empty(self):
        registry = self._registry()
        assert registry.open("msg-1", []) is None
        assert len(registry.store) == 0

    def test_navigate(self):
        registry = self._registry()
        registry.open("msg-1", list(range(1, 13)))

        rendered = registry.navigate("msg-1", NavigationEvent(page_index=2))

        assert rendered.items == [11, 12]
        assert rendered.controls.buttons[2].active is True

    def test_views_are_independent(self):
        registry = self._registry()
        registry.open("a", list(range(1, 13)))
        registry.open("b", list(range(100, 130)))

        registry.navigate("a", NavigationEvent(page_index=1))
        rendered = registry.navigate("b", NavigationEvent(page_index=5))

        assert rendered.items == [125, 126, 127, 128, 129]
        assert isinstance(rendered.controls, PageSelector)

    def test_out_of_range_is_contract_violation(self):
        registry = self._registry()
        registry.open("msg-1", list(range(1, 13)))

        with pytest.raises(PageIndexError):
            registry.navigate("msg-1", NavigationEvent(page_index=3))

    def test_expired_view_ignored(self):
        clock = FakeClock()
        registry = self._registry(clock)
        registry.open("msg-1", [1, 2, 3])

        clock.now += 301
        assert registry.navigate("msg-1", NavigationEvent(page_index=0)) is None

    def test_unknown_view_ignored(self):
        assert self._registry().navigate("nope", NavigationEvent(page_index=0)) is None

    def test_rebind(self):
        registry = self._registry()
        registry.open("local", list(range(1, 8)))

        registry.rebind("local", "discord-123")

        assert registry.navigate("local", NavigationEvent(page_index=1)) is None
        assert registry.navigate("discord-123", NavigationEvent(page_index=1)).items == [6, 7]
