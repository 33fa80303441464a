"""Tests for the stream view builder and StreamNavigator."""

from __future__ import annotations

from datetime import date

import pytest

from scrbl.models import EMPTY_DAY_PLACEHOLDER, DayDocument
from scrbl.render import centered_date_banner
from scrbl.stream import StreamNavigator, build_stream_view, stream_render_width


class TestBuildStreamView:
    def test_layout_banner_body_separator(self, make_days, plain_render):
        view = build_stream_view(make_days(3), 80, plain_render)

        assert len(view) == 8
        assert view.day_start_line == (0, 3, 6)
        assert view.line_to_day == (0, 0, 0, 1, 1, 1, 2, 2)
        assert view.lines[0] == centered_date_banner(date(2025, 1, 1), 72)
        assert view.lines[1] == "notes for 2025-01-01"
        assert view.lines[2] == ""
        # No separator after the last day
        assert view.lines[-1] == "notes for 2025-01-03"

    def test_empty_day_shows_placeholder(self, plain_render):
        view = build_stream_view([DayDocument(date(2025, 1, 1), "")], 80, plain_render)
        assert view.lines == (centered_date_banner(date(2025, 1, 1), 72), EMPTY_DAY_PLACEHOLDER)

    def test_header_only_day_shows_placeholder(self, plain_render):
        doc = DayDocument(date(2025, 1, 1), "# 2025.01.01\n\n")
        view = build_stream_view([doc], 80, plain_render)
        assert view.lines[1] == EMPTY_DAY_PLACEHOLDER

    def test_no_days(self, plain_render):
        view = build_stream_view([], 80, plain_render)
        assert len(view) == 0
        assert view.day_start_line == ()

    def test_rebuild_is_idempotent(self, make_days):
        days = make_days(4)
        assert build_stream_view(days, 60) == build_stream_view(days, 60)

    def test_renderer_receives_narrowed_width(self, make_days):
        widths = []

        def _render(text: str, width: int) -> str:
            widths.append(width)
            return text

        build_stream_view(make_days(2), 100, _render)
        assert widths == [92, 92]

    @pytest.mark.parametrize(
        ("width", "expected"),
        [(10, 24), (32, 24), (33, 25), (100, 92)],
    )
    def test_stream_render_width(self, width, expected):
        assert stream_render_width(width) == expected


@pytest.fixture
def nav(make_days, plain_render) -> StreamNavigator:
    navigator = StreamNavigator(width=80, height=4, render=plain_render)
    navigator.apply_page(make_days(3), has_more=False)
    return navigator


class TestNavigatorMovement:
    def test_initial_page_focuses_newest_day(self, nav):
        assert nav.focused_day == 2
        assert nav.focused_date == date(2025, 1, 3)
        assert nav.guide == 6
        assert nav.offset <= nav.guide < nav.offset + nav.height

    def test_visible_lines_is_viewport_slice(self, nav):
        assert nav.visible_lines() == nav.view.lines[nav.offset : nav.offset + 4]

    def test_move_guide_clamps(self, nav):
        nav.move_guide(100)
        assert nav.guide == len(nav.view) - 1
        nav.move_guide(-100)
        assert nav.guide == 0
        assert nav.offset == 0
        assert nav.focused_day == 0

    def test_scrolls_minimally(self, nav):
        nav.top()
        nav.move_guide(3)
        assert nav.offset == 0
        nav.move_guide(1)
        assert nav.guide == 4
        assert nav.offset == 1

    def test_prev_day_goes_to_own_banner_first(self, nav):
        nav.bottom()
        assert nav.guide == 7
        nav.prev_day()
        assert nav.guide == 6
        assert nav.focused_day == 2
        nav.prev_day()
        assert nav.guide == 3
        assert nav.focused_day == 1

    def test_prev_day_at_first_banner_stays(self, nav):
        nav.top()
        nav.prev_day()
        assert nav.guide == 0

    def test_next_day(self, nav):
        nav.top()
        nav.next_day()
        assert nav.guide == 3
        assert nav.focused_date == date(2025, 1, 2)

    def test_page_size_is_half_height(self, nav):
        assert nav.page_size == 2

    def test_empty_navigator_is_inert(self, plain_render):
        navigator = StreamNavigator(render=plain_render)
        navigator.apply_page([], has_more=False)
        navigator.move_guide(3)
        navigator.prev_day()
        navigator.next_day()
        assert navigator.focused_day == -1
        assert navigator.focused_date is None
        assert navigator.visible_lines() == ()


class TestNavigatorResize:
    def test_height_change_keeps_view(self, nav):
        view = nav.view
        nav.resize(80, 2)
        assert nav.view is view
        assert nav.offset <= nav.guide < nav.offset + 2

    def test_width_change_rebuilds_banners(self, nav):
        nav.resize(40, 4)
        assert nav.view.lines[0] == centered_date_banner(date(2025, 1, 1), 32)
        assert nav.focused_day == 2


class TestNavigatorPagination:
    def test_request_more_requires_guide_at_top(self, make_days, plain_render):
        navigator = StreamNavigator(width=80, height=4, render=plain_render)
        navigator.apply_page(make_days(3), has_more=True)
        assert navigator.request_more() is None
        navigator.top()
        assert navigator.request_more() == date(2025, 1, 1)
        assert navigator.load.limit == 120
        assert navigator.load.loading is True

    def test_request_more_needs_more_days(self, nav):
        nav.top()
        assert nav.request_more() is None

    def test_request_more_while_loading_is_ignored(self, make_days, plain_render):
        navigator = StreamNavigator(width=80, height=4, render=plain_render)
        navigator.apply_page(make_days(3), has_more=True)
        navigator.top()
        assert navigator.request_more() is not None
        assert navigator.request_more() is None
        assert navigator.load.limit == 120

    def test_older_page_keeps_focus_on_anchor(self, make_days, plain_render):
        navigator = StreamNavigator(width=80, height=4, render=plain_render)
        navigator.apply_page(make_days(3), has_more=True)
        navigator.top()
        anchor = navigator.request_more()
        older = make_days(5, start=date(2024, 12, 30))

        assert navigator.apply_page(older, has_more=False, anchor=anchor, seq=navigator.request_seq)
        assert navigator.focused_date == date(2025, 1, 1)
        assert navigator.guide == navigator.view.day_start_line[2]
        assert navigator.load.loading is False
        assert navigator.load.has_more is False

    def test_missing_anchor_keeps_index_in_range(self, nav, make_days):
        days = make_days(2, start=date(2024, 6, 1))
        assert nav.apply_page(days, has_more=False, anchor=date(2030, 1, 1))
        assert nav.focused_day == 1

    def test_stale_result_is_dropped(self, nav, make_days):
        first = nav.begin_reload()
        second = nav.begin_reload()
        assert not nav.apply_page(make_days(1), has_more=False, seq=first)
        assert len(nav.days) == 3
        assert nav.load.loading is True
        assert nav.apply_page(make_days(1), has_more=False, seq=second)
        assert len(nav.days) == 1

    def test_fail_page_keeps_days(self, nav):
        seq = nav.begin_reload()
        assert nav.fail_page("disk on fire", seq=seq)
        assert nav.error == "disk on fire"
        assert nav.load.loading is False
        assert len(nav.days) == 3

    def test_stale_failure_is_dropped(self, nav):
        stale = nav.begin_reload()
        nav.begin_reload()
        assert not nav.fail_page("late", seq=stale)
        assert nav.error is None
