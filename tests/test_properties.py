"""Property-based tests using Hypothesis.

Verifies navigation and formatting invariants across the stream, render,
key translation and composer buffer helpers. Each test runs 50 examples in
CI, 200 in dev.

Run:
    pytest tests/test_properties.py -v
    pytest tests/test_properties.py -v --hypothesis-seed=0  # reproducible
"""

from __future__ import annotations

from datetime import date, timedelta

import hypothesis.strategies as st
from hypothesis import given, settings

from scrbl.composer import split_content
from scrbl.keys import key_to_nvim
from scrbl.models import DayDocument
from scrbl.render import centered_date_banner, format_day_label
from scrbl.stream import StreamNavigator, build_stream_view

# ── Hypothesis profiles ─────────────────────────────────────────────
settings.register_profile("ci", max_examples=50, deadline=None)
settings.register_profile("dev", max_examples=200, deadline=None)
settings.load_profile("ci")


def _plain(text: str, width: int) -> str:
    return text


body_text = st.text(alphabet="abc xyz\n#-*", max_size=60)


@st.composite
def day_lists(draw) -> list[DayDocument]:
    bodies = draw(st.lists(body_text, min_size=1, max_size=8))
    start = date(2025, 1, 1)
    return [
        DayDocument(day=start + timedelta(days=offset), content=body)
        for offset, body in enumerate(bodies)
    ]


moves = st.lists(
    st.one_of(
        st.tuples(st.just("move"), st.integers(-40, 40)),
        st.tuples(st.sampled_from(["top", "bottom", "prev", "next"]), st.just(0)),
    ),
    max_size=30,
)


@given(days=day_lists(), width=st.integers(1, 200))
def test_view_is_consistent(days, width):
    view = build_stream_view(days, width, _plain)
    assert view == build_stream_view(days, width, _plain)
    assert len(view.line_to_day) == len(view.lines)
    assert len(view.day_start_line) == len(days)
    for index, start in enumerate(view.day_start_line):
        assert view.line_to_day[start] == index
    # Line ownership is non-decreasing: days never interleave
    assert list(view.line_to_day) == sorted(view.line_to_day)


@given(days=day_lists(), height=st.integers(1, 30), steps=moves)
def test_guide_stays_in_bounds_and_visible(days, height, steps):
    nav = StreamNavigator(width=60, height=height, render=_plain)
    nav.apply_page(days, has_more=False)
    for name, delta in steps:
        if name == "move":
            nav.move_guide(delta)
        elif name == "top":
            nav.top()
        elif name == "bottom":
            nav.bottom()
        elif name == "prev":
            nav.prev_day()
        else:
            nav.next_day()

        assert 0 <= nav.guide < len(nav.view)
        assert nav.offset <= nav.guide < nav.offset + height
        assert 0 <= nav.offset <= max(0, len(nav.view) - height)
        assert nav.focused_day == nav.view.line_to_day[nav.guide]


@given(
    day=st.dates(min_value=date(1900, 1, 1), max_value=date(2999, 12, 31)),
    width=st.integers(16, 300),
)
def test_banner_fills_width_and_is_centered(day, width):
    banner = centered_date_banner(day, width)
    label = format_day_label(day)
    assert len(banner) == width
    left, _, right = banner.partition(f" {label} ")
    assert set(left) == {"-"}
    assert set(right) == {"-"}
    assert abs(len(left) - len(right)) <= 1


@given(character=st.characters().filter(lambda c: c.isprintable() and c != "<"))
def test_printable_characters_pass_through(character):
    assert key_to_nvim("unbound-key", character) == character


@given(text=st.text(alphabet=st.characters(exclude_characters="\r")))
def test_split_content_inverts_line_join(text):
    assert "\n".join(split_content(text + "\n")) == text
