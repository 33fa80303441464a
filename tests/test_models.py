"""Tests for scrbl data models."""

from __future__ import annotations

import threading
from datetime import date

import pytest

from scrbl.models import (
    ComposeKind,
    ComposerRequests,
    ComposeSnapshot,
    ComposeTarget,
    PendingRequests,
    StreamView,
    UserConfig,
)


class TestPendingRequests:
    def test_take_returns_and_clears(self):
        pending = PendingRequests()
        pending.mark_save()
        assert pending.take() == ComposerRequests(save=True, quit=False, quit_after_save=False)
        assert pending.take() == ComposerRequests()

    def test_write_quit_sets_both_flags(self):
        pending = PendingRequests()
        pending.mark_save(quit_after=True)
        requests = pending.take()
        assert requests.save
        assert requests.quit_after_save
        assert not requests.quit

    def test_quit(self):
        pending = PendingRequests()
        pending.mark_quit()
        assert pending.take() == ComposerRequests(quit=True)

    def test_clear(self):
        pending = PendingRequests()
        pending.mark_save()
        pending.mark_quit()
        pending.clear()
        assert not pending.take().any()

    def test_concurrent_writers_are_not_lost(self):
        pending = PendingRequests()
        threads = [threading.Thread(target=pending.mark_save) for _ in range(8)]
        threads.append(threading.Thread(target=pending.mark_quit))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert pending.take() == ComposerRequests(save=True, quit=True)


class TestComposerRequests:
    def test_any(self):
        assert not ComposerRequests().any()
        assert ComposerRequests(save=True).any()
        assert ComposerRequests(quit=True).any()
        assert ComposerRequests(quit_after_save=True).any()


class TestComposeSnapshot:
    @pytest.mark.parametrize(
        ("mode", "label"),
        [
            ("n", "NORMAL"),
            ("no", "NORMAL"),
            ("i", "INSERT"),
            ("ic", "INSERT"),
            ("v", "VISUAL"),
            ("V", "V-LINE"),
            ("c", "COMMAND"),
            ("Rv", "REPLACE"),
            ("x", "X"),
            ("", ""),
        ],
    )
    def test_mode_label(self, mode, label):
        assert ComposeSnapshot(mode=mode).mode_label == label

    def test_zero_value_is_empty(self):
        assert ComposeSnapshot().is_empty
        assert not ComposeSnapshot(text="a").is_empty
        assert not ComposeSnapshot(mode="n").is_empty


def test_stream_view_len():
    assert len(StreamView()) == 0
    assert len(StreamView(lines=("a", "b"), line_to_day=(0, 0), day_start_line=(0,))) == 2


def test_compose_target_is_hashable():
    target = ComposeTarget(ComposeKind.EDIT, date(2025, 1, 1))
    assert target == ComposeTarget(ComposeKind.EDIT, date(2025, 1, 1))
    assert len({target, ComposeTarget(ComposeKind.NEW, date(2025, 1, 1))}) == 2


def test_sync_enabled_follows_server_url():
    assert not UserConfig().sync_enabled
    assert UserConfig(server_url="https://notes.example").sync_enabled
