from datetime import timedelta

from models.conversation import Role
from services.conversation_window import ConversationWindow
from tests.helpers import FakeClock


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def make_window(clock=None, max_messages=10):
    return ConversationWindow(
        max_messages=max_messages,
        timeout=timedelta(minutes=30),
        clock=clock or FakeClock(),
    )


# ---------------------------------------------------------------------
# TESTS: BOUNDED HISTORY
# ---------------------------------------------------------------------

def test_oldest_entries_are_evicted_first():
    window = make_window()
    for i in range(12):
        window.append("u1", Role.USER, f"m{i}")

    entries = window.snapshot("u1")

    assert window.size("u1") == 10
    assert [e.content for e in entries] == [f"m{i}" for i in range(2, 12)]


def test_snapshot_is_oldest_first_with_roles():
    window = make_window()
    window.append("u1", Role.USER, "hola")
    window.append("u1", Role.ASSISTANT, "¡Hola!")

    entries = window.snapshot("u1")

    assert [(e.role, e.content) for e in entries] == [
        (Role.USER, "hola"),
        (Role.ASSISTANT, "¡Hola!"),
    ]


def test_snapshot_is_a_copy():
    window = make_window()
    window.append("u1", Role.USER, "hola")

    entries = window.snapshot("u1")
    entries.clear()

    assert window.size("u1") == 1


def test_windows_are_isolated_per_user():
    window = make_window()
    window.append("u1", Role.USER, "hola")

    assert window.snapshot("u2") == []
    assert window.size("u1") == 1


# ---------------------------------------------------------------------
# TESTS: INACTIVITY
# ---------------------------------------------------------------------

def test_window_is_wiped_after_timeout():
    clock = FakeClock()
    window = make_window(clock)
    window.append("u1", Role.USER, "hola")

    clock.advance(minutes=30, seconds=1)

    assert window.snapshot("u1") == []


def test_window_survives_exactly_the_timeout():
    clock = FakeClock()
    window = make_window(clock)
    window.append("u1", Role.USER, "hola")

    clock.advance(minutes=30)

    assert window.size("u1") == 1


def test_append_after_timeout_starts_fresh():
    clock = FakeClock()
    window = make_window(clock)
    window.append("u1", Role.USER, "viejo")

    clock.advance(hours=1)
    window.append("u1", Role.USER, "nuevo")

    assert [e.content for e in window.snapshot("u1")] == ["nuevo"]


def test_cleanup_inactive_only_clears_stale_users():
    clock = FakeClock()
    window = make_window(clock)
    window.append("old", Role.USER, "hola")
    clock.advance(minutes=20)
    window.append("fresh", Role.USER, "hola")
    clock.advance(minutes=15)

    removed = window.cleanup_inactive()

    assert removed == 1
    assert window.size("old") == 0
    assert window.size("fresh") == 1


def test_clear_forgets_user():
    window = make_window()
    window.append("u1", Role.USER, "hola")

    window.clear("u1")

    assert window.size("u1") == 0
