from decimal import Decimal

import pytest

from core.intent import IntentKind
from services.confirmation_gate import (
    ConfirmationDecision,
    ConfirmationGate,
    classify_confirmation_text,
)
from tests.helpers import FakeClock, intent


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def make_gate(clock=None):
    return ConfirmationGate(clock=clock or FakeClock())


def big_expense(amount=3_500_000):
    return intent("create_expense", amount=amount, category="Tecnología", description="Computador")


# ---------------------------------------------------------------------
# TESTS: THRESHOLD
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "amount, expected",
    [
        (None, False),
        (Decimal("50000"), False),
        (Decimal("3000000"), False),
        (Decimal("3000000.01"), True),
        (Decimal("3500000"), True),
    ],
)
def test_requires_confirmation_is_strictly_above_threshold(amount, expected):
    assert make_gate().requires_confirmation(amount) is expected


def test_batch_threshold_ignores_non_confirmable_kinds():
    gate = make_gate()
    intents = [
        intent("validate_expense", amount=9_000_000, category="Viajes"),
        intent("create_rule", amount=5_000_000, category="Comida"),
        intent("create_expense", amount=45_000, category="Comida"),
    ]

    assert gate.batch_requires_confirmation(intents) is False

    intents.append(intent("create_income", amount=4_500_000, category="Salario"))
    assert gate.batch_requires_confirmation(intents) is True


# ---------------------------------------------------------------------
# TESTS: PENDING SLOT
# ---------------------------------------------------------------------

def test_single_prompt_mentions_amount_and_expiry():
    gate = make_gate()

    prompt = gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    assert "⚠️ *Confirmación requerida*" in prompt
    assert "💸 *$3,500,000*" in prompt
    assert "• Categoría: Tecnología" in prompt
    assert "expira en 60 segundos" in prompt
    assert gate.pending_count() == 1


def test_new_pending_replaces_previous_one():
    gate = make_gate()
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    gate.create_pending_batch(
        [big_expense(4_000_000), intent("create_expense", amount=10_000)], "u1", "u1"
    )

    record = gate.peek("u1")
    assert record.is_batch
    assert record.size == 2
    assert gate.pending_count() == 1


def test_confirm_hands_out_record_once():
    gate = make_gate()
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "user-1", "key-1")

    first = gate.confirm("key-1")
    second = gate.confirm("key-1")

    assert first is not None
    assert first.user_id == "user-1"
    assert first.intent.amount == Decimal("3500000")
    assert second is None


def test_cancel_removes_pending():
    gate = make_gate()
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    assert gate.cancel("u1") is True
    assert gate.cancel("u1") is False
    assert gate.peek("u1") is None


def test_pending_is_per_user():
    gate = make_gate()
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    assert gate.confirm("u2") is None
    assert gate.peek("u1") is not None


# ---------------------------------------------------------------------
# TESTS: EXPIRY
# ---------------------------------------------------------------------

def test_confirm_after_window_returns_nothing():
    clock = FakeClock()
    gate = make_gate(clock)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    clock.advance(seconds=61)

    assert gate.confirm("u1") is None
    assert gate.pending_count() == 0


def test_confirm_exactly_at_window_edge_still_works():
    clock = FakeClock()
    gate = make_gate(clock)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    clock.advance(seconds=60)

    assert gate.confirm("u1") is not None


def test_discard_expired_reports_whether_something_expired():
    clock = FakeClock()
    gate = make_gate(clock)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "u1", "u1")

    assert gate.discard_expired("u1") is False
    clock.advance(minutes=2)
    assert gate.discard_expired("u1") is True
    assert gate.discard_expired("u1") is False


def test_cleanup_expired_sweeps_only_stale_records():
    clock = FakeClock()
    gate = make_gate(clock)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "old", "old")
    clock.advance(seconds=45)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "new", "new")
    clock.advance(seconds=30)

    assert gate.cleanup_expired() == 1
    assert gate.peek("old") is None
    assert gate.peek("new") is not None


def test_pending_count_skips_expired_records_before_sweep():
    clock = FakeClock()
    gate = make_gate(clock)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "old", "old")
    clock.advance(seconds=45)
    gate.create_pending_single(IntentKind.CREATE_EXPENSE, big_expense(), "new", "new")

    assert gate.pending_count() == 2
    clock.advance(seconds=30)
    assert gate.pending_count() == 1
    clock.advance(minutes=2)
    assert gate.pending_count() == 0


# ---------------------------------------------------------------------
# TESTS: YES / NO VOCABULARY
# ---------------------------------------------------------------------

@pytest.mark.parametrize("text", ["sí", "Si", "¡Sí!", "confirmar", "OK.", "dale", "  hazlo  "])
def test_affirmative_answers(text):
    assert classify_confirmation_text(text) is ConfirmationDecision.CONFIRM


@pytest.mark.parametrize("text", ["no", "No.", "cancelar", "olvídalo", "mejor no"])
def test_negative_answers(text):
    assert classify_confirmation_text(text) is ConfirmationDecision.CANCEL


@pytest.mark.parametrize(
    "text", ["", None, "sí, pero de 2 millones", "no sé", "¿cuál es mi saldo?", "noo"]
)
def test_anything_else_is_unclear(text):
    assert classify_confirmation_text(text) is ConfirmationDecision.UNCLEAR
