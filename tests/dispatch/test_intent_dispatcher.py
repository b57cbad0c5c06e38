import asyncio

from core.intent import IntentKind
from executors.base import BaseExecutor
from executors.conversation import ConversationExecutor
from executors.transaction import TransactionExecutor
from services.confirmation_gate import ConfirmationGate
from services.intent_dispatcher import IntentDispatcher
from services.response_formatter import DEFAULT_GREETING
from tests.helpers import intent


class ExplodingExecutor(BaseExecutor):
    kinds = (IntentKind.GET_BALANCE,)

    async def execute(self, user_id, intent):
        raise RuntimeError("boom")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def make_dispatcher(backend, clock, executors=None):
    gate = ConfirmationGate(clock=clock)
    return IntentDispatcher(backend, gate, executors), gate


# ---------------------------------------------------------------------
# TESTS: SINGLE INTENT
# ---------------------------------------------------------------------

def test_unknown_kind_falls_back_to_conversation(backend, clock):
    dispatcher, _ = make_dispatcher(backend, clock)

    result = asyncio.run(dispatcher.execute_one("u1", "u1", intent("bailar_salsa")))

    assert result.message == DEFAULT_GREETING
    assert backend.calls == []


def test_question_returns_classifier_answer(backend, clock):
    dispatcher, _ = make_dispatcher(backend, clock)

    result = asyncio.run(
        dispatcher.execute_one("u1", "u1", intent("question", response="¡Claro que sí!"))
    )

    assert result.message == "¡Claro que sí!"


def test_high_value_create_is_deferred(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)

    result = asyncio.run(
        dispatcher.execute_one("user-9", "key-9", intent("create_income", amount=4_500_000))
    )

    assert result.deferred
    assert "Confirmación requerida" in result.message
    assert backend.calls == []

    pending = gate.peek("key-9")
    assert pending.user_id == "user-9"
    assert pending.intent.category == "Otros"
    assert pending.intent.description == "Ingreso registrado"


def test_amount_at_threshold_executes_immediately(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)

    result = asyncio.run(
        dispatcher.execute_one("u1", "u1", intent("create_expense", amount=3_000_000))
    )

    assert not result.deferred
    assert backend.operations() == ["create_transaction"]
    assert gate.pending_count() == 0


def test_high_value_non_create_is_never_deferred(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)

    result = asyncio.run(
        dispatcher.execute_one(
            "u1", "u1", intent("validate_expense", amount=9_000_000, category="Viajes")
        )
    )

    assert not result.deferred
    assert gate.pending_count() == 0
    assert "create_transaction" not in backend.operations()


def test_confirmed_single_executes_with_stored_user_id(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)
    asyncio.run(dispatcher.execute_one("user-9", "key-9", intent("create_expense", amount=3_500_000)))

    result = asyncio.run(dispatcher.execute_confirmed(gate.confirm("key-9")))

    assert "Transacción de alto valor confirmada" in result.message
    assert backend.calls[0][1]["user_id"] == "user-9"
    assert backend.calls[0][1]["category"] == "Otros"


# ---------------------------------------------------------------------
# TESTS: BATCH
# ---------------------------------------------------------------------

def test_batch_runs_every_item_in_order(backend, clock):
    dispatcher, _ = make_dispatcher(backend, clock)
    intents = [
        intent("create_expense", amount=45000, category="Comida", description="Almuerzo"),
        intent("create_expense", amount=12000, category="Transporte", description="Taxi"),
    ]

    result = asyncio.run(dispatcher.execute_many("u1", "u1", intents))

    assert result.ok
    assert result.message.startswith("📝 *Registrando 2 operaciones:*")
    assert "1. 💸 Gasto de *$45,000* - Almuerzo" in result.message
    assert "2. 💸 Gasto de *$12,000* - Taxi" in result.message
    assert result.message.endswith("✅ ¡2 operación(es) registrada(s) exitosamente!")
    assert [t["description"] for t in backend.transactions["u1"]] == ["Taxi", "Almuerzo"]


def test_batch_failures_do_not_stop_later_items(backend, clock):
    dispatcher, _ = make_dispatcher(backend, clock)
    backend.fail_on("create_transaction", "Servicio no disponible")
    intents = [
        intent("create_expense", amount=45000, category="Comida"),
        intent("create_income", amount=100000, category="Freelance"),
    ]

    result = asyncio.run(dispatcher.execute_many("u1", "u1", intents))

    assert not result.ok
    assert "❌ Op 1: No pude registrar la transacción. Servicio no disponible" in result.message
    assert result.message.endswith("⚠️ 1 exitosa(s), 1 fallida(s).")
    assert len(backend.transactions["u1"]) == 1


def test_batch_item_that_raises_is_reported(backend, clock):
    dispatcher, _ = make_dispatcher(
        backend,
        clock,
        executors=[TransactionExecutor(backend), ExplodingExecutor(backend), ConversationExecutor(backend)],
    )
    intents = [
        intent("create_expense", amount=1000),
        intent("get_balance"),
        intent("create_expense", amount=2000),
    ]

    result = asyncio.run(dispatcher.execute_many("u1", "u1", intents))

    assert "❌ Op 2: Error inesperado en la operación" in result.message
    assert backend.operations() == ["create_transaction", "create_transaction"]


def test_batch_with_high_value_item_is_deferred_whole(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)
    intents = [
        intent("create_income", amount=4_500_000, category="Salario"),
        intent("create_expense", amount=45000, category="Comida"),
    ]

    result = asyncio.run(dispatcher.execute_many("u1", "u1", intents))

    assert result.deferred
    assert "*2 operaciones*" in result.message
    assert "• 💸 Gastos: $45,000" in result.message
    assert "• 💰 Ingresos: $4,500,000" in result.message
    assert backend.calls == []

    confirmed = asyncio.run(dispatcher.execute_confirmed(gate.confirm("u1")))
    assert confirmed.ok
    assert backend.operations() == ["create_transaction", "create_transaction"]


def test_batch_defers_when_only_second_item_is_over_threshold(backend, clock):
    dispatcher, gate = make_dispatcher(backend, clock)
    intents = [
        intent("create_expense", amount=500_000),
        intent("create_expense", amount=4_000_000),
    ]

    result = asyncio.run(dispatcher.execute_many("u1", "u1", intents))

    assert result.deferred
    assert gate.peek("u1").size == 2
