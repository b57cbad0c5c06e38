from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.intent import ClassifiedIntent, IntentKind, TransactionType
from executors.base import BaseExecutor, ExecutionResult
from services.response_formatter import (
    format_amount,
    format_date,
    raw_type_emoji,
    record_date,
    to_decimal,
)

MAX_LISTED = 15
MAX_LISTED_RANGE = 10


def _plural_label(tx_type: Optional[TransactionType]) -> str:
    if tx_type is TransactionType.INCOME:
        return "ingresos"
    if tx_type is TransactionType.EXPENSE:
        return "gastos"
    return "transacciones"


def _row(tx: Dict[str, Any]) -> str:
    category = tx.get("category")
    text = tx.get("description") or category
    return (
        f"{raw_type_emoji(tx.get('type'))} {format_amount(tx.get('amount'))} - "
        f"{text} ({category}) - {record_date(tx)}"
    )


def _totals(transactions: List[Dict[str, Any]]):
    income = Decimal("0")
    expenses = Decimal("0")
    for tx in transactions:
        if tx.get("type") == TransactionType.INCOME.value:
            income += to_decimal(tx.get("amount"))
        else:
            expenses += to_decimal(tx.get("amount"))
    return income, expenses


def _summary_block(
    transactions: List[Dict[str, Any]], tx_type: Optional[TransactionType], count_label: str
) -> str:
    income, expenses = _totals(transactions)
    if tx_type is None:
        return (
            "\n📊 *Resumen:*\n"
            f"• {count_label}: {len(transactions)} transacciones\n"
            f"• 💰 Ingresos: {format_amount(income)}\n"
            f"• 💸 Gastos: {format_amount(expenses)}\n"
            f"• 📈 Balance: {format_amount(income - expenses)}"
        )
    if tx_type is TransactionType.INCOME:
        return f"\n📊 *Total ingresos:* {format_amount(income)} ({len(transactions)} transacciones)"
    return f"\n📊 *Total gastos:* {format_amount(expenses)} ({len(transactions)} transacciones)"


class ListingExecutor(BaseExecutor):
    """Read-only views over the user's transactions."""

    kinds = (
        IntentKind.LIST_TRANSACTIONS,
        IntentKind.LIST_BY_DATE,
        IntentKind.LIST_BY_RANGE,
        IntentKind.SEARCH,
    )

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        if intent.kind is IntentKind.LIST_BY_DATE:
            return await self.list_by_date(user_id, intent)
        if intent.kind is IntentKind.LIST_BY_RANGE:
            return await self.list_by_range(user_id, intent)
        if intent.kind is IntentKind.SEARCH:
            return await self.search(user_id, intent)
        return await self.list_all(user_id, intent)

    async def list_all(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        tx_type = intent.type
        resp = await self.backend.get_transactions(user_id, tx_type.value if tx_type else None)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener las transacciones. {resp.error}")

        transactions = resp.items
        if not transactions:
            if tx_type is not None:
                return ExecutionResult(f"📋 No tienes {_plural_label(tx_type)} registrados.")
            return ExecutionResult("📋 No tienes transacciones registradas aún.")

        title = "Tus transacciones" if tx_type is None else f"Tus {_plural_label(tx_type)}"
        lines = [f"📋 *{title}:*", ""]
        lines.extend(_row(tx) for tx in transactions[:MAX_LISTED])
        if len(transactions) > MAX_LISTED:
            lines.append(f"\n... y {len(transactions) - MAX_LISTED} transacciones más")
        lines.append(_summary_block(transactions, tx_type, "Total"))
        return ExecutionResult("\n".join(lines))

    async def list_by_date(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        day = intent.start_date
        if not day:
            return ExecutionResult.failure(
                "❌ No pude determinar la fecha. Por favor especifica: "
                "\"¿Cuánto gasté el 15 de noviembre?\""
            )

        resp = await self.backend.get_transactions_by_date(user_id, day)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener las transacciones. {resp.error}")

        transactions = resp.items
        if not transactions:
            return ExecutionResult(f"📅 No tienes transacciones registradas el {format_date(day)}")

        lines = [f"📅 *Transacciones del {format_date(day)}:*", ""]
        for tx in transactions:
            lines.append(
                f"{raw_type_emoji(tx.get('type'))} {format_amount(tx.get('amount'))} - "
                f"{tx.get('category')} ({tx.get('description')})"
            )
        lines.append("")
        lines.append(f"💵 *Total del día:* {format_amount(resp.get('totalAmount'))}")
        return ExecutionResult("\n".join(lines))

    async def list_by_range(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        start, end, tx_type = intent.start_date, intent.end_date, intent.type
        if not start or not end:
            return ExecutionResult.failure(
                "❌ No pude determinar el período. Por favor especifica: "
                "\"¿Cuánto gasté del 1 al 15 de noviembre?\""
            )

        resp = await self.backend.get_transactions_by_range(
            user_id, start, end, tx_type.value if tx_type else None
        )
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener las transacciones. {resp.error}")

        transactions = resp.items
        span = f"{format_date(start)} y {format_date(end)}"
        if not transactions:
            return ExecutionResult(f"📆 No tienes {_plural_label(tx_type)} entre {span}")

        title = _plural_label(tx_type).capitalize()
        lines = [f"📆 *{title} del {format_date(start)} al {format_date(end)}:*", ""]
        lines.extend(_row(tx) for tx in transactions[:MAX_LISTED_RANGE])
        if len(transactions) > MAX_LISTED_RANGE:
            lines.append(f"\n... y {len(transactions) - MAX_LISTED_RANGE} transacciones más")
        lines.append(_summary_block(transactions, tx_type, "Transacciones"))
        return ExecutionResult("\n".join(lines))

    async def search(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        by_category = not intent.search_query and bool(intent.category)
        term = intent.search_query or intent.category
        if not term:
            return ExecutionResult.failure(
                "❌ No pude determinar qué buscar. Por favor especifica: "
                "\"¿Cuánto he pagado de Netflix?\" o \"Gastos de categoría Comida\""
            )

        resp = await self.backend.search_transactions(user_id, term)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude buscar las transacciones. {resp.error}")

        transactions = resp.items
        if not transactions:
            if by_category:
                return ExecutionResult(f"🔍 No encontré transacciones en la categoría \"{term}\"")
            return ExecutionResult(f"🔍 No encontré transacciones relacionadas con \"{term}\"")

        total = resp.get("totalAmount")
        if total is None:
            total = sum((to_decimal(tx.get("amount")) for tx in transactions), Decimal("0"))
        count = resp.get("count") or len(transactions)

        header = (
            f"🔍 *Gastos en categoría \"{term}\":*" if by_category
            else f"🔍 *Resultados para \"{term}\":*"
        )
        lines = [header, ""]
        for tx in transactions:
            lines.append(
                f"{raw_type_emoji(tx.get('type'))} {format_amount(tx.get('amount'))} - "
                f"{tx.get('description')} {record_date(tx)}"
            )
        label = f"Total en categoría \"{term}\"" if by_category else f"Total en \"{term}\""
        lines.append("")
        lines.append(f"📊 *{label}:* {format_amount(total)} ({count} transacciones)")
        return ExecutionResult("\n".join(lines))
