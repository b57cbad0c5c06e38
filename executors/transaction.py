from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from configurations.config import CONFIRMATION_THRESHOLD
from core.clock import Clock, utc_now
from core.intent import ClassifiedIntent, IntentKind, TransactionType
from core.log_format import get_logger
from executors.base import BaseExecutor, ExecutionResult
from services.backend_client import FinancialBackend
from services.response_formatter import (
    HIGH_VALUE_CONFIRMED_NOTE,
    format_amount,
    raw_type_emoji,
    to_decimal,
    type_emoji,
    type_label,
)

logger = get_logger("executors.transaction")

DEFAULT_CATEGORY = "Otros"
_DEFAULT_DESCRIPTIONS = {
    TransactionType.EXPENSE: "Gasto registrado",
    TransactionType.INCOME: "Ingreso registrado",
}

# Anything above this is almost certainly a typo; it is still recorded.
_SUSPICIOUS_AMOUNT = Decimal("100000000000")


def with_defaults(intent: ClassifiedIntent) -> ClassifiedIntent:
    """Fill the category/description a create needs; other kinds pass through."""
    tx_type = intent.kind.transaction_type()
    if not intent.kind.is_confirmable() or tx_type is None:
        return intent

    update = {}
    if not intent.category:
        update["category"] = DEFAULT_CATEGORY
    if not intent.description:
        update["description"] = _DEFAULT_DESCRIPTIONS[tx_type]
    return intent.model_copy(update=update) if update else intent


def period_start(period: Optional[str], today: date) -> date:
    """First day counted by a budget rule of the given period."""
    period = (period or "monthly").lower()
    if period == "weekly":
        return date.fromordinal(today.toordinal() - today.weekday())
    if period == "biweekly":
        return today.replace(day=15 if today.day >= 15 else 1)
    if period == "yearly":
        return today.replace(month=1, day=1)
    return today.replace(day=1)


class TransactionExecutor(BaseExecutor):
    """
    One-off transactions: create expense/income, delete the last one,
    and the read-only "can I spend this?" check.
    """

    kinds = (
        IntentKind.CREATE_EXPENSE,
        IntentKind.CREATE_INCOME,
        IntentKind.DELETE_TRANSACTION,
        IntentKind.VALIDATE_EXPENSE,
    )

    def __init__(self, backend: FinancialBackend, clock: Clock = utc_now):
        super().__init__(backend)
        self._clock = clock

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        if intent.kind is IntentKind.DELETE_TRANSACTION:
            return await self.delete_last(user_id)
        if intent.kind is IntentKind.VALIDATE_EXPENSE:
            return await self.validate_expense(user_id, intent)
        return await self.create(user_id, intent)

    # -----------------------------
    # Create
    # -----------------------------
    async def create(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        tx_type = intent.kind.transaction_type()
        amount = intent.amount

        if amount is None:
            return ExecutionResult.failure(
                f"🤔 ¿Cuánto fue el {type_label(tx_type).lower()}? Por favor dime el monto.\n\n"
                "💡 Ejemplo: \"Gasté 50000 en comida\" o \"Recibí 100k\""
            )
        if amount <= 0:
            return ExecutionResult.failure(
                "🤔 El monto debe ser mayor a $0. ¿Cuánto fue realmente?"
            )
        if amount > _SUSPICIOUS_AMOUNT:
            logger.warning(
                f"⚠️ [CREATE] user_id={user_id} extremely high amount {format_amount(amount)}"
            )

        intent = with_defaults(intent)
        resp = await self.backend.create_transaction(
            user_id, amount, tx_type.value, intent.category, intent.description
        )
        if not resp.success:
            logger.error(f"❌ [CREATE] user_id={user_id} failed: {resp.detail}")
            return ExecutionResult.failure(f"❌ No pude registrar la transacción. {resp.error}")

        logger.info(
            f"✅ [CREATE] user_id={user_id}, type={tx_type.value}, "
            f"amount={format_amount(amount)}, category={intent.category}"
        )
        message = (
            f"{type_emoji(tx_type)} {type_label(tx_type)} registrado!\n"
            f"• Monto: {format_amount(amount)}\n"
            f"• Categoría: {intent.category}\n"
            f"• Descripción: {intent.description}"
        )
        if amount > CONFIRMATION_THRESHOLD:
            message += HIGH_VALUE_CONFIRMED_NOTE
        return ExecutionResult(message)

    # -----------------------------
    # Delete last
    # -----------------------------
    async def delete_last(self, user_id: str) -> ExecutionResult:
        resp = await self.backend.get_transactions(user_id)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener las transacciones. {resp.error}")

        transactions = resp.items
        if not transactions:
            return ExecutionResult("📋 No tienes transacciones para eliminar.")

        # the API lists newest first
        last = transactions[0]
        deleted = await self.backend.delete_transaction(last["id"])
        if not deleted.success:
            return ExecutionResult.failure(f"❌ No pude eliminar la transacción. {deleted.error}")

        is_income = last.get("type") == TransactionType.INCOME.value
        lines = [
            f"✅ ¡Listo! Eliminé tu último {'ingreso' if is_income else 'gasto'}:",
            "",
            f"{raw_type_emoji(last.get('type'))} *{format_amount(last.get('amount'))}*",
        ]
        if last.get("description"):
            lines.append(f"• Descripción: {last['description']}")
        lines.append(f"• Categoría: {last.get('category')}")
        lines.append("")
        lines.append("📝 Tu saldo ha sido restaurado.")
        return ExecutionResult("\n".join(lines))

    # -----------------------------
    # Validate (read-only)
    # -----------------------------
    async def validate_expense(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        amount = intent.amount
        if amount is None or amount <= 0:
            return ExecutionResult(
                "🤔 ¿Cuánto estás pensando gastar? Por favor especifica el monto.\n\n"
                "💡 Ejemplo: \"¿Puedo gastar 50000 en ropa?\""
            )

        rules_resp = await self.backend.get_rules(user_id)
        tx_resp = await self.backend.get_transactions(user_id, TransactionType.EXPENSE.value)

        category = intent.category or "eso"
        rule = self._matching_rule(rules_resp.items if rules_resp.success else [], intent.category)

        lines = [f"🤔 *Sobre gastar {format_amount(amount)} en {category}:*", ""]

        if rule is not None:
            limit = to_decimal(rule.get("amountLimit"))
            spent = self._spent_in_period(
                tx_resp.items if tx_resp.success else [],
                rule.get("category") or category,
                rule.get("period"),
            )
            if spent > 0:
                lines.append(f"📊 Llevas {format_amount(spent)} de {format_amount(limit)} este período.")
            if amount + spent > limit:
                lines.append(f"⚠️ Tienes un límite de {format_amount(limit)} para {intent.category}.")
                lines.append("Este gasto excedería tu límite.")
                lines.append("")
                lines.append(
                    "💡 *Recomendación:* Considera si realmente lo necesitas "
                    "o busca una alternativa más económica."
                )
            else:
                lines.append(
                    f"✅ Está dentro de tu presupuesto de {format_amount(limit)} para {intent.category}."
                )
                lines.append("")
                lines.append(
                    f"💡 Si decides hacerlo, dime: \"Gasté {format_amount(amount)} en "
                    f"{intent.description or intent.category}\""
                )
        else:
            what = intent.description or (intent.category or "[categoría]")
            lines.extend(
                [
                    f"📊 No tienes un límite configurado para {category}.",
                    "",
                    "💡 *Consejos antes de gastar:*",
                    "• ¿Es una necesidad o un gusto?",
                    "• ¿Afecta tus metas de ahorro?",
                    "• ¿Tienes un fondo de emergencia?",
                    "",
                    f"Si decides hacerlo, dime: \"Gasté {format_amount(amount)} en {what}\"",
                ]
            )
        return ExecutionResult("\n".join(lines))

    @staticmethod
    def _matching_rule(rules: List[Dict[str, Any]], category: Optional[str]) -> Optional[Dict[str, Any]]:
        if not category:
            return None
        for rule in rules:
            if (rule.get("category") or "").lower() == category.lower():
                return rule
        return None

    def _spent_in_period(
        self, transactions: List[Dict[str, Any]], category: str, period: Optional[str]
    ) -> Decimal:
        start = period_start(period, self._clock().date())
        total = Decimal("0")
        for tx in transactions:
            if tx.get("type") != TransactionType.EXPENSE.value:
                continue
            tx_category = (tx.get("category") or "").lower()
            if category.lower() != "general" and tx_category != category.lower():
                continue
            raw = tx.get("createdAt") or tx.get("date")
            if not raw:
                continue
            try:
                day = date_parser.isoparse(raw).date()
            except ValueError:
                continue
            if day >= start:
                total += to_decimal(tx.get("amount"))
        return total
