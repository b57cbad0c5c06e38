from decimal import Decimal
from typing import Any, Dict, List

from core.intent import ClassifiedIntent, IntentKind, TransactionType
from core.log_format import get_logger
from executors.base import BaseExecutor, ExecutionResult
from services.response_formatter import (
    display_name,
    format_amount,
    raw_type_emoji,
    to_decimal,
    translate_period,
    type_emoji,
    type_label,
)

logger = get_logger("executors.recurring")

DEFAULT_FREQUENCY = "Monthly"
MAX_OPTIONS = 5


def _option(number: int, rec: Dict[str, Any]) -> str:
    return (
        f"{number}. {raw_type_emoji(rec.get('type'))} {format_amount(rec.get('amount'))} - "
        f"{display_name(rec)} ({translate_period(rec.get('frequency'))})"
    )


class RecurringExecutor(BaseExecutor):
    """Fixed income / fixed expenses that repeat every period."""

    kinds = (
        IntentKind.CREATE_RECURRING_EXPENSE,
        IntentKind.CREATE_RECURRING_INCOME,
        IntentKind.LIST_RECURRING,
        IntentKind.DELETE_RECURRING,
    )

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        if intent.kind is IntentKind.LIST_RECURRING:
            return await self.list_recurring(user_id, intent)
        if intent.kind is IntentKind.DELETE_RECURRING:
            return await self.delete_recurring(user_id, intent)
        return await self.create_recurring(user_id, intent)

    async def create_recurring(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        tx_type = intent.kind.transaction_type()
        label = type_label(tx_type).lower()

        if intent.amount is None or intent.amount <= 0:
            what = intent.description or "esa transacción"
            return ExecutionResult.failure(
                f"❓ Necesito saber el monto para registrar {what} como {label} recurrente.\n\n"
                f"Por favor, indícame: \"Pago {what} [MONTO] cada mes\"\n\n"
                "Ejemplo: \"Pago Netflix 50k cada mes\""
            )

        frequency = intent.frequency or DEFAULT_FREQUENCY
        resp = await self.backend.create_recurring(
            user_id,
            intent.amount,
            tx_type.value,
            intent.category,
            intent.description,
            frequency,
            intent.day_of_month,
        )
        if not resp.success:
            logger.error(f"❌ [RECURRING] user_id={user_id} create failed: {resp.detail}")
            return ExecutionResult.failure(
                f"❌ No pude registrar la transacción recurrente. {resp.error}"
            )

        day_info = f" (día {intent.day_of_month})" if intent.day_of_month else ""
        return ExecutionResult(
            f"{type_emoji(tx_type)} ¡{type_label(tx_type)} recurrente creado!\n"
            f"• Monto: {format_amount(intent.amount)}\n"
            f"• Frecuencia: {translate_period(frequency)}{day_info}\n"
            f"• Categoría: {intent.category}\n"
            f"• Descripción: {intent.description}\n\n"
            "Se registrará automáticamente cada período."
        )

    async def list_recurring(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        resp = await self.backend.get_recurring(user_id)
        if not resp.success:
            return ExecutionResult.failure(
                f"❌ No pude obtener las transacciones recurrentes. {resp.error}"
            )

        recurring = resp.items
        if not recurring:
            return ExecutionResult(
                "🔄 No tienes transacciones recurrentes configuradas.\n\n"
                "💡 Puedes crear una diciendo: \"Me pagan 2M cada mes\" o \"Pago Netflix mensualmente\""
            )

        tx_type = intent.type
        if tx_type is TransactionType.INCOME:
            title = "💰 *Tus ingresos fijos/recurrentes:*"
            empty = (
                "💰 No tienes ingresos recurrentes configurados.\n\n"
                "💡 Puedes crear uno diciendo: \"Me pagan 2M cada mes\""
            )
        elif tx_type is TransactionType.EXPENSE:
            title = "💸 *Tus gastos fijos/recurrentes:*"
            empty = (
                "💸 No tienes gastos fijos configurados.\n\n"
                "💡 Puedes crear uno diciendo: \"Pago Netflix mensualmente\""
            )
        else:
            title = "🔄 *Tus transacciones recurrentes:*"
            empty = None

        if tx_type is not None:
            recurring = [r for r in recurring if r.get("type") == tx_type.value]
            if not recurring:
                return ExecutionResult(empty)

        lines = [title, ""]
        total = Decimal("0")
        for rec in recurring:
            paused = "" if rec.get("isActive", True) else " ⏸️"
            lines.append(
                f"{raw_type_emoji(rec.get('type'))} {format_amount(rec.get('amount'))} - "
                f"{display_name(rec)} ({translate_period(rec.get('frequency'))}){paused}"
            )
            total += to_decimal(rec.get("amount"))

        noun = "transacción" if len(recurring) == 1 else "transacciones"
        lines.append("")
        lines.append(f"📊 *Total:* {format_amount(total)} ({len(recurring)} {noun})")
        return ExecutionResult("\n".join(lines))

    async def delete_recurring(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        resp = await self.backend.get_recurring(user_id)
        if not resp.success:
            return ExecutionResult.failure(
                f"❌ No pude obtener las transacciones recurrentes. {resp.error}"
            )

        recurring = resp.items
        if not recurring:
            return ExecutionResult("🔄 No tienes transacciones recurrentes para eliminar.")

        term = intent.description or intent.category
        if not term:
            lines = ["🤔 ¿Cuál transacción recurrente querías eliminar?", ""]
            lines.extend(_option(i, rec) for i, rec in enumerate(recurring[:MAX_OPTIONS], start=1))
            if len(recurring) > MAX_OPTIONS:
                lines.append(f"... y {len(recurring) - MAX_OPTIONS} más.")
            lines.append("")
            lines.append("💡 Escribe el nombre o número del que quieras eliminar.")
            return ExecutionResult("\n".join(lines))

        matches = self._matches(recurring, term)
        if not matches:
            return ExecutionResult(
                f"🔍 No encontré una transacción recurrente que coincida con \"{term}\"."
            )
        if len(matches) > 1:
            lines = ["🤔 Encontré varias opciones. ¿Cuál querías eliminar?", ""]
            lines.extend(_option(i, rec) for i, rec in enumerate(matches, start=1))
            lines.append("")
            lines.append("💡 Dime el número o nombre específico para eliminar.")
            return ExecutionResult("\n".join(lines))

        target = matches[0]
        deleted = await self.backend.delete_recurring(target["id"])
        if not deleted.success:
            return ExecutionResult.failure(
                f"❌ No pude eliminar la transacción recurrente. {deleted.error}"
            )

        label = "ingreso" if target.get("type") == TransactionType.INCOME.value else "gasto"
        return ExecutionResult(
            f"✅ ¡Listo! Eliminé tu {label} recurrente:\n\n"
            f"{raw_type_emoji(target.get('type'))} *{display_name(target)}*\n"
            f"• Monto: {format_amount(target.get('amount'))}\n"
            f"• Frecuencia: {translate_period(target.get('frequency'))}\n\n"
            f"📝 Ya no se registrará este {label} automáticamente."
        )

    @staticmethod
    def _matches(recurring: List[Dict[str, Any]], term: str) -> List[Dict[str, Any]]:
        needle = term.lower()
        return [
            rec
            for rec in recurring
            if needle in (rec.get("description") or "").lower()
            or needle in (rec.get("category") or "").lower()
        ]
