from typing import Optional

from core.intent import ClassifiedIntent, IntentKind
from core.log_format import get_logger
from executors.base import BaseExecutor, ExecutionResult
from services.response_formatter import format_amount, to_decimal, translate_period

logger = get_logger("executors.rule")

GENERAL_CATEGORY = "General"
DEFAULT_PERIOD = "Monthly"
_GENERAL_ALIASES = {"gastos", "todos", "general"}


def normalize_rule_category(category: Optional[str]) -> str:
    if not category or category.strip().lower() in _GENERAL_ALIASES:
        return GENERAL_CATEGORY
    return category


class RuleExecutor(BaseExecutor):
    """Spending limits (budgets) per category and period."""

    kinds = (IntentKind.CREATE_RULE, IntentKind.LIST_RULES)

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        if intent.kind is IntentKind.LIST_RULES:
            return await self.list_rules(user_id)
        return await self.create_rule(user_id, intent)

    async def create_rule(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        category = normalize_rule_category(intent.category)
        amount = intent.amount
        if amount is None or amount <= 0:
            return ExecutionResult.failure(
                "❌ Por favor especifica un monto válido para el límite. "
                "Ejemplo: \"Límite de 500k en comida\""
            )
        period = intent.period or DEFAULT_PERIOD

        existing = None
        rules = await self.backend.get_rules(user_id)
        if rules.success:
            for rule in rules.items:
                if (
                    (rule.get("category") or "").lower() == category.lower()
                    and (rule.get("period") or "").lower() == period.lower()
                ):
                    existing = rule
                    break

        previous_limit = None
        if existing is not None:
            previous_limit = existing.get("amountLimit")
            resp = await self.backend.update_rule(existing["id"], amount)
        else:
            resp = await self.backend.create_rule(user_id, category, amount, period)

        if not resp.success:
            logger.error(f"❌ [RULE] user_id={user_id} save failed: {resp.detail}")
            return ExecutionResult.failure(f"❌ No pude crear la regla. {resp.error}")

        category_text = "Todos los gastos" if category == GENERAL_CATEGORY else category
        footer = "\n\n💡 Te avisaré cuando te acerques al límite."
        if existing is not None:
            logger.info(f"🔄 [RULE] user_id={user_id} updated rule {existing['id']}")
            return ExecutionResult(
                "📏 ¡Regla actualizada!\n\n"
                f"• 📂 Categoría: {category_text}\n"
                f"• 💰 Límite anterior: {format_amount(previous_limit)}\n"
                f"• 💰 Nuevo límite: {format_amount(amount)}\n"
                f"• 📅 Período: {translate_period(period)}"
                + footer
            )
        return ExecutionResult(
            "📏 ¡Regla creada!\n\n"
            f"• 📂 Categoría: {category_text}\n"
            f"• 💰 Límite: {format_amount(amount)}\n"
            f"• 📅 Período: {translate_period(period)}"
            + footer
        )

    async def list_rules(self, user_id: str) -> ExecutionResult:
        resp = await self.backend.get_rules(user_id)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener las reglas. {resp.error}")

        rules = resp.items
        if not rules:
            return ExecutionResult("📏 No tienes reglas financieras configuradas.")

        lines = ["📏 *Tus reglas financieras:*", ""]
        for rule in rules:
            lines.append(
                f"• {rule.get('category')}: {format_amount(to_decimal(rule.get('amountLimit')))} "
                f"({translate_period(rule.get('period'))})"
            )
        return ExecutionResult("\n".join(lines))
