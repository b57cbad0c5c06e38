from typing import List

from core.intent import ClassifiedIntent, IntentKind, TransactionType
from executors.base import BaseExecutor, ExecutionResult
from services.response_formatter import (
    category_emoji,
    display_name,
    format_amount,
    progress_bar,
    to_decimal,
    translate_period,
)


class QueryExecutor(BaseExecutor):
    """
    Aggregate views: balance, spending breakdown by category,
    and monthly cashflow of the recurring transactions.
    """

    kinds = (
        IntentKind.GET_BALANCE,
        IntentKind.GET_SUMMARY,
        IntentKind.GET_CASHFLOW,
    )

    async def execute(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        if intent.kind is IntentKind.GET_SUMMARY:
            return await self.summary(user_id, intent)
        if intent.kind is IntentKind.GET_CASHFLOW:
            return await self.cashflow(user_id)
        return await self.balance(user_id)

    async def balance(self, user_id: str) -> ExecutionResult:
        resp = await self.backend.get_balance(user_id)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener tu saldo. {resp.error}")

        return ExecutionResult(
            "💰 *Tu situación financiera:*\n\n"
            f"📈 Ingresos totales: {format_amount(resp.get('totalIncome'))}\n"
            f"📉 Gastos totales: {format_amount(resp.get('totalExpenses'))}\n"
            f"\n💵 *Saldo actual:* {format_amount(resp.get('currentBalance'))}"
        )

    async def summary(self, user_id: str, intent: ClassifiedIntent) -> ExecutionResult:
        balance = await self.backend.get_balance(user_id)
        income = balance.get("totalIncome") if balance.success else 0
        expenses = balance.get("totalExpenses") if balance.success else 0
        current = balance.get("currentBalance") if balance.success else 0

        if intent.start_date and intent.end_date:
            resp = await self.backend.get_summary_by_category(
                user_id, intent.start_date, intent.end_date
            )
        else:
            resp = await self.backend.get_summary_by_category(user_id)

        overview = (
            "📊 *Tu situación financiera:*\n\n"
            f"💰 *Ingresos totales:* {format_amount(income)}\n"
            f"💸 *Gastos totales:* {format_amount(expenses)}\n"
            f"💵 *Saldo actual:* {format_amount(current)}\n\n"
        )
        if not resp.success:
            return ExecutionResult(overview + "❌ No pude obtener el desglose por categoría.")

        categories = resp.items
        if not categories:
            return ExecutionResult(
                overview
                + "📋 No tienes gastos registrados aún. ¡Empieza a registrar para ver tu desglose!"
            )

        top = categories[0]
        top_name = top.get("category")
        top_amount = format_amount(top.get("totalAmount"))
        top_pct = float(to_decimal(top.get("percentage")))
        emoji = category_emoji(top_name)

        lines: List[str] = []
        if top_pct > 50:
            lines.append(
                f"¡Tu mayor gasto está en *{top_name}*! {emoji} Con {top_amount} "
                f"({top_pct:.0f}%), representa la mayor parte de tus gastos."
            )
        elif top_pct > 30:
            lines.append(
                f"*{top_name}* {emoji} es donde más gastas, con {top_amount} "
                f"({top_pct:.0f}%) de tus gastos totales."
            )
        else:
            lines.append(
                f"Tus gastos están bastante distribuidos. *{top_name}* {emoji} "
                f"lidera con {top_amount} ({top_pct:.0f}%)."
            )
        lines.append("")
        lines.append(
            f"💰 Ingresos: {format_amount(income)} | 💸 Gastos: {format_amount(expenses)} "
            f"| 💵 Saldo: *{format_amount(current)}*"
        )
        lines.append("")
        lines.append("📉 *Desglose completo:*")
        for cat in categories:
            name = cat.get("category")
            pct = float(to_decimal(cat.get("percentage")))
            lines.append(
                f"• {category_emoji(name)} {name}: {format_amount(cat.get('totalAmount'))} "
                f"({progress_bar(pct)} {pct:.1f}%)"
            )

        if top_pct > 50:
            lines.append("")
            lines.append(
                f"💡 *Tip:* Considera revisar tus gastos en {top_name}, "
                "ya que representan más de la mitad de tu presupuesto."
            )
        return ExecutionResult("\n".join(lines))

    async def cashflow(self, user_id: str) -> ExecutionResult:
        resp = await self.backend.get_cashflow(user_id)
        if not resp.success:
            return ExecutionResult.failure(f"❌ No pude obtener el flujo de caja. {resp.error}")

        recurring_resp = await self.backend.get_recurring(user_id)
        recurring = recurring_resp.items if recurring_resp.success else []

        lines = ["💵 *Tu flujo de caja mensual:*", ""]
        lines.append(f"📈 *Ingresos fijos:* {format_amount(resp.get('totalMonthlyIncome'))}")
        lines.extend(self._breakdown(recurring, TransactionType.INCOME, "💰"))
        lines.append("")
        lines.append(f"📉 *Gastos fijos:* {format_amount(resp.get('totalMonthlyExpenses'))}")
        lines.extend(self._breakdown(recurring, TransactionType.EXPENSE, "💸"))

        net = to_decimal(resp.get("netMonthlyCashflow"))
        lines.append("")
        lines.append(f"💰 *Dinero libre mensual:* {format_amount(net)}")
        if net > 0:
            lines.append("\n✅ ¡Excelente! Tienes un flujo positivo.")
        elif net < 0:
            lines.append("\n⚠️ Cuidado: tus gastos fijos superan tus ingresos fijos.")
        return ExecutionResult("\n".join(lines))

    @staticmethod
    def _breakdown(recurring, tx_type: TransactionType, emoji: str) -> List[str]:
        return [
            f"   • {emoji} {format_amount(rec.get('amount'))} - {display_name(rec)} "
            f"({translate_period(rec.get('frequency'))})"
            for rec in recurring
            if rec.get("type") == tx_type.value
        ]
