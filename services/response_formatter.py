# services/response_formatter.py
"""
Pure text builders for every reply the assistant sends.

Nothing in here touches state or the network: callers hand in plain
values (amounts, intents, pending records) and get a finished string back.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

from configurations.config import CONFIRMATION_WINDOW_SECONDS
from core.intent import ClassifiedIntent, IntentKind, TransactionType
from models.pending import PendingAction, PendingBatchAction

# -----------------------------
# Fixed messages
# -----------------------------
CANCELLED_MESSAGE = "❌ Operación cancelada. No se registró ninguna transacción."
EXPIRED_MESSAGE = (
    "⏰ La confirmación ha expirado. Si aún quieres registrar la(s) "
    "transacción(es), por favor envía el mensaje nuevamente."
)
NOTHING_PENDING_MESSAGE = "🤔 No tienes ninguna operación pendiente de confirmar."
GENERIC_APOLOGY = (
    "Lo siento, hubo un error procesando tu solicitud. Por favor intenta de nuevo."
)
CLASSIFICATION_FALLBACK = "Lo siento, no pude entender tu mensaje. ¿Podrías reformularlo?"
DEFAULT_GREETING = "¡Hola! Soy tu asistente financiero. ¿En qué puedo ayudarte?"
HIGH_VALUE_CONFIRMED_NOTE = "\n\n✅ _Transacción de alto valor confirmada_"
ERROR_PREFIX = "❌"

_PERIODS = {
    "monthly": "Mensual",
    "weekly": "Semanal",
    "biweekly": "Quincenal",
    "daily": "Diario",
    "yearly": "Anual",
}

_CATEGORY_EMOJIS = {
    "comida": "🍔",
    "transporte": "🚗",
    "entretenimiento": "🎬",
    "salud": "💊",
    "educación": "📚",
    "hogar": "🏠",
    "ropa": "👕",
    "tecnología": "📱",
    "servicios": "💡",
    "arriendo": "🏠",
    "vivienda": "🏠",
    "salario": "💼",
    "freelance": "💻",
    "inversiones": "📈",
    "regalos": "🎁",
}

_OPERATION_LABELS = {
    IntentKind.CREATE_EXPENSE: "Gasto",
    IntentKind.CREATE_INCOME: "Ingreso",
    IntentKind.CREATE_RECURRING_EXPENSE: "Gasto fijo",
    IntentKind.CREATE_RECURRING_INCOME: "Ingreso fijo",
}


# -----------------------------
# Primitive formatting
# -----------------------------
def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def format_amount(value: Any) -> str:
    """3000000 -> '$3,000,000' (no decimals)."""
    return f"${to_decimal(value):,.0f}"


def type_emoji(tx_type: Optional[TransactionType]) -> str:
    if tx_type is TransactionType.EXPENSE:
        return "💸"
    if tx_type is TransactionType.INCOME:
        return "💰"
    return "📋"


def type_label(tx_type: Optional[TransactionType]) -> str:
    if tx_type is TransactionType.EXPENSE:
        return "Gasto"
    if tx_type is TransactionType.INCOME:
        return "Ingreso"
    return "Operación"


def raw_type_emoji(raw_type: Any) -> str:
    """Emoji for a backend record's `type` field ("Income" / anything else)."""
    return "💰" if raw_type == TransactionType.INCOME.value else "💸"


def category_emoji(category: Optional[str]) -> str:
    if not category:
        return "📦"
    return _CATEGORY_EMOJIS.get(category.lower(), "📦")


def operation_emoji(kind: IntentKind) -> str:
    return type_emoji(kind.transaction_type())


def operation_label(kind: IntentKind) -> str:
    return _OPERATION_LABELS.get(kind, "Operación")


def translate_period(period: Optional[str]) -> str:
    if not period:
        return "Mensual"
    return _PERIODS.get(period.lower(), period)


def format_date(value: Optional[str]) -> str:
    """ISO date or datetime -> dd/mm/yyyy. Unparseable input comes back unchanged."""
    if not value:
        return ""
    try:
        return date_parser.isoparse(value).strftime("%d/%m/%Y")
    except (ValueError, OverflowError):
        return value


def record_date(record: Dict[str, Any]) -> str:
    return format_date(record.get("createdAt") or record.get("date"))


def progress_bar(percentage: Any) -> str:
    filled = int(min(float(to_decimal(percentage)) / 10, 10))
    filled = max(filled, 0)
    return "█" * filled + "░" * (10 - filled)


def display_name(record: Dict[str, Any]) -> str:
    return record.get("description") or record.get("category") or ""


# -----------------------------
# Confirmation prompts
# -----------------------------
def _expiry_notice() -> str:
    return f"⏱️ _Esta confirmación expira en {CONFIRMATION_WINDOW_SECONDS} segundos_"


def single_confirmation_prompt(pending: PendingAction) -> str:
    intent = pending.intent
    tx_type = pending.kind.transaction_type()
    category = intent.category or "General"
    description = intent.description or category

    return (
        "⚠️ *Confirmación requerida*\n\n"
        f"Vas a registrar un {type_label(tx_type).lower()} de alto valor:\n\n"
        f"{type_emoji(tx_type)} *{format_amount(intent.amount)}*\n"
        f"• Categoría: {category}\n"
        f"• Descripción: {description}\n\n"
        "¿Confirmas esta operación?\n\n"
        "Responde *Sí* o *Confirmar* para continuar\n"
        "Responde *No* o *Cancelar* para anular\n\n"
        f"{_expiry_notice()}"
    )


def batch_confirmation_prompt(pending: PendingBatchAction) -> str:
    lines = [
        "⚠️ *Confirmación requerida*",
        "",
        f"Vas a registrar *{pending.size} operaciones*, incluyendo transacciones de alto valor:",
        "",
    ]
    lines.extend(_numbered_operations((item.kind, item.intent) for item in pending.items))
    lines.append("")
    lines.append("📊 *Totales:*")
    if pending.total_expenses > 0:
        lines.append(f"• 💸 Gastos: {format_amount(pending.total_expenses)}")
    if pending.total_income > 0:
        lines.append(f"• 💰 Ingresos: {format_amount(pending.total_income)}")
    lines.extend(
        [
            "",
            "¿Confirmas *todas* estas operaciones?",
            "",
            "Responde *Sí* para registrar todas",
            "Responde *No* para cancelar todas",
            "",
            _expiry_notice(),
        ]
    )
    return "\n".join(lines)


def _numbered_operations(
    operations: Iterable[Tuple[IntentKind, ClassifiedIntent]]
) -> List[str]:
    lines = []
    for number, (kind, intent) in enumerate(operations, start=1):
        line = f"{number}. {operation_emoji(kind)} {operation_label(kind)}"
        if intent.amount is not None:
            line += f" de *{format_amount(intent.amount)}*"
        text = intent.description or intent.category
        if text:
            line += f" - {text}"
        lines.append(line)
    return lines


# -----------------------------
# Batch execution report
# -----------------------------
def batch_report(
    operations: List[Tuple[IntentKind, ClassifiedIntent]],
    failures: List[Tuple[int, str]],
) -> str:
    """
    Listing of every operation in the message, the inline failures
    (1-based index + reason) and a closing tally.
    """
    lines = [f"📝 *Registrando {len(operations)} operaciones:*", ""]
    lines.extend(_numbered_operations(operations))
    lines.append("")

    for number, reason in failures:
        lines.append(f"❌ Op {number}: {reason}")
    if failures:
        lines.append("")

    ok_count = len(operations) - len(failures)
    if not failures:
        lines.append(f"✅ ¡{ok_count} operación(es) registrada(s) exitosamente!")
    else:
        lines.append(f"⚠️ {ok_count} exitosa(s), {len(failures)} fallida(s).")
    return "\n".join(lines).strip()
