from decimal import Decimal

from core.intent import IntentKind
from services.response_formatter import (
    batch_report,
    category_emoji,
    format_amount,
    format_date,
    progress_bar,
    translate_period,
)
from tests.helpers import intent


def test_format_amount_uses_thousands_separator():
    assert format_amount(Decimal("3500000")) == "$3,500,000"
    assert format_amount(45000.0) == "$45,000"
    assert format_amount(None) == "$0"


def test_format_date_accepts_iso_and_keeps_garbage():
    assert format_date("2025-11-15T10:30:00Z") == "15/11/2025"
    assert format_date("2025-11-15") == "15/11/2025"
    assert format_date("mañana") == "mañana"
    assert format_date(None) == ""


def test_translate_period():
    assert translate_period("Biweekly") == "Quincenal"
    assert translate_period(None) == "Mensual"
    assert translate_period("Quarterly") == "Quarterly"


def test_progress_bar_is_ten_cells():
    assert progress_bar(55) == "█████░░░░░"
    assert progress_bar(0) == "░" * 10
    assert progress_bar(150) == "█" * 10


def test_category_emoji_is_case_insensitive():
    assert category_emoji("COMIDA") == "🍔"
    assert category_emoji("Mascotas") == "📦"


def test_batch_report_lists_failures_inline():
    operations = [
        (IntentKind.CREATE_EXPENSE, intent("create_expense", amount=45000, description="Almuerzo")),
        (IntentKind.CREATE_RECURRING_INCOME, intent("create_recurring_income", amount=2000000, category="Salario")),
    ]

    report = batch_report(operations, [(2, "Monto inválido")])

    assert report.splitlines() == [
        "📝 *Registrando 2 operaciones:*",
        "",
        "1. 💸 Gasto de *$45,000* - Almuerzo",
        "2. 💰 Ingreso fijo de *$2,000,000* - Salario",
        "",
        "❌ Op 2: Monto inválido",
        "",
        "⚠️ 1 exitosa(s), 1 fallida(s).",
    ]
