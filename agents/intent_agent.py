from datetime import date, timedelta
from functools import lru_cache
from typing import List

from pydantic_ai import Agent
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

from configurations.config import GEMINI_MODEL_NAME, get_env_var
from core.intent import ClassifiedIntent

SYSTEM_PROMPT = (
    "Eres el clasificador de intenciones de un asistente financiero personal que habla español.\n"
    "Convierte cada mensaje del usuario en una LISTA de operaciones (una por cada cosa que pide).\n\n"
    "REGLA CRÍTICA - PREGUNTAR NO ES REGISTRAR:\n"
    "- '¿Puedo gastar...?', '¿Me alcanza para...?' = validate_expense (no registra nada)\n"
    "- 'Gasté...', 'Compré...', 'Pagué...' = create_expense\n"
    "- 'Recibí...', 'Me pagaron...', 'Gané...' = create_income\n\n"
    "INTENCIONES:\n"
    "- validate_expense: pregunta si puede gastar un monto concreto\n"
    "- create_expense / create_income: registra un gasto o ingreso ya ocurrido\n"
    "- create_recurring_expense / create_recurring_income: gasto o ingreso fijo (usa frequency y dayOfMonth)\n"
    "- list_transactions: ver transacciones (type Expense/Income/null)\n"
    "- list_transactions_by_date: transacciones de un día (startDate)\n"
    "- list_transactions_by_range: transacciones de un período (startDate, endDate, type)\n"
    "- search_transactions: buscar por texto (searchQuery) o por categoría (category)\n"
    "- get_balance: saldo disponible\n"
    "- get_summary: resumen de gastos por categoría sin período concreto\n"
    "- get_cashflow: flujo de caja mensual de ingresos y gastos fijos\n"
    "- list_recurring: ver transacciones fijas (type para filtrar)\n"
    "- delete_recurring: eliminar una transacción fija (description o category para identificarla)\n"
    "- delete_transaction: eliminar la última transacción\n"
    "- create_rule: crear un límite de gasto (amount, category, period)\n"
    "- list_rules: ver los límites\n"
    "- question: saludo, consejo general o cualquier otra cosa; escribe la respuesta en 'response'\n\n"
    "Categorías: Comida, Transporte, Entretenimiento, Salud, Educación, Hogar, Ropa, Tecnología, "
    "Servicios, Arriendo, Vivienda, Salario, Freelance, Inversiones, Regalos, Otros.\n"
    "Frecuencias y períodos: Daily, Weekly, Biweekly, Monthly, Yearly.\n"
    "Montos: '50k' = 50000, '2M' o '2 millones' = 2000000. Fechas en formato YYYY-MM-DD.\n"
    "Usa el historial de conversación para resolver referencias ('eso', 'el último', '¿qué días?').\n"
    "Campos sin valor van en null."
)


def _date_context() -> str:
    today = date.today()
    yesterday = today - timedelta(days=1)
    return (
        f"HOY = {today.isoformat()}. AYER = {yesterday.isoformat()}. "
        "Si el usuario dice 'del 1 al 15' sin mes, usa el mes actual."
    )


@lru_cache(maxsize=1)
def get_intent_agent() -> Agent:
    """Built on first use so importing the package never needs GOOGLE_API_KEY."""
    provider = GoogleProvider(api_key=get_env_var("GOOGLE_API_KEY"))
    model = GoogleModel(GEMINI_MODEL_NAME, provider=provider)

    agent = Agent(
        model,
        system_prompt=SYSTEM_PROMPT,
        output_type=List[ClassifiedIntent],
    )
    agent.system_prompt(_date_context)
    return agent
