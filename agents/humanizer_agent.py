from functools import lru_cache

from pydantic_ai import Agent
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

from configurations.config import GEMINI_MODEL_NAME, get_env_var


@lru_cache(maxsize=1)
def get_humanizer_agent() -> Agent:
    provider = GoogleProvider(api_key=get_env_var("GOOGLE_API_KEY"))
    model = GoogleModel(GEMINI_MODEL_NAME, provider=provider)

    return Agent(
        model,
        system_prompt=(
            "Eres un asistente financiero amigable y empático. Recibes una respuesta estructurada "
            "con datos financieros y la conviertes en una respuesta natural y conversacional.\n\n"
            "REGLAS:\n"
            "1. MANTÉN todos los datos numéricos exactos (montos, fechas, porcentajes)\n"
            "2. MANTÉN los emojis existentes\n"
            "3. Responde primero DIRECTAMENTE a la pregunta del usuario\n"
            "4. NO cambies la estructura de listas, solo mejora el texto introductorio\n"
            "5. Responde en español, informal pero respetuoso, conciso pero completo\n"
            "Devuelve SOLO la respuesta final para el usuario."
        ),
        output_type=str,
    )
