import asyncio

from core.log_format import configure_logging
from services.message_processor import build_message_processor


async def main():
    configure_logging()
    processor = build_message_processor(use_mock=True)
    user_key = "demo-user"

    for user_text in (
        "Recibí mi salario de 4.500.000",
        "Gasté 45k en almuerzo y 12k en taxi",
        "Compré un computador de 3.500.000",
        "sí",
        "¿Cuál es mi saldo?",
    ):
        print("Usuario:", user_text)
        reply = await processor.process_message(user_key, user_text)
        print("Asistente:", reply)
        print()


if __name__ == "__main__":
    import sys
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
