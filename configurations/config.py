import os
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

def get_env_var(name: str) -> str:
    """Get environment variable or raise a clear error if missing."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"❌ Missing required environment variable: {name}\n"
            f"👉 Did you copy .env.example to .env and fill in your keys?"
        )
    return value


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


# LLM (agents are built lazily, the key is only required when they run)
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-2.0-flash")

# Financial backend
CORE_API_BASE_URL = os.getenv("CORE_API_BASE_URL", "http://localhost:5000")
CORE_API_TIMEOUT = float(os.getenv("CORE_API_TIMEOUT", "15"))
USE_MOCK_BACKEND = _flag("USE_MOCK_BACKEND")

# Optional vars (with defaults)
HUMANIZE_RESPONSES = _flag("HUMANIZE_RESPONSES", "true")
CLEANUP_INTERVAL_SECONDS = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "60"))
DEBUG = _flag("DEBUG")
PORT = int(os.getenv("PORT", "8000"))

# -----------------------------
# Fixed behaviour constants
# -----------------------------
CONFIRMATION_THRESHOLD = Decimal("3000000")
CONFIRMATION_WINDOW_SECONDS = 60
CONVERSATION_MAX_MESSAGES = 10
CONVERSATION_TIMEOUT_MINUTES = 30
HUMANIZE_MIN_LENGTH = 50
