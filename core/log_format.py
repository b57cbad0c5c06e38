# core/log_format.py
import json
import logging

LOGGER_ROOT = "finance_assistant"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        return json.dumps(
            {
                "time": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
                "exception": record.exc_text,
            },
            ensure_ascii=False,
        )


def get_logger(name: str) -> logging.Logger:
    """Child logger under the assistant tree, e.g. finance_assistant.confirmation_gate."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stdout JSON handler to the assistant logger tree (idempotent)."""
    logger = logging.getLogger(LOGGER_ROOT)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    return logger
