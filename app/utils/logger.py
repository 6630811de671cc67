# app/utils/logger.py

"""
Настройка логирования.

Один раз вызываем setup_logging() при старте приложения,
дальше в модулях берем логгер через get_logger(__name__).
"""

import logging

LOGGER_NAME = "blog"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Настроить корневой логгер приложения.

    Если хендлеры уже есть (повторный импорт, тесты) - возвращаем как есть.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Дочерний логгер: blog.app.services.post_services и т.п."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
