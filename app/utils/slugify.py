"""
Генерация slug для URL поста
"""

import re
import unicodedata
from uuid import uuid4

_NOT_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str) -> str:
    # Буквы любых алфавитов сохраняем, остальное выкидываем
    value = unicodedata.normalize("NFKC", text).lower()
    value = _NOT_WORD.sub("", value)
    value = _SEPARATORS.sub("-", value).strip("-")
    return value or "post"


def generate_id(length: int = 8) -> str:
    """Короткий случайный суффикс для разрешения коллизий slug"""
    return uuid4().hex[:length]
