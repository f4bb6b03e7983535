import re
from typing import List
from urllib.parse import quote_plus

MENTION_PATTERN = re.compile(r"@([a-zA-Z0-9_]+)")


def slugify(value: str) -> str:
    """Строит slug из заголовка: нижний регистр, дефисы вместо пробелов и спецсимволов"""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-") or "project"


def parse_mentions(content: str) -> List[str]:
    """Возвращает уникальные @username из текста в порядке появления"""
    seen = []
    for username in MENTION_PATTERN.findall(content or ""):
        if username not in seen:
            seen.append(username)
    return seen


def default_avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(name)}&background=random"
