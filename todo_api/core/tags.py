"""
Нормализация и валидация имён тегов.

Каноническое имя тега = trim + lowercase:
    "  Important  " → "important"
    "ＵＲＧＥＮＴ" → "ｕｒｇｅｎｔ" (и затем отклоняется валидацией)
    "重要"          → "重要" (японский текст не меняется)

Допустимые символы (после нормализации):
    - латиница и цифры ASCII
    - хирагана (ぁ-ん), катакана (ァ-ヶ), знак долготы (ー)
    - кандзи (CJK Unified Ideographs, U+4E00-U+9FFF)
    - дефис и подчёркивание

Все функции чистые - без обращений к БД.
"""

import re
from collections.abc import Iterable

from .exceptions import TagNameError, TagNameReason

TAG_NAME_MIN_LENGTH = 1
TAG_NAME_MAX_LENGTH = 20

# ぁ-ん = U+3041-U+3093, ァ-ヶ = U+30A1-U+30F6, ー = U+30FC, кандзи = U+4E00-U+9FFF
TAG_NAME_PATTERN = re.compile(r"[a-zA-Z0-9\u3041-\u3093\u30a1-\u30f6\u30fc\u4e00-\u9fff_-]+")


def normalize_tag_name(raw: str) -> str:
    """
    Привести имя тега к каноническому виду.

    Examples:
        >>> normalize_tag_name("  Work\\t")
        'work'
        >>> normalize_tag_name("ユニークタグ")
        'ユニークタグ'
    """
    return raw.strip().lower()


def validate_tag_name(name: str, field: str = "name") -> TagNameError | None:
    """
    Проверить нормализованное имя тега.

    Проверки идут по порядку, возвращается первая ошибка:
    1. Не пустое
    2. Не длиннее TAG_NAME_MAX_LENGTH символов
    3. Только допустимые символы

    Returns:
        TagNameError (не выброшенная) или None, если имя корректно
    """
    if len(name) < TAG_NAME_MIN_LENGTH:
        return TagNameError(
            name, TagNameReason.EMPTY, "Tag name must be at least 1 character", field=field
        )

    if len(name) > TAG_NAME_MAX_LENGTH:
        return TagNameError(
            name,
            TagNameReason.TOO_LONG,
            f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters",
            field=field,
        )

    if not TAG_NAME_PATTERN.fullmatch(name):
        return TagNameError(
            name,
            TagNameReason.INVALID_CHARACTERS,
            f"Tag name contains invalid characters: {name!r}",
            field=field,
        )

    return None


def canonical_tag_name(raw: str, field: str = "name") -> str:
    """
    Нормализовать и провалидировать имя тега.

    Raises:
        TagNameError: если имя недопустимо
    """
    name = normalize_tag_name(raw)
    error = validate_tag_name(name, field=field)
    if error is not None:
        raise error
    return name


def unique_tag_names(raw_names: Iterable[str], field: str = "tags") -> list[str]:
    """
    Канонические имена без повторов, в порядке первого появления.

    Example:
        unique_tag_names(["Urgent", "work", "URGENT "]) → ["urgent", "work"]

    Raises:
        TagNameError: если хотя бы одно имя недопустимо
    """
    names: list[str] = []
    seen: set[str] = set()
    for raw in raw_names:
        name = canonical_tag_name(raw, field=field)
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def parse_tag_filter(raw: str | None) -> list[str]:
    """
    Разобрать параметр ?tags=a,b,c в список канонических имён.

    Пустые сегменты отбрасываются, повторы убираются. Если ничего не осталось
    ("", "   ", ",,,", " , ,") - возвращается пустой список, что означает
    "без фильтра по тегам". Имена здесь не валидируются: недопустимое имя
    просто ни с чем не совпадёт.
    """
    if raw is None:
        return []

    names: list[str] = []
    for segment in raw.split(","):
        name = normalize_tag_name(segment)
        if name and name not in names:
            names.append(name)
    return names
