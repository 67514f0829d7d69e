# src/common/localization.py
"""
Пользовательские сообщения клиента поездок (config/lang_dict.json).

Формат файла: {КЛЮЧ: {код_языка: шаблон}}. Шаблоны форматируются через
str.format, отсутствующий перевод берётся из английского, затем из любого
доступного языка.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

FALLBACK_LANGUAGE = "en"

LangDict = dict[str, dict[str, str]]


def get_lang_dict_path() -> Path:
    return Path(__file__).parent.parent.parent / "config" / "lang_dict.json"


@lru_cache()
def load_lang_dict() -> LangDict:
    """Читает словарь сообщений один раз за процесс."""
    lang_path = get_lang_dict_path()
    if not lang_path.exists():
        raise FileNotFoundError(f"Файл локализации не найден: {lang_path}")

    with open(lang_path, "r", encoding="utf-8") as f:
        return json.load(f)


def resolve_language(lang: str | None, supported: Iterable[str] | None = None) -> str:
    """
    Нормализует код языка ("RU", "ru-RU" → "ru").
    Неподдерживаемый или пустой код заменяется на FALLBACK_LANGUAGE.
    """
    if not lang:
        return FALLBACK_LANGUAGE
    code = lang.strip().lower().replace("_", "-").split("-")[0]
    if supported is not None and code not in set(supported):
        return FALLBACK_LANGUAGE
    return code


def _pick_translation(translations: dict[str, str], lang: str) -> str | None:
    for candidate in (lang, FALLBACK_LANGUAGE):
        text = translations.get(candidate)
        if text:
            return text
    return next((text for text in translations.values() if text), None)


def get_text(
    key: str,
    lang: str = FALLBACK_LANGUAGE,
    default: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Возвращает сообщение по ключу на языке lang.

    Неизвестный ключ (или отсутствующий файл) даёт default, а без него "[KEY]".
    Если в kwargs не хватает параметра шаблона, шаблон возвращается без подстановки.

    Example:
        >>> get_text("COUNTDOWN_FORMAT", "en", minutes=1, seconds=5)
        "1 minutes and 5 seconds"
    """
    placeholder = default or f"[{key}]"
    try:
        translations = load_lang_dict().get(key)
    except FileNotFoundError:
        return placeholder

    text = _pick_translation(translations, resolve_language(lang)) if translations else None
    if text is None:
        return placeholder

    if kwargs:
        try:
            return text.format(**kwargs)
        except KeyError:
            return text
    return text


def get_available_languages() -> list[str]:
    """Языки, объявленные у первого ключа словаря."""
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return [FALLBACK_LANGUAGE]
    first_key = next(iter(lang_dict.values()), {})
    return list(first_key.keys()) or [FALLBACK_LANGUAGE]


def validate_lang_dict() -> list[str]:
    """Список проблем словаря: неверный формат ключа или пропущенные языки."""
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError as e:
        return [str(e)]

    errors = []
    expected = set(get_available_languages())

    for key, translations in lang_dict.items():
        if not isinstance(translations, dict):
            errors.append(f"Ключ '{key}' имеет неверный формат")
            continue
        missing = expected - set(translations)
        if missing:
            errors.append(f"Ключ '{key}' не имеет перевода для языков: {sorted(missing)}")

    return errors
