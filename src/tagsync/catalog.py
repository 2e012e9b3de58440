#!/usr/bin/env python3
"""
Catalog - модель файла переводов одной локали.

Хранит переводы в JSON-файлах: {config_dir}/{locale}.json
Формат: {"source key": "translation" | null | {plural}, ..., "": ""}

Поддерживает:
- Загрузка с проверкой схемы (pydantic)
- Сохранение исходного порядка ключей и вставка по индексу
- Байт-стабильная сериализация с завершающим ключом ""
- Маркеры вокруг непереведённых ключей
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

SENTINEL_KEY = ""

MISSING_START_KEY = "👇 missing start 👇"
MISSING_END_KEY = "👆 missing end 👆"
MISSING_MARKER_VALUE = "🛑 delete this line 🛑"

MARKER_KEYS = (MISSING_START_KEY, MISSING_END_KEY)


class FileParseError(ValueError):
    """Файл перевода не является валидным JSON или не соответствует схеме."""


class PluralValue(BaseModel):
    """Перевод с формами множественного числа."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    zero: Optional[str] = None
    one: Optional[str] = None
    plus2: Optional[str] = Field(alias="+2")
    many: Optional[str] = None
    many_limit: Optional[int] = Field(default=None, alias="manyLimit")

    def to_json(self) -> Dict[str, Any]:
        """Dict в порядке zero, one, +2, many, manyLimit без отсутствующих форм."""
        data = self.model_dump(by_alias=True)
        result: Dict[str, Any] = {}
        for name in ("zero", "one", "+2", "many", "manyLimit"):
            if data[name] is not None or (name == "+2"):
                result[name] = data[name]
        return result

    def forms(self) -> List[str]:
        return [f for f in (self.zero, self.one, self.plus2, self.many) if f]


TranslationValue = Union[str, Dict[str, Any], None]


@dataclass
class TranslationEntry:
    """Запись файла перевода."""
    key: str
    value: TranslationValue

    @property
    def is_marker(self) -> bool:
        return self.key in MARKER_KEYS


def _check_value(key: str, value: Any) -> TranslationValue:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, dict):
        PluralValue.model_validate(value)
        return value
    raise FileParseError(f"{key!r}: expected string, null or plural object, got {type(value).__name__}")


def normalize_value(value: Any) -> TranslationValue:
    """PluralValue -> dict, остальное как есть."""
    if isinstance(value, PluralValue):
        return value.to_json()
    return value


class TranslationFile:
    """
    Упорядоченный изменяемый файл перевода одной локали.

    Завершающий ключ "" (sentinel) не хранится среди записей:
    он извлекается при загрузке и всегда дописывается в конец при сериализации.
    Длина файла (len) его не учитывает.
    """

    def __init__(self, name: str = "", entries: Optional[Dict[str, TranslationValue]] = None):
        self.name = name
        self._entries: Dict[str, TranslationValue] = {}
        self.dirty = False
        for key, value in (entries or {}).items():
            if key == SENTINEL_KEY:
                continue
            self._entries[key] = value

    @classmethod
    def load(cls, raw: str, name: str = "") -> "TranslationFile":
        """
        Разбирает JSON файла перевода.

        Raises:
            FileParseError: невалидный JSON, не объект или значение не по схеме
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FileParseError(f"invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise FileParseError("root must be a JSON object")

        entries: Dict[str, TranslationValue] = {}
        for key, value in data.items():
            try:
                entries[key] = _check_value(key, value)
            except ValidationError as exc:
                details = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}"
                    for err in exc.errors()
                )
                raise FileParseError(f"{key!r}: {details}") from exc
        return cls(name=name, entries=entries)

    # =========================================================================
    # Доступ
    # =========================================================================

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def get(self, key: str) -> TranslationValue:
        return self._entries.get(key)

    def index_of(self, key: str) -> Optional[int]:
        for i, existing in enumerate(self._entries):
            if existing == key:
                return i
        return None

    def entries(self) -> List[TranslationEntry]:
        return [TranslationEntry(key, value) for key, value in self._entries.items()]

    def translated_items(self) -> Dict[str, TranslationValue]:
        """Ключи с непустым значением, без маркеров. Порядок файла."""
        return {
            key: value
            for key, value in self._entries.items()
            if value is not None and key not in MARKER_KEYS
        }

    def marker_run(self) -> Optional[Tuple[int, int]]:
        """Индексы (start, end) валидной пары маркеров или None."""
        start = self.index_of(MISSING_START_KEY)
        end = self.index_of(MISSING_END_KEY)
        if start is None or end is None or start > end:
            return None
        return start, end

    def has_markers(self) -> bool:
        return any(key in self._entries for key in MARKER_KEYS)

    # =========================================================================
    # Изменение
    # =========================================================================

    def set(self, key: str, value: Any, index: Optional[int] = None):
        """
        Существующий ключ перезаписывается на месте.
        Новый ключ вставляется по index (обязателен).
        """
        if key == SENTINEL_KEY:
            raise ValueError("the empty key is reserved")
        value = normalize_value(value)
        if key in self._entries:
            self._entries[key] = value
            self.dirty = True
            return
        if index is None:
            raise ValueError(f"index is required to insert new key {key!r}")
        self.insert_many(index, [(key, value)])

    def insert_many(self, index: int, items: Iterable[Tuple[str, Any]]):
        """Вставляет новые ключи начиная с index, сохраняя их порядок."""
        new_items = [(key, normalize_value(value)) for key, value in items]
        for key, _ in new_items:
            if key in self._entries or key == SENTINEL_KEY:
                raise ValueError(f"key {key!r} already exists")
        if not new_items:
            return

        current = list(self._entries.items())
        index = max(0, min(index, len(current)))
        self._entries = dict(current[:index] + new_items + current[index:])
        self.dirty = True

    def delete(self, key: str) -> bool:
        if key not in self._entries:
            return False
        del self._entries[key]
        self.dirty = True
        return True

    # =========================================================================
    # Сериализация
    # =========================================================================

    def to_dict(self) -> Dict[str, TranslationValue]:
        data = dict(self._entries)
        data[SENTINEL_KEY] = ""
        return data

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
