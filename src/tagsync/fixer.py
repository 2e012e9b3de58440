"""
Fixer - добавление недостающих ключей в файл перевода одной локали.

Порядок прохода:
1. Контексты для AI строятся по состоянию файла ДО вставок
2. Один вызов translate_batch на локаль, без ретраев
3. Индекс вставки = floor(random() * len(file)), один на проход
4. Новые ключи вставляются с этого индекса в порядке исходников;
   непереведённые (null) собираются в один блок между маркерами

Существующие значения никогда не перезаписываются.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .catalog import (
    MARKER_KEYS,
    MISSING_END_KEY,
    MISSING_MARKER_VALUE,
    MISSING_START_KEY,
    TranslationFile,
)
from .scanner import TranslationKeyUsage
from .similarity import DEFAULT_LIMIT, DEFAULT_THRESHOLD, SimilarityIndex
from .translator import AITranslator, TokenUsage, TranslationContext, TranslationResult

logger = logging.getLogger(__name__)


@dataclass
class FixOutcome:
    """Итог прохода fix для одной локали."""
    locale: str
    resolved: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)
    insert_index: int = 0
    error: Optional[str] = None
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None

    @property
    def added(self) -> int:
        return len(self.resolved) + len(self.unresolved)


def build_contexts(locale: str, usages: List[TranslationKeyUsage], model: TranslationFile,
                   similarity_limit: int = DEFAULT_LIMIT,
                   similarity_threshold: float = DEFAULT_THRESHOLD) -> List[TranslationContext]:
    """Контексты для AI. Похожие переводы берутся из текущих значений файла."""
    candidates = model.translated_items()
    index = SimilarityIndex.build(candidates) if candidates else None

    contexts = []
    for usage in usages:
        similar = (
            index.find_similar(usage.key, limit=similarity_limit, threshold=similarity_threshold)
            if index is not None else []
        )
        contexts.append(TranslationContext(
            source_key=usage.key,
            is_plural=usage.is_plural,
            target_locale=locale,
            similar_translations=similar,
        ))
    return contexts


def _accepts(usage: TranslationKeyUsage, result: Optional[TranslationResult]) -> bool:
    return result is not None and result.is_plural == usage.is_plural


def remove_stray_markers(model: TranslationFile) -> bool:
    """Одиночный или перевёрнутый маркер удаляется."""
    if not model.has_markers() or model.marker_run() is not None:
        return False
    for key in MARKER_KEYS:
        model.delete(key)
    return True


def fix_locale(locale: str, missing: List[TranslationKeyUsage], model: TranslationFile,
               translator: Optional[AITranslator] = None,
               rng: Optional[random.Random] = None,
               similarity_limit: int = DEFAULT_LIMIT,
               similarity_threshold: float = DEFAULT_THRESHOLD) -> FixOutcome:
    """
    Добавляет в model все ключи из missing.

    Args:
        locale: Локаль файла (передаётся AI как target_locale)
        missing: Недостающие ключи в порядке исходников
        model: Файл перевода (изменяется на месте)
        translator: AI-переводчик или None (все ключи получат null)
        rng: Источник случайности для индекса вставки

    Returns:
        FixOutcome
    """
    rng = rng or random.Random()
    outcome = FixOutcome(locale=locale)
    if not missing:
        return outcome

    auto = [u for u in missing if not u.requires_manual_translation]
    results: Dict[str, TranslationResult] = {}

    if translator is not None and auto:
        contexts = build_contexts(locale, auto, model, similarity_limit, similarity_threshold)
        try:
            batch = translator.translate_batch(contexts)
            results = batch.translations
            outcome.model = batch.model
            outcome.usage = batch.usage
        except Exception as exc:
            outcome.error = str(exc) or exc.__class__.__name__
            logger.warning("AI-перевод для %s не удался: %s", locale, exc)

    items: List[Tuple[str, Any]] = []
    for usage in missing:
        result = None if usage.requires_manual_translation else results.get(usage.key)
        if _accepts(usage, result):
            items.append((usage.key, result.to_json()))
            outcome.resolved.append(usage.key)
        else:
            if result is not None:
                logger.debug("Тип ответа AI не совпадает для %r", usage.key)
            items.append((usage.key, None))
            outcome.unresolved.append(usage.key)

    remove_stray_markers(model)
    outcome.insert_index = math.floor(rng.random() * len(model))

    if model.marker_run() is not None:
        _insert_with_existing_run(model, items, outcome)
    else:
        model.insert_many(outcome.insert_index, _bracket_unresolved(items))

    logger.debug(
        "%s: добавлено %d (AI %d, null %d) с индекса %d",
        locale, outcome.added, len(outcome.resolved), len(outcome.unresolved), outcome.insert_index,
    )
    return outcome


def _bracket_unresolved(items: List[Tuple[str, Any]]) -> List[Tuple[str, Any]]:
    """Все null-ключи одним блоком между маркерами, на месте первого из них."""
    unresolved = [item for item in items if item[1] is None]
    if not unresolved:
        return items

    result: List[Tuple[str, Any]] = []
    bracketed = False
    for item in items:
        if item[1] is not None:
            result.append(item)
        elif not bracketed:
            result.append((MISSING_START_KEY, MISSING_MARKER_VALUE))
            result.extend(unresolved)
            result.append((MISSING_END_KEY, MISSING_MARKER_VALUE))
            bracketed = True
    return result


def _insert_with_existing_run(model: TranslationFile, items: List[Tuple[str, Any]],
                              outcome: FixOutcome):
    """Null-ключи дописываются в конец существующего блока маркеров."""
    start, end = model.marker_run()
    if start < outcome.insert_index <= end:
        outcome.insert_index = end + 1

    resolved = [item for item in items if item[1] is not None]
    unresolved = [item for item in items if item[1] is None]

    model.insert_many(outcome.insert_index, resolved)
    if unresolved:
        _, end = model.marker_run()
        model.insert_many(end, unresolved)
