"""
Similarity - поиск похожих уже переведённых ключей.

Используется как контекст для AI-перевода: терминология и стиль
существующих переводов подсказывают модели, как переводить новый ключ.
Полностью локальный лексический скоринг, без внешних вызовов.

Скор ключа:
    0.65 * взвешенный (IDF) Jaccard по словам
  + 0.25 * Jaccard по символьным триграммам
  + 0.10 * доля общего префикса
Лучшие 20 кандидатов переранжируются с учётом близости их переводов
к переводу лучшего совпадения.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

NUM_TOKEN = "__num__"
_NUM_PLACEHOLDER = "numtoken"

DEFAULT_LIMIT = 3
DEFAULT_THRESHOLD = 0.12
RERANK_TOP = 20

WORD_WEIGHT = 0.65
GRAM_WEIGHT = 0.25
PREFIX_WEIGHT = 0.10
KEY_SCORE_WEIGHT = 0.85
TRANSLATION_SCORE_WEIGHT = 0.15

_PLACEHOLDER_RE = re.compile(r"\{[^}]*\}")
_DIGITS_RE = re.compile(r"\d+")
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

SimilarValue = Union[str, Dict]


@dataclass
class SimilarTranslation:
    key: str
    translation: SimilarValue
    score: float


def _normalize_placeholders(text: str) -> str:
    text = _PLACEHOLDER_RE.sub(f" {NUM_TOKEN} ", text)
    text = text.replace("#", f" {NUM_TOKEN} ")
    return _DIGITS_RE.sub(f" {NUM_TOKEN} ", text)


def _prepare(text: str) -> str:
    text = _normalize_placeholders(text)
    text = _CAMEL_RE.sub(r"\1 \2", text)
    return text.lower()


def tokenize_words(text: str) -> Set[str]:
    normalized = _prepare(text).replace(NUM_TOKEN, f" {_NUM_PLACEHOLDER} ")
    normalized = _NON_ALNUM_RE.sub(" ", normalized)

    tokens = set()
    for raw in normalized.split():
        token = NUM_TOKEN if raw == _NUM_PLACEHOLDER else raw
        if len(token) >= 2 or token == NUM_TOKEN:
            tokens.add(token)
    return tokens


def normalize_for_grams(text: str) -> str:
    normalized = _prepare(text).replace(NUM_TOKEN, _NUM_PLACEHOLDER)
    return _NON_ALNUM_RE.sub("", normalized)


def tokenize_grams(text: str) -> Set[str]:
    normalized = normalize_for_grams(text)
    if len(normalized) >= 3:
        return {f"ng:{normalized[i:i + 3]}" for i in range(len(normalized) - 2)}
    if len(normalized) == 2:
        return {f"ng2:{normalized}"}
    if len(normalized) == 1:
        return {f"ng1:{normalized}"}
    return set()


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a and not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0


def common_prefix_ratio(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    prefix = 0
    for ca, cb in zip(a, b):
        if ca != cb:
            break
        prefix += 1
    return prefix / longest


def translation_text(translation: SimilarValue) -> str:
    """Текст перевода для сравнения: plural формы через пробел."""
    if isinstance(translation, str):
        return translation
    forms = [translation.get(name) for name in ("zero", "one", "+2", "many")]
    return " ".join(f for f in forms if f)


@dataclass
class _IndexedEntry:
    key: str
    translation: SimilarValue
    words: Set[str]
    grams: Set[str]
    normalized_key: str
    translation_words: Set[str]
    word_weight: float = 0.0


@dataclass
class SimilarityIndex:
    """Индекс похожести по уже переведённым ключам одного файла."""
    entries: List[_IndexedEntry] = field(default_factory=list)
    token_entries: Dict[str, List[int]] = field(default_factory=dict)
    idf: Dict[str, float] = field(default_factory=dict)
    max_idf: float = 1.0

    @classmethod
    def build(cls, candidates: Dict[str, SimilarValue]) -> "SimilarityIndex":
        index = cls()
        document_frequency: Dict[str, int] = {}

        for key, translation in candidates.items():
            words = tokenize_words(key)
            position = len(index.entries)
            for token in words:
                document_frequency[token] = document_frequency.get(token, 0) + 1
                index.token_entries.setdefault(token, []).append(position)
            index.entries.append(_IndexedEntry(
                key=key,
                translation=translation,
                words=words,
                grams=tokenize_grams(key),
                normalized_key=normalize_for_grams(key),
                translation_words=tokenize_words(translation_text(translation)),
            ))

        total = len(index.entries)
        index.idf = {
            token: math.log((total + 1) / (count + 1)) + 1
            for token, count in document_frequency.items()
        }
        index.max_idf = math.log(total + 1) + 1
        for entry in index.entries:
            entry.word_weight = index._weight_sum(entry.words)
        return index

    def _weight(self, token: str) -> float:
        return self.idf.get(token, self.max_idf)

    def _weight_sum(self, tokens: Set[str]) -> float:
        return sum(self._weight(t) for t in tokens)

    def _weighted_jaccard(self, a: Set[str], a_weight: float,
                          b: Set[str], b_weight: float) -> float:
        if not a and not b:
            return 0.0
        smaller, larger = (a, b) if len(a) <= len(b) else (b, a)
        intersection = sum(self._weight(t) for t in smaller if t in larger)
        union = a_weight + b_weight - intersection
        return intersection / union if union else 0.0

    def _candidates(self, words: Set[str]) -> List[int]:
        positions: Set[int] = set()
        for token in words:
            positions.update(self.token_entries.get(token, ()))
        if not positions:
            return list(range(len(self.entries)))
        # порядок файла нужен для стабильной сортировки
        return sorted(positions)

    def find_similar(self, text: str, limit: int = DEFAULT_LIMIT,
                     threshold: float = DEFAULT_THRESHOLD) -> List[SimilarTranslation]:
        if not self.entries or limit <= 0:
            return []

        words = tokenize_words(text)
        grams = tokenize_grams(text)
        normalized = normalize_for_grams(text)
        words_weight = self._weight_sum(words)

        scored = []
        for position in self._candidates(words):
            entry = self.entries[position]
            key_score = (
                self._weighted_jaccard(words, words_weight, entry.words, entry.word_weight) * WORD_WEIGHT
                + jaccard(grams, entry.grams) * GRAM_WEIGHT
                + common_prefix_ratio(normalized, entry.normalized_key) * PREFIX_WEIGHT
            )
            if key_score >= threshold:
                scored.append((position, key_score))

        if not scored:
            return []

        scored.sort(key=lambda item: -item[1])
        reference = self.entries[scored[0][0]].translation_words

        ranked = []
        for rank, (position, key_score) in enumerate(scored):
            final = key_score
            if rank < RERANK_TOP:
                entry_words = self.entries[position].translation_words
                translation_score = (
                    jaccard(reference, entry_words) if reference and entry_words else 0.0
                )
                final = key_score * KEY_SCORE_WEIGHT + translation_score * TRANSLATION_SCORE_WEIGHT
            ranked.append((position, final, key_score))

        ranked.sort(key=lambda item: (-item[1], -item[2]))

        return [
            SimilarTranslation(
                key=self.entries[position].key,
                translation=self.entries[position].translation,
                score=final,
            )
            for position, final, _ in ranked[:limit]
        ]


def find_similar_translations(source_key: str, existing: Dict[str, SimilarValue],
                              limit: int = DEFAULT_LIMIT,
                              threshold: float = DEFAULT_THRESHOLD,
                              index: Optional[SimilarityIndex] = None) -> List[SimilarTranslation]:
    """Обёртка: строит индекс (если не передан) и ищет похожие переводы."""
    if index is None:
        if not existing:
            return []
        index = SimilarityIndex.build(existing)
    return index.find_similar(source_key, limit=limit, threshold=threshold)
