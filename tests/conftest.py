from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from tagsync.config import SyncConfig
from tagsync.translator import TranslateBatchResult, TranslationContext, TranslationResult
from tagsync.validator import ValidationResult, validate_translations


class FixedRandom:
    """Источник случайности с фиксированным значением."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


class MockTranslator:
    def __init__(self, handler: Callable[[TranslationContext], Optional[TranslationResult]]) -> None:
        self.handler = handler
        self.calls: List[List[TranslationContext]] = []

    def translate_batch(self, contexts: List[TranslationContext]) -> TranslateBatchResult:
        self.calls.append(list(contexts))
        translations = {}
        for ctx in contexts:
            result = self.handler(ctx)
            if result is not None:
                translations[ctx.source_key] = result
        return TranslateBatchResult(translations=translations)

    @property
    def contexts(self) -> List[TranslationContext]:
        return [ctx for batch in self.calls for ctx in batch]


class FailingTranslator:
    def __init__(self, message: str = "AI unavailable") -> None:
        self.message = message
        self.calls = 0

    def translate_batch(self, contexts: List[TranslationContext]) -> TranslateBatchResult:
        self.calls += 1
        raise RuntimeError(self.message)


def string_translator(fn: Callable[[str], str]) -> MockTranslator:
    return MockTranslator(
        lambda ctx: None if ctx.is_plural else TranslationResult.string(fn(ctx.source_key))
    )


def tracking_translator() -> MockTranslator:
    def handler(ctx: TranslationContext) -> TranslationResult:
        if ctx.is_plural:
            return TranslationResult.plural({"one": "1 x", "+2": "# x"})
        return TranslationResult.string(f"translated:{ctx.source_key}")

    return MockTranslator(handler)


class SyncProject:
    """Временный проект: src/ с исходниками и locales/ с файлами переводов."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.src_dir = root / "src"
        self.config_dir = root / "locales"
        self.src_dir.mkdir()
        self.config_dir.mkdir()

    def add_source(self, name: str, content: str) -> Path:
        path = self.src_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def add_locale(self, name: str, content: object) -> Path:
        path = self.config_dir / name
        raw = content if isinstance(content, str) else json.dumps(content, ensure_ascii=False)
        path.write_text(raw, encoding="utf-8")
        return path

    def read_raw(self, name: str) -> str:
        return (self.config_dir / name).read_text(encoding="utf-8")

    def read_json(self, name: str) -> Dict:
        return json.loads(self.read_raw(name))

    def config(self, **kwargs) -> SyncConfig:
        return SyncConfig(src_dir=str(self.src_dir), config_dir=str(self.config_dir), **kwargs)

    def validate(self, translator=None, rng=None, color_fn=None, **kwargs) -> ValidationResult:
        return validate_translations(
            self.config(**kwargs),
            translator=translator,
            rng=rng if rng is not None else FixedRandom(0.5),
            color_fn=color_fn,
        )


@pytest.fixture
def project(tmp_path: Path) -> SyncProject:
    return SyncProject(tmp_path)
