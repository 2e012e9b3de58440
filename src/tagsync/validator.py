#!/usr/bin/env python3
"""
Validator - проверка и исправление файлов переводов по исходникам.

Pipeline одного запуска:
1. Сканирование исходников (один раз на все локали)
2. Для каждого {config_dir}/*.json:
   загрузка -> структурные проверки -> diff -> (fix) добавление ключей -> запись
3. Без fix: правила линтера по всем загруженным локалям

Ошибка одной локали не прерывает обработку остальных.
Итог: ValidationResult(errors, infos), has_error = bool(errors).
"""

import json
import logging
import random
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .catalog import FileParseError, TranslationFile
from .config import SyncConfig
from .differ import diff_keys
from .fixer import FixOutcome, fix_locale
from .linter import TranslationLinter
from .scanner import ScanResult, SourceScanner, TranslationKeyUsage
from .translator import AITranslator

logger = logging.getLogger(__name__)

ColorFn = Callable[[str, str], str]


def _no_color(_color: str, text: str) -> str:
    return text


@dataclass
class ValidationResult:
    """Итог запуска."""
    errors: List[str] = field(default_factory=list)
    infos: List[str] = field(default_factory=list)
    outcomes: Dict[str, FixOutcome] = field(default_factory=dict)

    @property
    def has_error(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> Dict:
        return {
            "has_error": self.has_error,
            "errors": self.errors,
            "infos": self.infos,
            "outcomes": {name: asdict(o) for name, o in self.outcomes.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


class TranslationValidator:
    """Прогон проверки/исправления для одного SyncConfig."""

    def __init__(self, config: SyncConfig, translator: Optional[AITranslator] = None,
                 rng: Optional[random.Random] = None, color_fn: Optional[ColorFn] = None):
        self.config = config
        self.translator = translator
        self.rng = rng or random.Random()
        self.color_fn = color_fn or _no_color
        self.result = ValidationResult()
        self.default_file = f"{config.default_locale}.json" if config.default_locale else None

    def run(self) -> ValidationResult:
        scan = SourceScanner(
            Path(self.config.src_dir), self.config.extensions, self.config.exclude_dirs
        ).scan()

        for malformed in scan.malformed:
            self.result.errors.append(f"❌ {malformed}")

        if not scan.usages:
            self.result.errors.append(f"❌ No translations found in dir: {self.config.src_dir}")
            return self.result

        config_dir = Path(self.config.config_dir)
        if not config_dir.is_dir():
            self.result.errors.append(f"❌ Config dir not found: {self.config.config_dir}")
            return self.result

        locale_files = sorted(config_dir.glob("*.json"))
        if not locale_files:
            logger.warning("В %s нет файлов переводов", config_dir)

        loaded: Dict[str, TranslationFile] = {}
        for path in locale_files:
            model = self._process_locale(path, scan)
            if model is not None:
                loaded[path.name] = model

        if not self.config.fix and loaded:
            linter = TranslationLinter(self.config)
            for issue in linter.lint(scan.usages, loaded, self.default_file):
                target = self.result.errors if issue.severity == "error" else self.result.infos
                target.append(issue.format())

        return self.result

    # =========================================================================
    # Одна локаль
    # =========================================================================

    def _process_locale(self, path: Path, scan: ScanResult) -> Optional[TranslationFile]:
        name = path.name
        try:
            raw = path.read_text(encoding="utf-8")
            model = TranslationFile.load(raw, name)
        except (OSError, UnicodeDecodeError, FileParseError) as exc:
            self.result.errors.append(f"❌ {name} has invalid format: {exc}")
            return None

        is_default = name == self.default_file
        usages = scan.usages

        invalid_special = [
            u.key for u in usages.values()
            if u.requires_manual_translation and model.get(u.key) == u.key
        ]
        if invalid_special:
            self.result.errors.append(
                f"❌ {name} has invalid special translations (value equals key): {','.join(invalid_special)}"
            )
            return model

        invalid_plurals = [
            u.key for u in usages.values()
            if u.is_plural and isinstance(model.get(u.key), str)
        ]

        if self.config.fix:
            self._fix_locale(path, model, usages, invalid_plurals, is_default)
        else:
            self._check_locale(model, usages, invalid_plurals, is_default)
        return model

    def _check_locale(self, model: TranslationFile, usages: Dict[str, TranslationKeyUsage],
                      invalid_plurals: List[str], is_default: bool):
        name = model.name
        errors_before = len(self.result.errors)
        diff = diff_keys(usages, model, is_default)

        if invalid_plurals:
            self.result.errors.append(
                f"❌ {name} has invalid plural translations: {','.join(invalid_plurals)}"
            )

        # null вне локали по умолчанию - тоже недостающий перевод
        missing_count = len(diff.missing) + len(diff.unresolved)
        if missing_count or diff.extra:
            parts = []
            if missing_count:
                parts.append(f"missing {self._count(missing_count)}")
            if diff.extra:
                parts.append(f"extra {self._count(len(diff.extra))}")
            self.result.errors.append(f"❌ {name} has invalid translations: {', '.join(parts)}")

        self._report_manual_gaps(name, diff.missing_manual)

        if model.has_markers():
            self.result.errors.append(f"❌ {name} has missing translations")

        if len(self.result.errors) == errors_before:
            self.result.infos.append(f"✅ {name} translations are up to date")

    def _fix_locale(self, path: Path, model: TranslationFile,
                    usages: Dict[str, TranslationKeyUsage],
                    invalid_plurals: List[str], is_default: bool):
        name = model.name
        locale = path.stem
        had_markers = model.has_markers()

        # строка вместо plural: удаляем и добавляем заново как недостающий
        for key in invalid_plurals:
            model.delete(key)

        diff = diff_keys(usages, model, is_default)

        outcome = fix_locale(
            locale,
            diff.missing,
            model,
            translator=self.translator,
            rng=self.rng,
            similarity_limit=self.config.similarity_limit,
            similarity_threshold=self.config.similarity_threshold,
        )
        self.result.outcomes[name] = outcome

        # лишние ключи удаляются после fix: до этого они служат контекстом похожести
        if self.config.prune:
            for key in diff.extra:
                model.delete(key)
        elif diff.extra:
            logger.info("%s: %d неиспользуемых ключей сохранено", name, len(diff.extra))

        if outcome.resolved:
            self.result.infos.append(f"🤖 {name} AI-generated {len(outcome.resolved)} translations")
        if outcome.error:
            self.result.infos.append(f"⚠️ {name} AI translation failed: {outcome.error}")

        self._report_manual_gaps(name, diff.missing_manual)

        if outcome.added:
            self.result.infos.append(f"🟠 {name} translations keys were added")
        elif model.dirty:
            self.result.infos.append(f"✅ {name} translations fixed")
        elif had_markers:
            self.result.errors.append(f"❌ {name} has missing translations")
        else:
            self.result.infos.append(f"✅ {name} translations are up to date")

        if model.dirty:
            path.write_text(model.serialize(), encoding="utf-8")
            logger.info("Записан %s", path)

    def _report_manual_gaps(self, name: str, missing_manual: List[TranslationKeyUsage]):
        """$ и ~~ ключи, которых нет в файле. null у таких ключей - ожидание перевода."""
        gaps = [u.key for u in missing_manual]
        if gaps:
            self.result.errors.append(
                f"❌ {name} has missing $ or ~~ translations that require manual translation: "
                f"{','.join(gaps)}"
            )

    def _count(self, value: int) -> str:
        if self.config.no_color:
            return str(value)
        return self.color_fn("red", str(value))


def validate_translations(config: SyncConfig, translator: Optional[AITranslator] = None,
                          rng: Optional[random.Random] = None,
                          color_fn: Optional[ColorFn] = None) -> ValidationResult:
    """Точка входа для программного использования и CLI."""
    return TranslationValidator(config, translator=translator, rng=rng, color_fn=color_fn).run()
