#!/usr/bin/env python3
"""
Linter - проверки согласованности переводов между локалями.

Запускается только в режиме проверки (без fix), по всем успешно
загруженным файлам локалей. Уровень каждого правила: error | warning | off.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .catalog import TranslationFile
from .config import SyncConfig
from .scanner import MANUAL_PREFIX, TranslationKeyUsage, requires_manual_translation

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\d+\}")


@dataclass
class LintIssue:
    rule: str
    severity: str
    location: str
    message: str

    def format(self) -> str:
        icon = "❌" if self.severity == "error" else "⚠️"
        return f"{icon} {self.location} {self.message}"


class TranslationLinter:
    """
    Правила:
    - constant-translation: строка одинакова во всех локалях
    - unnecessary-plural: plural использует только форму +2
    - jsx-without-interpolation: __jsx без {n}
    - jsx-without-jsx-nodes: __jsx, где все интерполяции примитивы
    - max-translation-id-size: слишком длинный ключ
    - incomplete-plural: "+2": null вне локали по умолчанию
    """

    def __init__(self, config: SyncConfig):
        self.config = config

    def lint(self, usages: Dict[str, TranslationKeyUsage], locales: Dict[str, TranslationFile],
             default_file: Optional[str] = None) -> List[LintIssue]:
        issues: List[LintIssue] = []
        for usage in usages.values():
            checks = [
                ("constant-translation", self._constant_translation(usage, locales, default_file)),
                ("unnecessary-plural", self._unnecessary_plural(usage, locales)),
                ("jsx-without-interpolation", self._jsx_without_interpolation(usage)),
                ("jsx-without-jsx-nodes", self._jsx_without_jsx_nodes(usage)),
                ("max-translation-id-size", self._max_id_size(usage)),
                ("incomplete-plural", self._incomplete_plural(usage, locales, default_file)),
            ]
            for rule, message in checks:
                if message is None:
                    continue
                severity = self.config.rule_severity(rule)
                if severity == "off":
                    continue
                issues.append(LintIssue(
                    rule=rule,
                    severity=severity,
                    location=str(usage.locations[0]) if usage.locations else usage.key,
                    message=message,
                ))

        logger.debug("Линтер: %d замечаний", len(issues))
        return issues

    # =========================================================================
    # Правила
    # =========================================================================

    def _constant_translation(self, usage, locales, default_file) -> Optional[str]:
        if usage.is_plural or requires_manual_translation(usage.key) or len(locales) < 2:
            return None

        values = []
        for file_name, model in locales.items():
            value = model.get(usage.key)
            if value is None and file_name == default_file:
                value = usage.key
            if not isinstance(value, str):
                return None
            values.append(value)

        if len(set(values)) == 1:
            return f'constant translation "{usage.key}" has the same value in all locales'
        return None

    def _unnecessary_plural(self, usage, locales) -> Optional[str]:
        if not usage.is_plural:
            return None
        plurals = [m.get(usage.key) for m in locales.values() if isinstance(m.get(usage.key), dict)]
        if not plurals:
            return None
        for value in plurals:
            if any(value.get(form) is not None for form in ("zero", "one", "many")):
                return None
        return f'unnecessary plural "{usage.key}" only uses the +2 form'

    def _jsx_without_interpolation(self, usage) -> Optional[str]:
        if usage.is_jsx and not _PLACEHOLDER_RE.search(usage.key):
            return f'__jsx used without interpolations for "{usage.key}"'
        return None

    def _jsx_without_jsx_nodes(self, usage) -> Optional[str]:
        if (usage.is_jsx and _PLACEHOLDER_RE.search(usage.key)
                and usage.only_primitive_interpolations):
            return f'__jsx used but all interpolations are primitives for "{usage.key}"'
        return None

    def _max_id_size(self, usage) -> Optional[str]:
        limit = self.config.max_translation_id_size
        if usage.key.startswith(MANUAL_PREFIX) or len(usage.key) <= limit:
            return None
        return f"translation ID exceeds {limit} characters"

    def _incomplete_plural(self, usage, locales, default_file) -> Optional[str]:
        if not usage.is_plural:
            return None
        incomplete = [
            file_name for file_name, model in locales.items()
            if file_name != default_file
            and isinstance(model.get(usage.key), dict)
            and model.get(usage.key).get("+2") is None
        ]
        if not incomplete:
            return None
        return f"incomplete plural translations ('+2' is null) for \"{usage.key}\": {', '.join(incomplete)}"
