"""
Differ - сверка ключей из исходников с файлом перевода.

Результат: present / missing (manual + auto) / extra.
Форма значения (plural или строка) здесь не проверяется.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .catalog import TranslationFile
from .scanner import TranslationKeyUsage


@dataclass
class KeyDiff:
    present: List[str] = field(default_factory=list)
    missing_manual: List[TranslationKeyUsage] = field(default_factory=list)
    missing_auto: List[TranslationKeyUsage] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)
    missing: List[TranslationKeyUsage] = field(default_factory=list)
    # auto-ключи со значением null вне локали по умолчанию ($ и ~~ с null ждут человека)
    unresolved: List[TranslationKeyUsage] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.missing or self.extra)


def required_keys(usages: Dict[str, TranslationKeyUsage],
                  is_default_locale: bool) -> List[TranslationKeyUsage]:
    """
    Ключи, которые обязаны быть в файле локали.

    Локаль по умолчанию берёт строки прямо из исходников,
    поэтому для неё обязательны только plural-ключи.
    """
    return [
        usage for usage in usages.values()
        if usage.is_plural or not is_default_locale
    ]


def diff_keys(usages: Dict[str, TranslationKeyUsage], model: TranslationFile,
              is_default_locale: bool = False) -> KeyDiff:
    diff = KeyDiff()

    for usage in required_keys(usages, is_default_locale):
        if usage.key in model:
            diff.present.append(usage.key)
            if (not is_default_locale and not usage.requires_manual_translation
                    and model.get(usage.key) is None):
                diff.unresolved.append(usage)
            continue
        diff.missing.append(usage)
        if usage.requires_manual_translation:
            diff.missing_manual.append(usage)
        else:
            diff.missing_auto.append(usage)

    for entry in model.entries():
        if entry.is_marker:
            continue
        usage = usages.get(entry.key)
        if usage is None:
            diff.extra.append(entry.key)
        elif is_default_locale and not usage.is_plural and entry.value is None:
            # null в локали по умолчанию не нужен: fallback - сам ключ
            diff.extra.append(entry.key)

    return diff
