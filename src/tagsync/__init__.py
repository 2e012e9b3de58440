"""
tagsync - синхронизация ключей переводов tagged-template с файлами локалей.

Модули:
- scanner: tree-sitter сканер вызовов __, __p, __jsx, __pjsx в TS/TSX
- catalog: Упорядоченная модель JSON-файла перевода одной локали
- differ: Сверка ключей (present / missing / extra)
- similarity: Поиск похожих переводов как контекста для AI
- translator: Граница с AI-переводчиком (LiteLLM), лог генераций
- fixer: Добавление недостающих ключей, маркеры непереведённых
- linter: Правила согласованности между локалями
- validator: Прогон по всем локалям, ValidationResult
- config: SyncConfig + YAML
- manager: CLI
"""

from .catalog import FileParseError, PluralValue, TranslationFile
from .config import ConfigError, SyncConfig, load_config
from .scanner import SourceScanner, TagKind, TranslationKeyUsage
from .translator import (
    AITranslator,
    TranslateBatchResult,
    TranslationContext,
    TranslationResult,
)
from .validator import ValidationResult, validate_translations

__version__ = "0.1.0"

__all__ = [
    "AITranslator",
    "ConfigError",
    "FileParseError",
    "PluralValue",
    "SourceScanner",
    "SyncConfig",
    "TagKind",
    "TranslateBatchResult",
    "TranslationContext",
    "TranslationFile",
    "TranslationKeyUsage",
    "TranslationResult",
    "ValidationResult",
    "load_config",
    "validate_translations",
]
