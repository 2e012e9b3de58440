"""
Config - конфигурация синхронизации переводов.

Источники (по возрастанию приоритета):
1. Значения по умолчанию в SyncConfig
2. YAML-файл (tagsync.yaml в рабочем каталоге или --config)
3. Переменная окружения I18N_AI_AUTO_TRANSLATE (провайдер AI)
4. Флаги CLI

Пример tagsync.yaml:
    src_dir: src
    config_dir: locales
    default_locale: en
    ai_provider: google
    similarity_limit: 3
    rules:
      constant-translation: warning
      max-translation-id-size: off
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "tagsync.yaml"
AI_PROVIDER_ENV = "I18N_AI_AUTO_TRANSLATE"

AI_PROVIDERS = ("google", "openai")

# Правила линтера и уровни
RULE_NAMES = (
    "constant-translation",
    "unnecessary-plural",
    "jsx-without-interpolation",
    "jsx-without-jsx-nodes",
    "max-translation-id-size",
    "incomplete-plural",
)
SEVERITIES = ("error", "warning", "off")


class ConfigError(ValueError):
    """Невалидный или нечитаемый файл конфигурации."""


@dataclass
class SyncConfig:
    """Параметры одного запуска валидации."""
    src_dir: str = "src"
    config_dir: str = "locales"
    default_locale: Optional[str] = None
    fix: bool = False
    prune: bool = False
    no_color: bool = False

    ai_provider: Optional[str] = None   # google | openai | None
    ai_model: Optional[str] = None      # переопределение модели провайдера
    ai_temperature: float = 0.3
    ai_max_retries: int = 0             # ретраи делает только litellm
    ai_timeout: float = 120.0

    similarity_limit: int = 3
    similarity_threshold: float = 0.12
    max_translation_id_size: int = 80

    rules: Dict[str, str] = field(default_factory=dict)
    extensions: List[str] = field(default_factory=lambda: [".ts", ".tsx"])
    exclude_dirs: List[str] = field(default_factory=lambda: ["node_modules", ".git"])

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.ai_provider is not None and self.ai_provider not in AI_PROVIDERS:
            raise ConfigError(
                f"Unknown AI provider '{self.ai_provider}', expected one of: {', '.join(AI_PROVIDERS)}"
            )
        for rule, severity in self.rules.items():
            if rule not in RULE_NAMES:
                raise ConfigError(f"Unknown rule '{rule}'")
            if severity not in SEVERITIES:
                raise ConfigError(
                    f"Invalid severity '{severity}' for rule '{rule}', expected one of: {', '.join(SEVERITIES)}"
                )

    def rule_severity(self, rule: str) -> str:
        return self.rules.get(rule, "error")


def load_config(path: Optional[str] = None, **overrides: Any) -> SyncConfig:
    """
    Собирает SyncConfig из YAML-файла, окружения и явных переопределений.

    Args:
        path: Путь к YAML. Если None - пробуется tagsync.yaml в cwd.
        **overrides: Значения из CLI; None означает "не задано".

    Returns:
        SyncConfig

    Raises:
        ConfigError: файл не читается, не YAML-объект или значения невалидны
    """
    values: Dict[str, Any] = {}

    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    if config_path.exists():
        values.update(_read_yaml(config_path))
    elif path:
        raise ConfigError(f"Config file not found: {path}")
    else:
        logger.debug("Конфиг %s не найден, используются значения по умолчанию", config_path)

    env_provider = os.environ.get(AI_PROVIDER_ENV)
    if env_provider and "ai_provider" not in values:
        values["ai_provider"] = env_provider

    for key, value in overrides.items():
        if value is None:
            continue
        if key == "rules":
            merged = dict(values.get("rules") or {})
            merged.update(value)
            values["rules"] = merged
        else:
            values[key] = value

    known = {f.name for f in fields(SyncConfig)}
    for key in list(values):
        if key not in known:
            logger.warning("Неизвестный параметр конфигурации: %s", key)
            del values[key]

    return SyncConfig(**values)


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping")

    rules = data.get("rules")
    if rules is not None:
        if not isinstance(rules, dict):
            raise ConfigError("'rules' must be a mapping of rule name to severity")
        # YAML 1.1 читает `off` как False
        data["rules"] = {
            name: ("off" if severity is False else str(severity))
            for name, severity in rules.items()
        }

    logger.info("Конфигурация загружена из %s", config_path)
    return data
