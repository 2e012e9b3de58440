#!/usr/bin/env python3
"""
Translator - граница между движком синхронизации и AI-переводчиком.

Движок формирует TranslationContext на каждый недостающий ключ и
вызывает translate_batch ОДИН раз на локаль. Реализация может:
- вернуть переводы для всех ключей
- вернуть часть ключей (частичный отказ)
- бросить исключение (полный отказ)

Backend по умолчанию - LiteLLM:
- google -> gemini/gemini-2.5-flash (GOOGLE_GENERATIVE_AI_API_KEY)
- openai -> gpt-5-mini (OPENAI_API_KEY)

Если задан AI_LOGS_FOLDER, каждый запрос пишется в ai-log-*.json
(хранятся 10 последних).
"""

import json
import logging
import os
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import litellm
from pydantic import Field, ValidationError

from .catalog import PluralValue
from .similarity import SimilarTranslation

logger = logging.getLogger(__name__)

# Провайдер -> модель LiteLLM
PROVIDER_MODELS: Dict[str, str] = {
    "google": "gemini/gemini-2.5-flash",
    "openai": "gpt-5-mini",
}

# Провайдер -> переменная окружения с API-ключом
PROVIDER_API_KEYS: Dict[str, str] = {
    "google": "GOOGLE_GENERATIVE_AI_API_KEY",
    "openai": "OPENAI_API_KEY",
}

AI_LOGS_FOLDER_ENV = "AI_LOGS_FOLDER"
MAX_LOG_FILES = 10
MAX_PROMPT_SIMILAR = 3


# =============================================================================
# Типы границы
# =============================================================================

@dataclass
class TranslationContext:
    """Запрос на перевод одного ключа."""
    source_key: str
    is_plural: bool
    target_locale: str
    similar_translations: List[SimilarTranslation] = field(default_factory=list)


@dataclass
class TranslationResult:
    """Результат перевода: type == 'string' (value: str) или 'plural' (value: PluralValue)."""
    type: str
    value: Union[str, PluralValue]

    @classmethod
    def string(cls, value: str) -> "TranslationResult":
        return cls(type="string", value=value)

    @classmethod
    def plural(cls, value: Union[PluralValue, Dict[str, Any]]) -> "TranslationResult":
        if not isinstance(value, PluralValue):
            value = PluralValue.model_validate(value)
        return cls(type="plural", value=value)

    @property
    def is_plural(self) -> bool:
        return self.type == "plural"

    def to_json(self) -> Any:
        if isinstance(self.value, PluralValue):
            return self.value.to_json()
        return self.value


@dataclass
class TokenUsage:
    input_tokens: int
    output_tokens: int
    total_tokens: int


@dataclass
class TranslateBatchResult:
    translations: Dict[str, TranslationResult] = field(default_factory=dict)
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None


class AITranslator(Protocol):
    """Любой объект с translate_batch - подходящий переводчик."""

    def translate_batch(self, contexts: List[TranslationContext]) -> TranslateBatchResult:
        ...


class GeneratedPlural(PluralValue):
    """Plural от модели: формы one и +2 обязательны."""
    one: str
    plus2: str = Field(alias="+2")


# =============================================================================
# Prompt / разбор ответа
# =============================================================================

def build_prompt(contexts: List[TranslationContext]) -> str:
    """Строит prompt для батча ключей одной локали."""
    lines = [
        "<role>",
        "You are a professional translator specializing in i18n localization.",
        "</role>",
        "",
        "<instructions>",
        "- Translate the provided keys to the specified target locale",
        "- Keep placeholders like {1}, {2}, # exactly as they appear",
        "- For plural translations, provide an object with one and +2 forms",
        "- Use similar existing translations as style/terminology reference",
        "- Respond with a single JSON object mapping every key to its translation",
        "</instructions>",
        "",
        "<plural-format>",
        "Plural translations must be objects with these keys:",
        "  one: text when count is 1",
        "  +2: text when count is 2 or more (use # as the number placeholder)",
        "",
        'English example: { "one": "1 item", "+2": "# items" }',
        'Portuguese example: { "one": "1 item", "+2": "# itens" }',
        "</plural-format>",
        "",
        "<keys>",
    ]

    for ctx in contexts:
        lines.append("")
        lines.append(f'Key: "{ctx.source_key}"')
        lines.append(f"Locale: {ctx.target_locale}")
        lines.append(f"Type: {'plural' if ctx.is_plural else 'string'}")
        if ctx.similar_translations:
            lines.append("Similar translations:")
            for match in ctx.similar_translations[:MAX_PROMPT_SIMILAR]:
                value = (
                    match.translation if isinstance(match.translation, str)
                    else json.dumps(match.translation, ensure_ascii=False)
                )
                lines.append(f'  "{match.key}" → {value}')

    lines.append("</keys>")
    return "\n".join(lines)


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


def parse_generated_object(obj: Dict[str, Any],
                           contexts: List[TranslationContext]) -> Dict[str, TranslationResult]:
    """
    Отбирает из ответа модели значения запрошенных ключей.

    Значение неверной формы пропускается (ключ считается непереведённым).
    """
    results: Dict[str, TranslationResult] = {}
    for ctx in contexts:
        value = obj.get(ctx.source_key)
        if value is None:
            continue
        if ctx.is_plural and isinstance(value, dict):
            try:
                plural = GeneratedPlural.model_validate(value)
            except ValidationError as exc:
                logger.debug("Невалидный plural для %r: %s", ctx.source_key, exc)
                continue
            results[ctx.source_key] = TranslationResult.plural(
                PluralValue.model_validate(plural.model_dump(by_alias=True))
            )
        elif not ctx.is_plural and isinstance(value, str):
            results[ctx.source_key] = TranslationResult.string(value)
        else:
            logger.debug("Неожиданный тип ответа для %r: %s", ctx.source_key, type(value).__name__)
    return results


# =============================================================================
# Лог AI-генераций
# =============================================================================

def _cleanup_old_logs(folder: Path):
    files = sorted(p for p in folder.glob("ai-log-*.json"))
    while len(files) >= MAX_LOG_FILES:
        oldest = files.pop(0)
        oldest.unlink()


def log_ai_generation(entry: Dict[str, Any]) -> Optional[Path]:
    """Пишет запись в AI_LOGS_FOLDER (если задан). Возвращает путь файла."""
    folder_name = os.environ.get(AI_LOGS_FOLDER_ENV)
    if not folder_name:
        return None

    folder = Path(folder_name)
    folder.mkdir(parents=True, exist_ok=True)
    _cleanup_old_logs(folder)

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    path = folder / f"ai-log-{timestamp}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(entry, f, indent=2, ensure_ascii=False, default=str)
    return path


# =============================================================================
# LiteLLM backend
# =============================================================================

class LiteLLMTranslator:
    """
    Переводчик через litellm.completion.

    Один вызов на батч. Ретраи - только встроенные в litellm (num_retries).
    Исключения пробрасываются вызывающему после записи в лог.
    """

    def __init__(self, provider: str, model: Optional[str] = None,
                 api_key: Optional[str] = None, temperature: float = 0.3,
                 max_retries: int = 0, timeout: float = 120.0):
        if provider not in PROVIDER_MODELS:
            raise ValueError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.model = model or PROVIDER_MODELS[provider]
        self.api_key = api_key or os.environ.get(PROVIDER_API_KEYS[provider], "")
        self.temperature = temperature
        self.max_retries = max_retries
        self.timeout = timeout

    def translate_batch(self, contexts: List[TranslationContext]) -> TranslateBatchResult:
        if not contexts:
            return TranslateBatchResult()

        prompt = build_prompt(contexts)
        started = time.time()
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": None,
            "prompt": prompt,
            "contexts": [asdict(ctx) for ctx in contexts],
            "results": [],
            "usage": None,
            "duration_ms": 0,
            "error": None,
        }

        try:
            response = litellm.completion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                api_key=self.api_key or None,
                temperature=self.temperature,
                num_retries=self.max_retries,
                timeout=self.timeout,
            )
            content = response.choices[0].message.content or ""
            model_id = getattr(response, "model", None) or self.model
            usage = _extract_usage(response)

            try:
                data = json.loads(strip_code_fences(content))
            except json.JSONDecodeError as exc:
                raise ValueError(f"AI response is not valid JSON: {exc}") from exc
            if not isinstance(data, dict):
                raise ValueError("AI response must be a JSON object")

            translations = parse_generated_object(data, contexts)
        except Exception as exc:
            log_entry["error"] = str(exc)
            log_entry["duration_ms"] = int((time.time() - started) * 1000)
            log_ai_generation(log_entry)
            raise

        log_entry.update({
            "model": model_id,
            "results": [
                {
                    "source_key": ctx.source_key,
                    "result": (
                        {"type": translations[ctx.source_key].type,
                         "value": translations[ctx.source_key].to_json()}
                        if ctx.source_key in translations else None
                    ),
                }
                for ctx in contexts
            ],
            "usage": asdict(usage) if usage else None,
            "duration_ms": int((time.time() - started) * 1000),
        })
        log_ai_generation(log_entry)

        logger.info(
            "AI (%s) перевёл %d/%d ключей", model_id, len(translations), len(contexts)
        )
        return TranslateBatchResult(translations=translations, model=model_id, usage=usage)


def _extract_usage(response: Any) -> Optional[TokenUsage]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    prompt_tokens = getattr(usage, "prompt_tokens", None)
    completion_tokens = getattr(usage, "completion_tokens", None)
    total_tokens = getattr(usage, "total_tokens", None)
    if prompt_tokens is None or completion_tokens is None or total_tokens is None:
        return None
    return TokenUsage(
        input_tokens=prompt_tokens,
        output_tokens=completion_tokens,
        total_tokens=total_tokens,
    )


def create_translator(provider: str, model: Optional[str] = None,
                      temperature: float = 0.3, max_retries: int = 0,
                      timeout: float = 120.0) -> Optional[LiteLLMTranslator]:
    """
    Создаёт LiteLLM-переводчик для провайдера.

    Без API-ключа в окружении возвращает None: fix продолжится без AI.
    """
    env_name = PROVIDER_API_KEYS.get(provider)
    if env_name is None:
        raise ValueError(f"Unknown AI provider: {provider}")
    api_key = os.environ.get(env_name)
    if not api_key:
        logger.warning("%s не задан, AI-перевод отключён", env_name)
        return None
    return LiteLLMTranslator(
        provider,
        model=model,
        api_key=api_key,
        temperature=temperature,
        max_retries=max_retries,
        timeout=timeout,
    )
