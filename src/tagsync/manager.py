#!/usr/bin/env python3
"""
Manager - CLI для синхронизации переводов.

Команды:
  validate   Проверяет файлы локалей по исходникам (с --fix исправляет)
  scan       Показывает ключи, найденные в исходниках

Использование:
  tagsync validate --src-dir src --config-dir locales --default en
  tagsync validate -r src -c locales -d en --fix --ai google
  tagsync validate -r src -c locales --json
  tagsync scan --src-dir src

Код выхода 1, если есть ошибки.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import AI_PROVIDERS, RULE_NAMES, ConfigError, SyncConfig, load_config
from .scanner import SourceScanner
from .translator import create_translator
from .validator import validate_translations

logger = logging.getLogger(__name__)


def make_color_fn(console: Console):
    """color_fn для ValidationResult: текст -> строка с ANSI-цветом."""
    def color_fn(color: str, text: str) -> str:
        with console.capture() as capture:
            console.print(Text(text, style=color), end="")
        return capture.get()
    return color_fn


def _config_from_args(args) -> SyncConfig:
    rules = {}
    for rule in args.warn_rule or []:
        rules[rule] = "warning"
    for rule in args.disable_rule or []:
        rules[rule] = "off"

    return load_config(
        args.config,
        src_dir=args.src_dir,
        config_dir=args.config_dir,
        default_locale=args.default,
        fix=args.fix or None,
        prune=args.prune or None,
        no_color=args.no_color or None,
        ai_provider=args.ai,
        ai_model=args.ai_model,
        max_translation_id_size=args.max_id_size,
        rules=rules or None,
    )


def cmd_validate(args) -> int:
    """Команда: проверка (и исправление) файлов переводов."""
    try:
        config = _config_from_args(args)
    except ConfigError as exc:
        Console(stderr=True).print(f"❌ {exc}", markup=False, soft_wrap=True)
        return 1

    console = Console(no_color=config.no_color, highlight=False)
    err_console = Console(stderr=True, no_color=config.no_color, highlight=False)

    translator = None
    if config.fix and config.ai_provider:
        translator = create_translator(
            config.ai_provider,
            model=config.ai_model,
            temperature=config.ai_temperature,
            max_retries=config.ai_max_retries,
            timeout=config.ai_timeout,
        )
    logger.debug("fix=%s, AI: %s", config.fix, getattr(translator, "model", None))

    result = validate_translations(
        config,
        translator=translator,
        color_fn=None if config.no_color or args.json else make_color_fn(console),
    )

    if args.json:
        print(result.to_json())
        return 1 if result.has_error else 0

    for line in result.infos:
        console.print(Text.from_ansi(line), soft_wrap=True)
    for line in result.errors:
        err_console.print(Text.from_ansi(line), soft_wrap=True)

    return 1 if result.has_error else 0


def cmd_scan(args) -> int:
    """Команда: вывод найденных ключей."""
    try:
        config = load_config(args.config, src_dir=args.src_dir)
    except ConfigError as exc:
        Console(stderr=True).print(f"❌ {exc}", markup=False, soft_wrap=True)
        return 1

    scan = SourceScanner(config.src_dir, config.extensions, config.exclude_dirs).scan()

    if args.json:
        data = {
            "files_scanned": scan.files_scanned,
            "keys": [
                {
                    "key": u.key,
                    "kind": u.kind.value,
                    "requires_manual_translation": u.requires_manual_translation,
                    "locations": [str(loc) for loc in u.locations],
                }
                for u in scan.usages.values()
            ],
            "malformed": [str(m) for m in scan.malformed],
        }
        print(json.dumps(data, indent=2, ensure_ascii=False))
        return 1 if scan.malformed else 0

    console = Console(highlight=False)
    table = Table(title=f"{config.src_dir}: {len(scan.usages)} keys in {scan.files_scanned} files")
    table.add_column("Key")
    table.add_column("Tag")
    table.add_column("Uses", justify="right")
    table.add_column("First location")
    for usage in scan.usages.values():
        key = Text(usage.key, style="yellow" if usage.requires_manual_translation else "")
        table.add_row(key, usage.kind.value, str(len(usage.locations)), str(usage.locations[0]))
    console.print(table)

    for malformed in scan.malformed:
        Console(stderr=True).print(f"❌ {malformed}", markup=False, soft_wrap=True)
    return 1 if scan.malformed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagsync",
        description="Синхронизация ключей переводов с JSON-файлами локалей",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Подробный лог")
    subparsers = parser.add_subparsers(dest="command")

    # validate
    p_val = subparsers.add_parser("validate", help="Проверить/исправить переводы")
    p_val.add_argument("--src-dir", "-r", default=None, help="Каталог исходников")
    p_val.add_argument("--config-dir", "-c", default=None, help="Каталог файлов локалей")
    p_val.add_argument("--default", "-d", default=None, help="Локаль по умолчанию (fallback)")
    p_val.add_argument("--fix", "-f", action="store_true", help="Добавить недостающие ключи")
    p_val.add_argument("--prune", action="store_true",
                       help="Удалить неиспользуемые ключи (вместе с --fix)")
    p_val.add_argument("--no-color", action="store_true", help="Без цвета")
    p_val.add_argument("--json", action="store_true", help="Итог в JSON (errors, infos, outcomes)")
    p_val.add_argument("--ai", choices=AI_PROVIDERS, default=None,
                       help="AI-провайдер для --fix (иначе I18N_AI_AUTO_TRANSLATE)")
    p_val.add_argument("--ai-model", default=None, help="Модель LiteLLM вместо модели провайдера")
    p_val.add_argument("--max-id-size", type=int, default=None,
                       help="Максимальная длина ключа (правило max-translation-id-size)")
    p_val.add_argument("--disable-rule", action="append", choices=RULE_NAMES,
                       metavar="RULE", help="Отключить правило")
    p_val.add_argument("--warn-rule", action="append", choices=RULE_NAMES,
                       metavar="RULE", help="Понизить правило до предупреждения")
    p_val.add_argument("--config", default=None, help="YAML-конфиг (по умолчанию tagsync.yaml)")

    # scan
    p_scan = subparsers.add_parser("scan", help="Показать ключи из исходников")
    p_scan.add_argument("--src-dir", "-r", default=None, help="Каталог исходников")
    p_scan.add_argument("--json", action="store_true", help="Вывод в JSON")
    p_scan.add_argument("--config", default=None, help="YAML-конфиг (по умолчанию tagsync.yaml)")

    return parser


def main(argv: Optional[List[str]] = None):
    """Точка входа CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "validate": cmd_validate,
        "scan": cmd_scan,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    code = handler(args)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
