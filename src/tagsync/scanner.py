#!/usr/bin/env python3
"""
Scanner - извлекает ключи переводов из исходного кода TypeScript/TSX.

Использует tree-sitter (грамматики typescript/tsx) для разбора файлов.
НЕ использует LLM - чисто алгоритмическая обработка.

Распознаваемые вызовы:
1. __`...`            - обычная строка
2. __p(count)`...`    - строка с множественным числом
3. __jsx`...`         - строка с JSX-интерполяциями
4. __pjsx(count)`...` - JSX + множественное число

Тег может быть свойством объекта: i18n.__`...`.
Ключ строится из литеральных частей шаблона, каждая интерполяция
заменяется на позиционный плейсхолдер {n} (с 1).
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

MANUAL_PREFIX = "$"
MANUAL_SUFFIX = "~~"

_TS_LANGUAGE = Language(tstypescript.language_typescript())
_TSX_LANGUAGE = Language(tstypescript.language_tsx())

DEFAULT_EXTENSIONS = [".ts", ".tsx"]
DEFAULT_EXCLUDE_DIRS = ["node_modules", ".git"]


class TagKind(Enum):
    """Варианты тегов перевода."""
    PLAIN = "__"
    PLURAL = "__p"
    JSX = "__jsx"
    JSX_PLURAL = "__pjsx"

    @property
    def is_plural(self) -> bool:
        return self in (TagKind.PLURAL, TagKind.JSX_PLURAL)

    @property
    def is_jsx(self) -> bool:
        return self in (TagKind.JSX, TagKind.JSX_PLURAL)


_TAGS_BY_NAME = {kind.value: kind for kind in TagKind}


@dataclass
class UsageLocation:
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class TranslationKeyUsage:
    """Ключ перевода со всеми местами использования."""
    key: str
    kind: TagKind
    locations: List[UsageLocation] = field(default_factory=list)
    placeholder_count: int = 0
    only_primitive_interpolations: bool = True

    @property
    def is_plural(self) -> bool:
        return self.kind.is_plural

    @property
    def is_jsx(self) -> bool:
        return self.kind.is_jsx

    @property
    def requires_manual_translation(self) -> bool:
        return requires_manual_translation(self.key)


@dataclass
class MalformedUsage:
    """Вызов тега, который нельзя разобрать статически."""
    file: str
    line: int
    column: int
    tag: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column} {self.message}"


@dataclass
class ScanResult:
    usages: Dict[str, TranslationKeyUsage] = field(default_factory=dict)
    malformed: List[MalformedUsage] = field(default_factory=list)
    files_scanned: int = 0

    def add_usage(self, key: str, kind: TagKind, location: UsageLocation,
                  placeholder_count: int, only_primitives: bool):
        existing = self.usages.get(key)
        if existing is None:
            self.usages[key] = TranslationKeyUsage(
                key=key,
                kind=kind,
                locations=[location],
                placeholder_count=placeholder_count,
                only_primitive_interpolations=only_primitives,
            )
            return

        existing.locations.append(location)
        if not only_primitives:
            existing.only_primitive_interpolations = False
        # Если ключ хоть раз используется как plural - в файле нужен объект
        if kind.is_plural and not existing.kind.is_plural:
            existing.kind = TagKind.JSX_PLURAL if existing.kind.is_jsx else TagKind.PLURAL


def requires_manual_translation(key: str) -> bool:
    """$-ключи и ключи с аннотацией ~~ переводятся только человеком."""
    return key.startswith(MANUAL_PREFIX) or MANUAL_SUFFIX in key


def fallback_text(key: str) -> str:
    """Текст по умолчанию: всё до первого ~~ (аннотация отбрасывается)."""
    return key.split(MANUAL_SUFFIX, 1)[0]


_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b",
    "f": "\f", "v": "\v", "0": "\0",
}


def cook_template_text(raw: str) -> str:
    """Обрабатывает escape-последовательности литерала шаблона, как это делает JS."""
    raw = raw.replace("\r\n", "\n").replace("\r", "\n")

    def replace(match: "re.Match[str]") -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        if seq in ("\n", "\r\n", "\u2028", "\u2029"):
            return ""
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(replace, raw)


def build_key(segments: List[str]) -> str:
    """`Hello ${name}!` -> segments ['Hello ', '!'] -> 'Hello {1}!'."""
    key = ""
    for i, segment in enumerate(segments):
        key += segment
        if i != len(segments) - 1:
            key += f"{{{i + 1}}}"
    return key


_PRIMITIVE_NODES = {
    "string", "template_string", "number", "identifier",
    "member_expression", "call_expression", "true", "false", "null",
    "undefined", "this", "subscript_expression",
}

_JSX_NODES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}


def is_primitive_interpolation(node: Node) -> bool:
    """Проверяет, что интерполяция не может содержать JSX-узлов."""
    if node.type in _JSX_NODES:
        return False
    if node.type in _PRIMITIVE_NODES:
        return True
    if node.type == "ternary_expression":
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        return all(
            is_primitive_interpolation(n) for n in (consequence, alternative) if n is not None
        )
    if node.type == "binary_expression":
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        return all(is_primitive_interpolation(n) for n in (left, right) if n is not None)
    if node.type == "parenthesized_expression":
        return all(is_primitive_interpolation(n) for n in node.named_children)
    return True


class TemplateFileExtractor:
    """Находит вызовы тегов перевода в одном разобранном файле."""

    def __init__(self, file_path: str, source: bytes, result: ScanResult):
        self.file_path = file_path
        self.source = source
        self.result = result

    def extract(self, root: Node):
        # Обход в глубину без рекурсии: порядок = порядок в исходнике
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                self._visit_call(node)
            stack.extend(reversed(node.children))

    def _visit_call(self, node: Node):
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None:
            return

        name = _tag_name(function)
        kind = _TAGS_BY_NAME.get(name) if name else None

        if kind is not None and not kind.is_plural:
            if arguments.type == "template_string":
                self._add_usage(node, kind, arguments)
            else:
                self._add_malformed(node, kind, f"`{kind.value}` must be used as a tagged template")
            return

        if kind is not None and kind.is_plural:
            if arguments.type == "template_string":
                self._add_malformed(node, kind, f"`{kind.value}` requires a count: `{kind.value}(count)`")
            elif not _is_tag_of_template(node):
                self._add_malformed(
                    node, kind, f"`{kind.value}(count)` must be followed by a template literal"
                )
            return

        if function.type == "call_expression" and arguments.type == "template_string":
            inner_function = function.child_by_field_name("function")
            inner_name = _tag_name(inner_function) if inner_function is not None else None
            inner_kind = _TAGS_BY_NAME.get(inner_name) if inner_name else None
            if inner_kind is not None and inner_kind.is_plural:
                self._add_usage(node, inner_kind, arguments)

    def _add_usage(self, node: Node, kind: TagKind, template: Node):
        segments, expressions = self._split_template(template)
        key = build_key(segments)
        only_primitives = all(is_primitive_interpolation(e) for e in expressions)
        self.result.add_usage(
            key, kind, self._location(node), len(expressions), only_primitives
        )

    def _add_malformed(self, node: Node, kind: TagKind, message: str):
        location = self._location(node)
        self.result.malformed.append(MalformedUsage(
            file=location.file,
            line=location.line,
            column=location.column,
            tag=kind.value,
            message=message,
        ))

    def _split_template(self, template: Node) -> Tuple[List[str], List[Node]]:
        """Делит template_string на литеральные части и выражения интерполяций."""
        segments: List[str] = []
        expressions: List[Node] = []
        cursor = template.start_byte + 1  # открывающая `
        for child in template.named_children:
            if child.type != "template_substitution":
                continue
            segments.append(self._text(cursor, child.start_byte))
            inner = [c for c in child.named_children if c.type != "comment"]
            if inner:
                expressions.append(inner[0])
            cursor = child.end_byte
        segments.append(self._text(cursor, template.end_byte - 1))
        return segments, expressions

    def _text(self, start: int, end: int) -> str:
        return cook_template_text(self.source[start:end].decode("utf-8"))

    def _location(self, node: Node) -> UsageLocation:
        row, column = node.start_point
        return UsageLocation(file=self.file_path, line=row + 1, column=column + 1)


def _tag_name(node: Node) -> Optional[str]:
    if node.type == "identifier":
        return node.text.decode("utf-8")
    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is not None:
            return prop.text.decode("utf-8")
    return None


def _is_tag_of_template(node: Node) -> bool:
    """__p(n) должен быть функцией внешнего вызова с template_string."""
    parent = node.parent
    if parent is None or parent.type != "call_expression":
        return False
    function = parent.child_by_field_name("function")
    arguments = parent.child_by_field_name("arguments")
    return (
        function is not None
        and function.start_byte == node.start_byte
        and function.end_byte == node.end_byte
        and arguments is not None
        and arguments.type == "template_string"
    )


class SourceScanner:
    """
    Сканер исходников - обходит дерево каталогов и собирает ключи переводов.

    Ошибочные вызовы тегов не прерывают сканирование: они накапливаются
    в ScanResult.malformed и сообщаются все сразу.
    """

    def __init__(self, source_root: Path, extensions: Optional[List[str]] = None,
                 exclude_dirs: Optional[List[str]] = None):
        self.source_root = Path(source_root)
        self.extensions = extensions or list(DEFAULT_EXTENSIONS)
        self.exclude_dirs = exclude_dirs or list(DEFAULT_EXCLUDE_DIRS)

    def scan(self) -> ScanResult:
        result = ScanResult()
        for file_path in self._find_files():
            rel_path = file_path.relative_to(self.source_root).as_posix()
            try:
                source = file_path.read_bytes()
            except OSError as exc:
                logger.warning("Не удалось прочитать %s: %s", file_path, exc)
                continue
            result.files_scanned += 1
            self.scan_source(rel_path, source, result)

        logger.info(
            "Сканирование %s: файлов %d, ключей %d, ошибочных вызовов %d",
            self.source_root, result.files_scanned, len(result.usages), len(result.malformed),
        )
        return result

    def scan_source(self, file_name: str, source: bytes,
                    result: Optional[ScanResult] = None) -> ScanResult:
        """Разбирает один файл (по содержимому) и дополняет result."""
        result = result if result is not None else ScanResult()
        if b"__" not in source:
            return result

        language = _TS_LANGUAGE if file_name.endswith(".ts") else _TSX_LANGUAGE
        tree = Parser(language).parse(source)
        if tree.root_node.has_error:
            logger.debug("Синтаксические ошибки в %s, разбор продолжен", file_name)

        TemplateFileExtractor(file_name, source, result).extract(tree.root_node)
        return result

    def _find_files(self) -> Iterator[Path]:
        files = []
        for path in self.source_root.rglob("*"):
            if not path.is_file() or path.suffix not in self.extensions:
                continue
            parts = path.relative_to(self.source_root).parts
            if any(exc in parts for exc in self.exclude_dirs):
                continue
            files.append(path)
        return iter(sorted(files))
