from __future__ import annotations

import pytest

from tagsync.scanner import (
    ScanResult,
    SourceScanner,
    TagKind,
    build_key,
    cook_template_text,
    fallback_text,
    requires_manual_translation,
)


def _scan(source: str, file_name: str = "main.tsx") -> ScanResult:
    return SourceScanner(".").scan_source(file_name, source.encode("utf-8"))


def test_plain_tag_produces_key_and_location() -> None:
    result = _scan("import { __ } from 'i18n';\nexport const t = __`OK`;\n")

    usage = result.usages["OK"]
    assert usage.kind is TagKind.PLAIN
    assert not usage.is_plural
    assert str(usage.locations[0]) == "main.tsx:2:18"


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("`Hello ${name}`", "Hello {1}"),
        ("`Hello ${name}!`", "Hello {1}!"),
        ("`${a} and ${b}!`", "{1} and {2}!"),
        ("`${x}`", "{1}"),
        ("`${a}${b}`", "{1}{2}"),
        ("`No interpolation`", "No interpolation"),
    ],
)
def test_interpolations_become_positional_placeholders(template: str, expected: str) -> None:
    result = _scan(f"const t = __{template};")

    assert list(result.usages) == [expected]


def test_build_key_numbers_every_slot_but_the_last_segment() -> None:
    assert build_key(["Hello ", ""]) == "Hello {1}"
    assert build_key(["", " of ", ""]) == "{1} of {2}"
    assert build_key(["plain"]) == "plain"


def test_plural_tag_with_count() -> None:
    result = _scan("export const count = __p(5)`# users`;", "main.ts")

    usage = result.usages["# users"]
    assert usage.kind is TagKind.PLURAL
    assert usage.is_plural
    assert result.malformed == []


def test_member_expression_tags_are_recognized() -> None:
    result = _scan("const a = i18n.__`Hi`;\nconst b = i18n.__p(n)`# apples`;")

    assert result.usages["Hi"].kind is TagKind.PLAIN
    assert result.usages["# apples"].kind is TagKind.PLURAL


def test_jsx_tags_track_interpolation_kinds() -> None:
    source = (
        "export function A({ name }) {\n"
        "  return <p>{__jsx`Click ${<b>here</b>} to continue`}</p>;\n"
        "}\n"
        "export const b = __jsx`Hello ${name}`;\n"
        "export const c = __pjsx(3)`# ${<i>files</i>}`;\n"
    )
    result = _scan(source)

    click = result.usages["Click {1} to continue"]
    assert click.kind is TagKind.JSX
    assert click.is_jsx
    assert not click.only_primitive_interpolations

    assert result.usages["Hello {1}"].only_primitive_interpolations

    files = result.usages["# {1}"]
    assert files.kind is TagKind.JSX_PLURAL
    assert files.is_plural and files.is_jsx


def test_malformed_usages_are_collected_and_scan_continues() -> None:
    source = (
        'const a = __("not a template");\n'
        "const b = __p(1);\n"
        "const c = __p`missing count`;\n"
        "const d = __`Still found`;\n"
    )
    result = _scan(source)

    assert list(result.usages) == ["Still found"]
    assert [m.line for m in result.malformed] == [1, 2, 3]
    assert all(m.file == "main.tsx" for m in result.malformed)
    assert "tagged template" in result.malformed[0].message


def test_duplicates_collapse_and_plural_wins() -> None:
    result = ScanResult()
    scanner = SourceScanner(".")
    scanner.scan_source("a.ts", b"const x = __`# items`;", result)
    scanner.scan_source("b.ts", b"const y = __p(2)`# items`;", result)

    usage = result.usages["# items"]
    assert usage.is_plural
    assert [loc.file for loc in usage.locations] == ["a.ts", "b.ts"]


def test_escape_sequences_are_cooked() -> None:
    result = _scan(r"const t = __`Line\nBreak \u{1F600} \x41 \`q\` \${x}`;")

    assert list(result.usages) == ["Line\nBreak \U0001F600 A `q` ${x}"]


def test_cook_template_text_handles_line_continuation_and_crlf() -> None:
    assert cook_template_text("a\\\nb") == "ab"
    assert cook_template_text("a\r\nb") == "a\nb"
    assert cook_template_text("tab\\there") == "tab\there"


def test_manual_markers() -> None:
    assert requires_manual_translation("$terms_of_service")
    assert requires_manual_translation("Welcome~~formal")
    assert not requires_manual_translation("Price is $5")
    assert fallback_text("Welcome~~formal") == "Welcome"
    assert fallback_text("Hello") == "Hello"


def test_directory_scan_skips_excluded_dirs_and_other_extensions(tmp_path) -> None:
    (tmp_path / "src" / "nested").mkdir(parents=True)
    (tmp_path / "src" / "node_modules" / "lib").mkdir(parents=True)
    (tmp_path / "src" / "b.tsx").write_text("export const b = __`Second`;", encoding="utf-8")
    (tmp_path / "src" / "nested" / "a.ts").write_text("export const a = __`First`;", encoding="utf-8")
    (tmp_path / "src" / "node_modules" / "lib" / "x.ts").write_text("__`Vendor`", encoding="utf-8")
    (tmp_path / "src" / "notes.md").write_text("__`Docs`", encoding="utf-8")

    result = SourceScanner(tmp_path / "src").scan()

    assert list(result.usages) == ["Second", "First"]
    assert result.files_scanned == 2
    assert str(result.usages["First"].locations[0]) == "nested/a.ts:1:18"
