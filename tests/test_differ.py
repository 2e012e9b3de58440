from __future__ import annotations

from typing import Dict

from tagsync.catalog import TranslationFile
from tagsync.differ import diff_keys
from tagsync.scanner import SourceScanner, TranslationKeyUsage

SOURCE = (
    "export const a = __`Hello`;\n"
    "export const b = __`$terms_of_service`;\n"
    "export const c = __p(2)`# items`;\n"
    "export const d = __`Welcome~~formal`;\n"
)


def _usages() -> Dict[str, TranslationKeyUsage]:
    return SourceScanner(".").scan_source("main.ts", SOURCE.encode("utf-8")).usages


def test_missing_keys_are_split_by_manual_markers_in_source_order() -> None:
    diff = diff_keys(_usages(), TranslationFile.load("{}"), is_default_locale=False)

    assert [u.key for u in diff.missing] == ["Hello", "$terms_of_service", "# items", "Welcome~~formal"]
    assert [u.key for u in diff.missing_manual] == ["$terms_of_service", "Welcome~~formal"]
    assert [u.key for u in diff.missing_auto] == ["Hello", "# items"]
    assert diff.extra == []


def test_extra_keys_exclude_markers_and_sentinel() -> None:
    model = TranslationFile.load(
        '{"old": "x", "Hello": "Olá", "👇 missing start 👇": "🛑 delete this line 🛑", "": ""}'
    )

    diff = diff_keys(_usages(), model)

    assert diff.extra == ["old"]
    assert diff.present == ["Hello"]


def test_default_locale_only_requires_plurals() -> None:
    model = TranslationFile.load('{"Hello": null, "$terms_of_service": "Terms"}')

    diff = diff_keys(_usages(), model, is_default_locale=True)

    assert [u.key for u in diff.missing] == ["# items"]
    # null string value in the fallback locale is not needed
    assert diff.extra == ["Hello"]


def test_diff_ignores_file_key_order() -> None:
    forward = TranslationFile.load('{"Hello": "a", "# items": {"+2": "#"}, "gone": "g"}')
    backward = TranslationFile.load('{"gone": "g", "# items": {"+2": "#"}, "Hello": "a"}')

    first = diff_keys(_usages(), forward)
    second = diff_keys(_usages(), backward)

    assert set(first.present) == set(second.present)
    assert [u.key for u in first.missing] == [u.key for u in second.missing]
    assert first.extra == second.extra == ["gone"]


def test_shape_is_not_checked_by_diff() -> None:
    model = TranslationFile.load('{"# items": "not a plural"}')

    diff = diff_keys(_usages(), model, is_default_locale=True)

    assert diff.present == ["# items"]
    assert not diff.has_changes


def test_null_auto_values_are_unresolved_outside_default_locale() -> None:
    model = TranslationFile.load(
        '{"Hello": null, "$terms_of_service": null, "# items": null, "Welcome~~formal": "Bem-vindo"}'
    )

    diff = diff_keys(_usages(), model)
    default_diff = diff_keys(_usages(), model, is_default_locale=True)

    assert [u.key for u in diff.unresolved] == ["Hello", "# items"]
    assert diff.missing == []
    assert default_diff.unresolved == []
