from __future__ import annotations

import logging

import pytest

from tagsync.config import ConfigError, SyncConfig, load_config


def test_defaults() -> None:
    config = SyncConfig()

    assert config.similarity_limit == 3
    assert config.similarity_threshold == 0.12
    assert config.max_translation_id_size == 80
    assert config.ai_max_retries == 0
    assert config.rule_severity("constant-translation") == "error"


def test_yaml_file_is_loaded_and_overrides_win(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("I18N_AI_AUTO_TRANSLATE", raising=False)
    path = tmp_path / "tagsync.yaml"
    path.write_text(
        "src_dir: app\n"
        "config_dir: i18n\n"
        "default_locale: en\n"
        "similarity_limit: 5\n"
        "rules:\n"
        "  constant-translation: warning\n"
        "  max-translation-id-size: off\n",
        encoding="utf-8",
    )

    config = load_config(str(path), src_dir="web", rules={"unnecessary-plural": "off"}, fix=None)

    assert config.src_dir == "web"
    assert config.config_dir == "i18n"
    assert config.default_locale == "en"
    assert config.similarity_limit == 5
    assert not config.fix
    assert config.rules == {
        "constant-translation": "warning",
        "max-translation-id-size": "off",
        "unnecessary-plural": "off",
    }


def test_env_supplies_ai_provider(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("I18N_AI_AUTO_TRANSLATE", "openai")

    assert load_config().ai_provider == "openai"
    assert load_config(ai_provider="google").ai_provider == "google"


def test_unknown_keys_are_dropped_with_warning(tmp_path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "c.yaml"
    path.write_text("src_dir: app\nsurprise: 1\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="tagsync.config"):
        config = load_config(str(path))

    assert config.src_dir == "app"
    assert "surprise" in caplog.text


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "rules: [1, 2]\n",
        "rules:\n  constant-translation: loud\n",
        "rules:\n  no-such-rule: error\n",
        "ai_provider: anthropic\n",
        "src_dir: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(str(path))


def test_missing_explicit_config_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "absent.yaml"))
