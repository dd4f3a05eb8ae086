from __future__ import annotations

from pathlib import Path

from ledger_recon.config import (
    CONFIG_FILE_NAME,
    AppConfig,
    default_config_dir,
    load_or_create_config,
)


def test_missing_config_is_created_with_defaults(tmp_path: Path):
    config = load_or_create_config(tmp_path / "cfg")

    assert config == AppConfig()
    written = (tmp_path / "cfg" / CONFIG_FILE_NAME).read_text(encoding="utf-8")
    assert "overlap_threshold: 0.8" in written
    # the written default parses back to the same values
    assert load_or_create_config(tmp_path / "cfg") == AppConfig()


def test_values_are_read_from_yaml(tmp_path: Path):
    (tmp_path / CONFIG_FILE_NAME).write_text(
        "keyword_rules_path: rules/kw.yaml\n"
        "token_matching:\n  overlap_threshold: 0.5\n"
        "normalization:\n  min_token_length: 3\n"
        "import_batch_size: 7\n",
        encoding="utf-8",
    )
    config = load_or_create_config(tmp_path)

    assert config.token_matching.overlap_threshold == 0.5
    assert config.token_matching.to_token_matching_config().overlap_threshold == 0.5
    assert config.normalization.to_normalization_config().min_token_length == 3
    assert config.import_batch_size == 7
    assert config.resolve_keyword_rules_path(tmp_path) == tmp_path / "rules" / "kw.yaml"


def test_invalid_config_falls_back_to_defaults_without_overwriting(tmp_path: Path):
    path = tmp_path / CONFIG_FILE_NAME
    path.write_text("token_matching:\n  overlap_threshold: 3.5\n", encoding="utf-8")

    assert load_or_create_config(tmp_path) == AppConfig()
    assert "3.5" in path.read_text(encoding="utf-8")


def test_empty_config_is_defaults(tmp_path: Path):
    (tmp_path / CONFIG_FILE_NAME).write_text("", encoding="utf-8")
    assert load_or_create_config(tmp_path) == AppConfig()


def test_absolute_rules_path_is_kept(tmp_path: Path):
    absolute = tmp_path / "elsewhere" / "rules.yaml"
    config = AppConfig(keyword_rules_path=str(absolute))
    assert config.resolve_keyword_rules_path(tmp_path / "cfg") == absolute


def test_keyword_rules_are_loaded_relative_to_config_dir(tmp_path: Path):
    (tmp_path / "keyword-rules.yaml").write_text(
        "rules:\n  - keywords: [netflix]\n    category: SUBSCRIPTIONS\n", encoding="utf-8"
    )
    rules = AppConfig().load_keyword_rules(tmp_path)
    assert rules.find_matching_category({"netflix"}) == "SUBSCRIPTIONS"


def test_config_dir_comes_from_environment(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("LEDGER_RECON_CONFIG_DIR", str(tmp_path / "here"))
    assert default_config_dir() == tmp_path / "here"
    monkeypatch.delenv("LEDGER_RECON_CONFIG_DIR")
    assert default_config_dir() == Path.home() / ".ledger_recon"
