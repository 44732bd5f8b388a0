"""Tests for configuration system."""

import os

import pytest
import yaml
from pydantic import ValidationError

from jarvis.config import (
    DEFAULT_MODEL,
    AgentConfig,
    ConfigError,
    apply_cli_overrides,
    backup_config,
    load_config,
    load_config_or_default,
    reset_config,
    restore_config,
    save_config,
)


class TestAgentConfigModel:
    """Test Pydantic config model validation."""

    def test_defaults(self):
        config = AgentConfig()
        assert config.model == DEFAULT_MODEL
        assert config.temperature == 0.7
        assert config.top_p == 0.8
        assert config.max_output_tokens == 1024
        assert config.memory_cap == 50
        assert config.history_window == 10
        assert config.streaming is True
        assert config.followup_strategy == "summary"

    def test_api_base_trailing_slash_stripped(self):
        assert AgentConfig(api_base="https://llm.internal.com/").api_base == "https://llm.internal.com"

    def test_api_base_requires_scheme(self):
        with pytest.raises(ValidationError):
            AgentConfig(api_base="llm.internal.com")

    def test_memory_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            AgentConfig(memory_cap=0)

    def test_history_window_not_negative(self):
        with pytest.raises(ValidationError):
            AgentConfig(history_window=-1)

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError):
            AgentConfig(followup_strategy="magic")

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            AgentConfig(colour="blue")

    def test_repr_masks_api_key(self):
        config = AgentConfig(api_key="sk-secret-key-123")
        assert "sk-secret-key-123" not in repr(config)
        assert "***" in repr(config)

    def test_api_key_falls_back_to_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert AgentConfig().resolved_api_key() == "from-env"
        assert AgentConfig(api_key="explicit").resolved_api_key() == "explicit"


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_config(tmp_path / "config.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="not a valid YAML mapping"):
            load_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("model: [unclosed\napi_key: x\n")
        with pytest.raises(ConfigError, match="Invalid configuration in"):
            load_config(path)

    def test_invalid_field_listed(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"memory_cap": 0}))
        with pytest.raises(ConfigError, match="memory_cap"):
            load_config(path)

    def test_valid_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"model": "gemini/gemini-2.5-pro", "streaming": False}))
        config = load_config(path)
        assert config.model == "gemini/gemini-2.5-pro"
        assert config.streaming is False

    def test_or_default_without_file(self, tmp_path):
        assert load_config_or_default(tmp_path / "none.yaml") == AgentConfig()

    def test_or_default_still_rejects_invalid(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a list\n")
        with pytest.raises(ConfigError):
            load_config_or_default(path)


class TestPersistence:
    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_config(AgentConfig(api_key="k", memory_cap=20), path)
        loaded = load_config(path)
        assert loaded.api_key == "k"
        assert loaded.memory_cap == 20

    def test_save_omits_unset_optionals(self, tmp_path):
        path = save_config(AgentConfig(), tmp_path / "config.yaml")
        data = yaml.safe_load(path.read_text())
        assert "api_key" not in data
        assert data["model"] == DEFAULT_MODEL

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_save_is_owner_only(self, tmp_path):
        path = save_config(AgentConfig(api_key="k"), tmp_path / "config.yaml")
        assert path.stat().st_mode & 0o777 == 0o600

    def test_reset(self, tmp_path):
        path = save_config(AgentConfig(), tmp_path / "config.yaml")
        assert reset_config(path) is True
        assert not path.exists()
        assert reset_config(path) is False

    def test_backup_and_restore(self, tmp_path):
        path = save_config(AgentConfig(model="gemini/a"), tmp_path / "config.yaml")
        backup = backup_config(tmp_path / "backup.yaml", path)
        save_config(AgentConfig(model="gemini/b"), path)

        restored = restore_config(backup, path)
        assert restored.model == "gemini/a"
        assert load_config(path).model == "gemini/a"

    def test_backup_without_config(self, tmp_path):
        with pytest.raises(ConfigError, match="Nothing to back up"):
            backup_config(tmp_path / "b.yaml", tmp_path / "missing.yaml")

    def test_restore_rejects_invalid_backup(self, tmp_path):
        path = save_config(AgentConfig(model="gemini/a"), tmp_path / "config.yaml")
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.dump({"memory_cap": -5}))
        with pytest.raises(ConfigError):
            restore_config(bad, path)
        assert load_config(path).model == "gemini/a"


class TestCliOverrides:
    def test_no_overrides_returns_same_instance(self):
        config = AgentConfig()
        assert apply_cli_overrides(config) is config

    def test_overrides_applied(self):
        config = apply_cli_overrides(AgentConfig(), model="gemini/x", streaming=False, temperature=0.1)
        assert config.model == "gemini/x"
        assert config.streaming is False
        assert config.temperature == 0.1

    def test_invalid_override(self):
        with pytest.raises(ConfigError, match="Invalid CLI override"):
            apply_cli_overrides(AgentConfig(), api_base="ftp://nope")
