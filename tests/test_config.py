"""Configuration layer: YAML files, environment overrides, validation."""

import pytest
import yaml

from zkaccess.config import (
    UINT64_MAX,
    ConfigError,
    ConfigValidationError,
    ConfigManager,
    get_config,
    get_config_manager,
)


class TestDefaults:

    def test_default_values(self):
        config = get_config()
        assert config.ownership.max_counter.get() == UINT64_MAX
        assert config.ownership.audit_transitions.get() is True
        assert config.witness.allow_injection.get() is False
        assert config.observability.log_format.get() == "json"

    def test_singleton(self):
        assert ConfigManager() is get_config_manager()

    def test_to_dict_and_yaml(self):
        config = get_config()
        data = config.to_dict()
        assert data["witness"] == {"allow_injection": False}
        assert yaml.safe_load(config.to_yaml()) == data

    def test_defaults_validate(self):
        assert get_config_manager().validate() == []


class TestOverrides:

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ZKACCESS_ALLOW_WITNESS_INJECTION", "1")
        assert get_config().witness.allow_injection.get() is True

    def test_env_int_override(self, monkeypatch):
        monkeypatch.setenv("ZKACCESS_OWNERSHIP_MAX_COUNTER", "0x10")
        assert get_config().ownership.max_counter.get() == 16

    def test_env_bad_int(self, monkeypatch):
        monkeypatch.setenv("ZKACCESS_OWNERSHIP_MAX_COUNTER", "many")
        with pytest.raises(ConfigValidationError):
            get_config().ownership.max_counter.get()

    def test_invalid_env_reported_by_validate(self, monkeypatch):
        monkeypatch.setenv("ZKACCESS_LOG_FORMAT", "xml")
        errors = get_config_manager().validate()
        assert any(e.startswith("observability.log_format") for e in errors)

    def test_set_by_path(self):
        mgr = get_config_manager()
        mgr.set("ownership.max_counter", "100")
        assert mgr.get("ownership.max_counter") == 100

    def test_set_rejects_invalid(self):
        with pytest.raises(ConfigValidationError):
            get_config_manager().set("ownership.max_counter", 0)
        with pytest.raises(ConfigValidationError):
            get_config_manager().set("observability.log_level", "loud")

    def test_unknown_path(self):
        with pytest.raises(ConfigError, match="Invalid config path"):
            get_config_manager().get("ownership.nope")
        with pytest.raises(ConfigError):
            get_config_manager().set("nope.value", 1)

    def test_get_section(self):
        assert get_config_manager().get("witness") == {"allow_injection": False}

    def test_change_callback(self):
        seen = []
        get_config().observability.log_level.on_change(lambda old, new: seen.append(new))
        get_config_manager().set("observability.log_level", "debug")
        assert seen == ["debug"]

    def test_reset(self):
        mgr = get_config_manager()
        mgr.set("witness.allow_injection", True)
        mgr.reset()
        assert get_config().witness.allow_injection.get() is False


class TestFiles:

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "zkaccess.yaml"
        path.write_text(yaml.dump({
            "ownership": {"max_counter": 1000, "audit_transitions": False},
            "witness": {"allow_injection": True},
        }))
        get_config_manager().load_from_file(path)
        config = get_config()
        assert config.ownership.max_counter.get() == 1000
        assert config.ownership.audit_transitions.get() is False
        assert config.witness.allow_injection.get() is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            get_config_manager().load_from_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ownership: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            get_config_manager().load_from_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            get_config_manager().load_from_file(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "unknown.yaml"
        path.write_text(yaml.dump({"ownership": {"salt": "x"}}))
        with pytest.raises(ConfigError, match="Unknown config key: ownership.salt"):
            get_config_manager().load_from_file(path)

    def test_empty_file_is_noop(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        get_config_manager().load_from_file(path)
        assert get_config().ownership.max_counter.get() == UINT64_MAX

    def test_load_defaults_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "zkaccess.yaml").write_text(yaml.dump({"observability": {"log_format": "text"}}))
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        get_config_manager().load_defaults()
        assert get_config().observability.log_format.get() == "text"

    def test_reload_notifies_watchers(self, tmp_path):
        path = tmp_path / "zkaccess.yaml"
        path.write_text(yaml.dump({"ownership": {"max_counter": 10}}))
        mgr = get_config_manager()
        mgr.load_from_file(path)

        seen = []
        mgr.watch(lambda cfg: seen.append(cfg.ownership.max_counter.get()))
        path.write_text(yaml.dump({"ownership": {"max_counter": 20}}))
        mgr.reload()
        assert seen == [20]


class TestSchemaExport:

    def test_export_schema(self):
        schema = get_config_manager().export_schema()
        injection = schema["properties"]["witness"]["allow_injection"]
        assert injection["type"] == "bool"
        assert injection["env_var"] == "ZKACCESS_ALLOW_WITNESS_INJECTION"
