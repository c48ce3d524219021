import json

import plenarlens.config.settings as config_settings
from plenarlens.cli import main


def test_save_keys_persists_both_values(tmp_path, monkeypatch):
    monkeypatch.setattr(config_settings, "_DEFAULT_CONFIG_LOCATIONS", (tmp_path / "absent.json",))
    target = tmp_path / "credentials.json"

    assert main(["--credentials", str(target), "save-keys", "--bundestag", "dip-key", "--gemini", "gem-key"]) == 0

    assert json.loads(target.read_text(encoding="utf8")) == {
        "bundestag_api_key": "dip-key",
        "gemini_api_key": "gem-key",
    }


def test_save_keys_keeps_stored_value_when_omitted(tmp_path, monkeypatch):
    monkeypatch.setattr(config_settings, "_DEFAULT_CONFIG_LOCATIONS", (tmp_path / "absent.json",))
    target = tmp_path / "credentials.json"
    target.write_text(json.dumps({"bundestag_api_key": "alt", "gemini_api_key": "gem"}), encoding="utf8")

    main(["--credentials", str(target), "save-keys", "--bundestag", "neu"])

    assert json.loads(target.read_text(encoding="utf8")) == {"bundestag_api_key": "neu", "gemini_api_key": "gem"}


def test_save_config_writes_effective_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(config_settings, "_DEFAULT_CONFIG_LOCATIONS", (tmp_path / "absent.json",))
    monkeypatch.setenv("PLENARLENS_GEMINI_PRO_MODEL", "gemini-3.0-pro-preview")
    monkeypatch.setenv("PLENARLENS_DIP_PAGE_SIZE", "50")
    target = tmp_path / "out" / "config.json"

    assert main(["save-config", "--output", str(target)]) == 0

    data = json.loads(target.read_text(encoding="utf8"))
    assert data["gemini"]["pro_model"] == "gemini-3.0-pro-preview"
    assert data["dip"]["page_size"] == 50
    assert data["logging"]["level"] == "INFO"


def test_save_config_defaults_to_config_option(tmp_path, monkeypatch):
    monkeypatch.setattr(config_settings, "_DEFAULT_CONFIG_LOCATIONS", (tmp_path / "absent.json",))
    target = tmp_path / "plenarlens.json"
    target.write_text(json.dumps({"gemini": {"thinking_budget": 1024}}), encoding="utf8")

    main(["--config", str(target), "save-config"])

    data = json.loads(target.read_text(encoding="utf8"))
    assert data["gemini"]["thinking_budget"] == 1024
    assert data["gemini"]["flash_model"] == "gemini-3.0-flash"
