"""Unit tests for AppSettings."""

from agentdesk.application.settings import AppSettings


def test_defaults(monkeypatch):
    for name in ("AGENTDESK_PROFILE", "AGENTDESK_CONFIG_DIR", "AGENTDESK_LOG_LEVEL", "AGENTDESK_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings(_env_file=None)

    assert settings.profile == "dev"
    assert settings.config_dir == "configs"
    assert settings.log_level == "WARNING"
    assert settings.json_logs is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AGENTDESK_PROFILE", "prod")
    monkeypatch.setenv("agentdesk_json_logs", "true")

    settings = AppSettings(_env_file=None)

    assert settings.profile == "prod"
    assert settings.json_logs is True


def test_load_from_file(tmp_path, monkeypatch):
    monkeypatch.delenv("AGENTDESK_LOG_LEVEL", raising=False)
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("log_level: DEBUG\nconfig_dir: /etc/agentdesk\n", encoding="utf-8")

    settings = AppSettings.load_from_file(config_path)

    assert settings.log_level == "DEBUG"
    assert settings.config_dir == "/etc/agentdesk"


def test_load_from_missing_file(tmp_path):
    assert isinstance(AppSettings.load_from_file(tmp_path / "missing.yaml"), AppSettings)
