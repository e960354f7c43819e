from dmoney.config import Settings


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("APPID", "APP_FROM_ENV")
    monkeypatch.setenv("API_BASE", "https://gw.example")
    monkeypatch.setenv("VERIFY_TLS", "false")
    monkeypatch.setenv("HTTP_TIMEOUT", "5")
    settings = Settings(_env_file=None)
    assert settings.appid == "APP_FROM_ENV"
    assert settings.api_base == "https://gw.example"
    assert settings.verify_tls is False
    assert settings.http_timeout == 5.0


def test_defaults(monkeypatch):
    for name in ("VERIFY_TLS", "PORT", "TRANS_CURRENCY", "PRIVATE_KEY_PATH"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.verify_tls is True
    assert settings.port == 9000
    assert settings.trans_currency == "DJF"
    assert settings.private_key_path == "./private_key_pkcs8.pem"


def test_missing_credentials(settings):
    assert settings.missing_credentials() == []
    incomplete = settings.model_copy(update={"app_secret": "", "notify_url": ""})
    assert incomplete.missing_credentials() == ["APP_SECRET", "NOTIFY_URL"]


def test_env_file_and_case_insensitive(monkeypatch):
    assert Settings.model_config["env_file"] == ".env"
    assert Settings.model_config["case_sensitive"] is False
    monkeypatch.setenv("merch_code", "lower_case_name")
    assert Settings(_env_file=None).merch_code == "lower_case_name"
