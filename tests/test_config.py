from bal.config import DEFAULT_BAN_MAX_NUMERO, DEFAULT_FETCH_TIMEOUT, Settings, load_settings


def test_load_settings_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.recovery_url("54084") == "https://adresse.data.gouv.fr/data/sbg-recovery/54084.csv"
    assert settings.ban_url("974").endswith("/adresses-974.csv.gz")


def test_load_settings_from_env():
    settings = load_settings(
        {
            "BAN_SOURCE_URL_PATTERN": "http://mirror.local/ban/<codeDepartement>.csv.gz",
            "RECOVERY_URL_PATTERN": "http://mirror.local/recovery/<codeCommune>.csv",
            "FETCH_TIMEOUT_SECONDS": "5.5",
            "BAN_MAX_NUMERO": "9000",
        }
    )
    assert settings.ban_url("54") == "http://mirror.local/ban/54.csv.gz"
    assert settings.recovery_url("2A004") == "http://mirror.local/recovery/2A004.csv"
    assert settings.fetch_timeout == 5.5
    assert settings.ban_max_numero == 9000


def test_load_settings_ignores_invalid_numbers():
    settings = load_settings({"FETCH_TIMEOUT_SECONDS": "soon", "BAN_MAX_NUMERO": "-3"})
    assert settings.fetch_timeout == DEFAULT_FETCH_TIMEOUT
    assert settings.ban_max_numero == DEFAULT_BAN_MAX_NUMERO
