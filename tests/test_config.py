import pytest
from pydantic import ValidationError

from fittings_portal.config import EMAILJS_SEND_URL, load_config
from fittings_portal.database.local_store import LocalStore
from fittings_portal.database.remote_store import RestRemoteStore
from fittings_portal.database.remote_store_sql import SqlRemoteStore
from fittings_portal.portal import make_local_store, make_remote_store


def test_defaults_without_environment():
    config = load_config(environ={})

    assert config.log_level == "INFO"
    assert config.admin.session_ttl_hours == 24
    assert config.remote_store.timeout_seconds == 15.0
    assert config.email.api_url == EMAILJS_SEND_URL
    assert make_remote_store(config).is_configured() is False
    assert isinstance(make_local_store(config), LocalStore)


def test_environment_overrides_yaml(tmp_path):
    path = tmp_path / "portal.yml"
    path.write_text(
        "log_level: DEBUG\n"
        "company:\n"
        "  name: Yaml Fittings\n"
        "  phone: '111'\n"
        "remote_store:\n"
        "  url: https://yaml.example.co\n",
        encoding="utf-8",
    )
    environ = {
        "PORTAL_CONFIG_PATH": str(path),
        "COMPANY_NAME": "Env Fittings",
        "REMOTE_STORE_ANON_KEY": "key",
        "SESSION_TTL_HOURS": "12",
    }

    config = load_config(environ=environ)

    assert config.log_level == "DEBUG"
    assert config.company.name == "Env Fittings"
    assert config.company.phone == "111"
    assert config.admin.session_ttl_hours == 12
    store = make_remote_store(config)
    assert isinstance(store, RestRemoteStore)
    assert store.is_configured() is True


def test_sql_backend_selected_by_flag(tmp_path):
    config = load_config(
        environ={"DATABASE_URL": f"sqlite:///{tmp_path / 'p.db'}", "USE_SQL_REMOTE_STORE": "true"}
    )
    assert isinstance(make_remote_store(config), SqlRemoteStore)


def test_invalid_values_raise():
    with pytest.raises(ValidationError):
        load_config(environ={"REMOTE_STORE_TIMEOUT": "-1"})


def test_missing_yaml_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(config_path=tmp_path / "missing.yml", environ={})
