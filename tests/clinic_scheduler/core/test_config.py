import pytest

from clinic_scheduler.core import config


def test_list_and_bool_parsing() -> None:
    assert config._get_list(' Sat, ,Sun ', 'Mon') == ['Sat', 'Sun']
    assert config._get_list(None, 'Mon,Tue') == ['Mon', 'Tue']
    assert config._get_bool('Yes') is True
    assert config._get_bool(None, default=True) is True
    assert config._get_bool('off', default=True) is False


def test_validate_runtime_config_accepts_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')

    config.validate_runtime_config()


def test_production_requires_jwt_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError, match='JWT_SECRET_KEY'):
        config.validate_runtime_config()


def test_unknown_timezone_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'CLINIC_TIMEZONE', 'Mars/Olympus_Mons')

    with pytest.raises(RuntimeError, match='CLINIC_TIMEZONE'):
        config.validate_runtime_config()


def test_unknown_closed_day_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'CLINIC_CLOSED_DAYS', ['Sun', 'Funday'])

    with pytest.raises(RuntimeError, match='Funday'):
        config.validate_runtime_config()


def test_lead_hours_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'REMINDER_LEAD_HOURS', [12.0, 0])

    with pytest.raises(RuntimeError, match='REMINDER_LEAD_HOURS'):
        config.validate_runtime_config()
