import pytest

from wasteflow.core.config import Settings
from wasteflow.core.session import AuthMissing, SessionContext


def test_bearer_prefix_is_not_doubled():
    assert SessionContext(token="abc").bearer() == "Bearer abc"
    assert SessionContext(token="Bearer abc").bearer() == "Bearer abc"


@pytest.mark.parametrize("token", [None, "", "   "])
def test_blank_token_is_auth_missing(token):
    with pytest.raises(AuthMissing):
        SessionContext(driver_id="A", token=token).bearer()


def test_session_from_settings_and_logout(monkeypatch):
    monkeypatch.setenv("WASTEFLOW_DRIVER_ID", "A")
    monkeypatch.setenv("WASTEFLOW_TOKEN", "t0k")
    session = SessionContext.from_settings(Settings())
    assert session.is_authenticated
    assert session.require_driver_id() == "A"

    session.logout()
    assert not session.is_authenticated
    with pytest.raises(AuthMissing):
        session.require_driver_id()


def test_degrade_flag_from_env(monkeypatch):
    monkeypatch.setenv("WASTEFLOW_DEGRADE_ON_SERVER_REJECTION", "false")
    assert Settings().degrade_on_server_rejection is False
    assert Settings(_env_file=None).api_base.startswith("http")
