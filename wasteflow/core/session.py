from typing import Optional

from pydantic import BaseModel

from wasteflow.core.config import Settings, settings as default_settings
from wasteflow.core.errors import AuthMissing

__all__ = ["AuthMissing", "SessionContext"]


class SessionContext(BaseModel):
    """Who is acting: the logged-in driver and their bearer token.

    Owned by whoever drives the screens (the CLI, an app controller) and
    passed explicitly to the components that call the API.
    """
    driver_id: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SessionContext":
        s = settings or default_settings
        return cls(driver_id=s.driver_id, token=s.token)

    @property
    def is_authenticated(self) -> bool:
        return bool((self.token or "").strip()) and bool((self.driver_id or "").strip())

    def bearer(self) -> str:
        token = (self.token or "").strip()
        if not token:
            raise AuthMissing("missing auth token")
        return token if token.startswith("Bearer ") else f"Bearer {token}"

    def require_driver_id(self) -> str:
        driver_id = (self.driver_id or "").strip()
        if not driver_id:
            raise AuthMissing("missing driver id")
        return driver_id

    def logout(self) -> None:
        self.token = None
        self.driver_id = None
