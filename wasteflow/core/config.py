from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Remote API
    api_base: str = "http://127.0.0.1:8080"
    http_timeout: float = 30.0

    # Keep the driver moving when the server answers 4xx/5xx on a status update
    degrade_on_server_rejection: bool = True

    # Session (normally handed over by the login flow)
    driver_id: Optional[str] = None
    token: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # Dev server token signing
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 12 * 60

    model_config = SettingsConfigDict(env_prefix="WASTEFLOW_", env_file=".env", extra="ignore")


settings = Settings()
