"""Client SDK defaults, read from ``SOLFEED_*`` environment variables.

Kept apart from the server settings so importing the SDK never loads database
or JWT configuration.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SOLFEED_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    API_BASE_URL: str = "http://localhost:8000/api/v1"
    TOGGLE_DEBOUNCE_SECONDS: float = 0.6
    CLIENT_TIMEOUT_SECONDS: float = 10.0


client_settings = ClientSettings()
