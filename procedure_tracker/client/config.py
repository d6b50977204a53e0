from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """
    Connection settings for the procedures service.

    Both values are required; constructing the settings without them
    raises ``pydantic.ValidationError`` and the client cannot start.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROCEDURES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    SERVICE_URL: str = Field(min_length=1, description="Base URL of the procedures service, e.g. http://localhost:8000")
    API_KEY: str = Field(min_length=1, description="Public API key sent in the 'apikey' header")
