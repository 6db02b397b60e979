from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(alias="DATABASE_URL")

    # JWT Configuration
    secret_key: str = Field(alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Notifications
    notification_language: str = Field(default="fr", alias="NOTIFICATION_LANGUAGE")
    company_name: str = Field(default="UNIVERSAL SHIPPING SERVICES", alias="COMPANY_NAME")
    notification_sender: str | None = Field(default=None, alias="NOTIFICATION_SENDER")

    # Subscriptions
    max_extension_months: int = Field(default=36, alias="MAX_EXTENSION_MONTHS")

    # Frontend URL, used for CORS
    frontend_url: str | None = Field(default=None, alias="FRONTEND_URL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("notification_sender", "frontend_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for optional string fields."""
        if v == "":
            return None
        return v

    @field_validator("notification_language", mode="before")
    @classmethod
    def normalize_language(cls, v: str | None) -> str:
        """Only French and English templates exist; anything else falls back to French."""
        if not v:
            return "fr"
        v = v.strip().lower()
        return v if v in ("fr", "en") else "fr"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
