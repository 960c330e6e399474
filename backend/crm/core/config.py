# backend/crm/core/config.py

from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./crm.db"

    # one secret for every token (accepts the older env names too)
    jwt_secret_key: str = Field(
        default="dev-secret-change-me",
        validation_alias=AliasChoices("JWT_SECRET_KEY", "JWT_SECRET", "SECRET_KEY"),
    )
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = 30

    reset_token_expire_minutes: int = 60
    password_min_length: int = 6
    password_hash_rounds: int = 29000

    # create the default admin/CSR on startup when the users table is empty
    seed_default_users: bool = False

    frontend_url: str = "http://localhost:3000"
    # Example: CORS_ORIGINS="https://crm.example.com,http://localhost:3000"
    cors_origins: str = ""

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: Optional[str] = None
    smtp_from_name: str = "Leads Management"
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def allow_origins(self) -> List[str]:
        if self.cors_origins.strip():
            return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return list({self.frontend_url.strip(), "http://localhost:3000"})


settings = Settings()
