from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/stockbook"
    app_env: str = "dev"
    app_cors_origins: str = "*"
    log_level: str = "INFO"
    # Session cookie signing
    auth_secret: str = "change-me"
    auth_cookie_name: str = "stockbook_session"
    auth_session_hours: float = 12
    # Default GST split: 18% combined as CGST 9% + SGST 9%
    default_cgst_rate: float = 9.0
    default_sgst_rate: float = 9.0
    default_igst_rate: float = 0.0
    low_stock_threshold: int = 5
    currency_label: str = "Rupees"
    # First-run user
    seed_admin_email: str = "admin@example.com"
    seed_admin_password: str = "admin"
    seed_business_name: str = "My Business"
    seed_business_address: str = "-"
    seed_business_contact: str = "-"


settings = Settings()
