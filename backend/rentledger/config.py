# backend/rentledger/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-change-me-rentledger-local-signing-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|test|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./rentledger.db"
    db_auto_create: bool = True

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth / tenancy ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True

    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # ---- JWT cookie / bearer ----
    jwt_secret: str = DEV_JWT_SECRET
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "rentledger_jwt"

    # ---- Rent defaults ----
    default_due_day: int = 1
    default_payment_status: str = "received"
    default_increase_type: str = "contract_based"

    # pending increases: dashboard window and "urgent" emphasis
    pending_increase_window_days: int = 90
    urgent_increase_days: int = 30

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == DEV_JWT_SECRET:
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

        if not 1 <= int(self.default_due_day) <= 31:
            raise ValueError("default_due_day must be between 1 and 31")


settings = Settings()
