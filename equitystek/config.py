from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./equitystek.db"

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True

    # Dev header names
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # ---- JWT ----
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_cookie_name: str = "equitystek_jwt"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"

    # ---- Payment processor ----
    payment_api_key: str | None = None
    payment_base_url: str = "https://api.stripe.com/v1"
    payment_webhook_secret: str | None = None
    payment_webhook_tolerance_seconds: int = 300
    payment_currency: str = "usd"
    payment_timeout_seconds: float = 20.0

    # ---- Valuation rules ----
    valuation_cost_threshold: float = 1000.0
    valuation_materiality_threshold: float = 100.0

    # ---- Plans / billing ----
    default_plan_code: str = "basic"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        # prod refuses the dev-only defaults
        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")

            if self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
