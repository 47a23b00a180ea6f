from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./conciergeops.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Cron trigger ----
    # Shared secret expected as "Authorization: Bearer <cron_secret>".
    # Empty means every cron call is rejected.
    cron_secret: str = ""

    # ---- Automation ----
    reminder_interval_days: int = 7
    conflict_unknown_worker_label: str = "Unknown worker"

    # ---- Outbound email (Resend HTTP API) ----
    resend_api_key: str | None = None
    resend_base_url: str = "https://api.resend.com"
    email_from: str = "ConciergeOps <noreply@conciergeops.local>"
    email_timeout_seconds: float = 10.0

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|header
    dev_auto_provision: bool = True

    # Dev header names
    dev_header_org_slug: str = "X-Org-Slug"
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    def model_post_init(self, __context) -> None:
        if int(self.reminder_interval_days) < 1:
            raise ValueError("reminder_interval_days must be >= 1")

        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if not (self.cron_secret or "").strip():
                raise ValueError("SECURITY: cron_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
