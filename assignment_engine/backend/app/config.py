from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

ASSIGNMENT_POLICIES = ("oldest_first", "priority", "requeue_first")
STORE_BACKENDS = ("sql", "memory")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./assignments.db"
    store_backend: str = "sql"  # sql|memory

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Allocation ----
    assignment_policy: str = "requeue_first"  # oldest_first|priority|requeue_first

    # ---- Agent defaults ----
    default_agent_capacity: int = 30
    default_agent_role: str = "Item Review"

    # ---- Ingestion / bootstrap ----
    data_dir: str = "./data"
    initial_items_csv: str = "output.csv"
    roster_csv: str = "roster.csv"
    import_batch_size: int = 500
    bootstrap_on_startup: bool = False

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    def model_post_init(self, __context) -> None:
        policy = (self.assignment_policy or "").strip().lower()
        if policy not in ASSIGNMENT_POLICIES:
            raise ValueError(f"assignment_policy must be one of {', '.join(ASSIGNMENT_POLICIES)}")
        object.__setattr__(self, "assignment_policy", policy)

        backend = (self.store_backend or "sql").strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(f"store_backend must be one of {', '.join(STORE_BACKENDS)}")
        object.__setattr__(self, "store_backend", backend)

        if int(self.default_agent_capacity) <= 0:
            raise ValueError("default_agent_capacity must be a positive integer")

        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            # the in-memory store loses every assignment on restart
            if self.store_backend == "memory":
                raise ValueError("store_backend=memory is not allowed in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
