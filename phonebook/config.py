import logging
import logging.handlers
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Remote table data service (PostgREST + GoTrue)
    data_service_url: str = "http://localhost:54321"
    data_service_key: str = ""
    data_service_rest_path: str = "/rest/v1"
    data_service_auth_path: str = "/auth/v1"
    phone_table: str = "phone_numbers"
    request_timeout: float = 10.0
    anonymous_identity: bool = True
    capacity_markers: str = "limit,límite"

    # Web
    secret_key: str = "change-me"
    session_max_age: int = 86400 * 7
    cors_origins: str = "*"
    cors_allow_credentials: bool = True
    trusted_hosts: str = "*"
    rate_limit_mutations: str = "30/minute"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10 MB
    log_backup_count: int = 5

    model_config = {"env_file": ".env"}

    @property
    def rest_url(self) -> str:
        return self.data_service_url.rstrip("/") + self.data_service_rest_path

    @property
    def auth_url(self) -> str:
        return self.data_service_url.rstrip("/") + self.data_service_auth_path

    @property
    def capacity_markers_list(self) -> list[str]:
        return [m.strip().lower() for m in self.capacity_markers.split(",") if m.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def trusted_hosts_list(self) -> list[str]:
        return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()


_DETAIL_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
_QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _rotating(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAIL_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging() -> None:
    """Route logs to the console, `app.log` (everything) and `error.log` (errors only).

    The data service client logs each identity it binds; request-level noise
    from httpx and the access log is held at WARNING.
    """
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root.addHandler(console)
    root.addHandler(_rotating(log_dir / "app.log", logging.DEBUG))
    root.addHandler(_rotating(log_dir / "error.log", logging.ERROR))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("phonebook").info("Logging to %s at %s", log_dir, settings.log_level.upper())
