import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


DEFAULT_JWT_SECRET = "change-me"
DEFAULT_JWT_REFRESH_SECRET = "change-me-too"


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class SchedulerParams:
    initial_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    min_interval_days: int = 1
    first_interval_days: int = 1
    second_interval_days: int = 6
    max_interval_days: int = 365
    passing_quality: int = 3
    max_level: int = 8


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    database_url: str = "sqlite:///./studycards.db"
    database_echo: bool = False

    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_refresh_secret_key: str = DEFAULT_JWT_REFRESH_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_expires_minutes: int = 15
    jwt_refresh_expires_days: int = 7
    jwt_issuer: str = "studycards-api"
    jwt_audience: str = "studycards-users"

    bcrypt_rounds: int = 12
    cors_origins: tuple[str, ...] = ("http://localhost:5173",)

    admin_email: str = ""
    admin_password: str = ""

    scheduler: SchedulerParams = field(default_factory=SchedulerParams)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


def load_settings(env_file: str | None = None) -> Settings:
    """Build settings from the process environment (and a .env file if present)."""
    load_dotenv(env_file)

    scheduler = SchedulerParams(
        initial_ease_factor=float(os.getenv("SRS_INITIAL_EASE_FACTOR", "2.5")),
        min_ease_factor=float(os.getenv("SRS_MIN_EASE_FACTOR", "1.3")),
        min_interval_days=int(os.getenv("SRS_MIN_INTERVAL_DAYS", "1")),
        first_interval_days=int(os.getenv("SRS_FIRST_INTERVAL_DAYS", "1")),
        second_interval_days=int(os.getenv("SRS_SECOND_INTERVAL_DAYS", "6")),
        max_interval_days=int(os.getenv("SRS_MAX_INTERVAL_DAYS", "365")),
        passing_quality=int(os.getenv("SRS_PASSING_QUALITY", "3")),
        max_level=int(os.getenv("SRS_MAX_LEVEL", "8")),
    )

    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./studycards.db"),
        database_echo=_get_bool(os.getenv("DATABASE_ECHO"), default=False),
        jwt_secret_key=os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET),
        jwt_refresh_secret_key=os.getenv("JWT_REFRESH_SECRET_KEY", DEFAULT_JWT_REFRESH_SECRET),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_access_expires_minutes=int(os.getenv("JWT_ACCESS_EXPIRES_MINUTES", "15")),
        jwt_refresh_expires_days=int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "7")),
        jwt_issuer=os.getenv("JWT_ISSUER", "studycards-api"),
        jwt_audience=os.getenv("JWT_AUDIENCE", "studycards-users"),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        cors_origins=_get_list(os.getenv("CORS_ORIGINS"), default=("http://localhost:5173",)),
        admin_email=os.getenv("ADMIN_EMAIL", ""),
        admin_password=os.getenv("ADMIN_PASSWORD", ""),
        scheduler=scheduler,
    )


def validate_runtime_config(settings: Settings) -> None:
    if not settings.is_production:
        return
    if settings.jwt_secret_key == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if settings.jwt_refresh_secret_key == DEFAULT_JWT_REFRESH_SECRET:
        raise RuntimeError("JWT_REFRESH_SECRET_KEY must be set in production.")
    if settings.jwt_secret_key == settings.jwt_refresh_secret_key:
        raise RuntimeError("Access and refresh tokens must use different secrets.")
