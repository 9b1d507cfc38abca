from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_BACKOFF_SECONDS = 0.5

_ISOLATION_MODES = {"process", "thread"}
_START_METHODS = {"fork", "forkserver", "spawn"}


class Settings(BaseSettings):
    """Process-wide defaults loaded from environment variables.

    Every field can be set with a ``SAFECALL_`` prefixed variable, e.g.
    ``SAFECALL_DEFAULT_TIMEOUT=2.5``. Per-call options passed to
    ``capture`` always win over these defaults.

    Start methods
    ─────────────
    • fork        (default; closures and lambdas cross without pickling)
    • forkserver  (targets and arguments must be picklable)
    • spawn       (targets and arguments must be picklable)
    """

    model_config = SettingsConfigDict(
        env_prefix="SAFECALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Deadline and retry defaults (seconds)
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS
    default_backoff: float = DEFAULT_BACKOFF_SECONDS

    # Isolation
    isolation: str = "process"
    start_method: str = "fork"

    @field_validator("isolation", "start_method", mode="before")
    @classmethod
    def normalise_choice(cls, v: str) -> str:
        return str(v).strip().lower()

    @field_validator("isolation")
    @classmethod
    def check_isolation(cls, v: str) -> str:
        if v not in _ISOLATION_MODES:
            raise ValueError(f"isolation must be one of {sorted(_ISOLATION_MODES)}")
        return v

    @field_validator("start_method")
    @classmethod
    def check_start_method(cls, v: str) -> str:
        if v not in _START_METHODS:
            raise ValueError(f"start_method must be one of {sorted(_START_METHODS)}")
        return v

    # Resource limits for process units. 0 leaves the limit untouched.
    rlimit_as_bytes: int = 0
    rlimit_cpu_seconds: int = 0

    # Logging: console renderer when True, JSON otherwise.
    debug: bool = True

    # Sentry: leave blank to disable crash reporting.
    sentry_dsn: str = ""
    sentry_environment: str = "development"


def get_settings() -> Settings:
    return Settings()
