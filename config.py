"""Settings for the HN Brief pipeline, read from the environment.

Every field has a default except the model credentials; `Config.load()`
reads the variables below and `Config.validate()` reports the first
problem it finds.

Environment Variables:
    Model:
        ANTHROPIC_API_KEY: Credentials passed through to the model provider
        ANALYZER_MODEL: Analysis model (provider:model, or openai:model@url for a local server)
        LANGUAGE: Prompt and output language, 'en' or 'zh'

    Storage:
        DATA_DIR: Raw item cache, analyses and tracker state
        POSTS_DIR: Persisted briefs (JSON plus markdown twin)
        PRUNE_AFTER_DAYS: How long tracker records are kept

    Pipeline Behavior:
        MAX_STORIES: Candidate IDs taken from the newest-stories list per run
        BATCH_SIZE: Items analyzed concurrently (1-5)
        BATCH_DELAY_SECONDS: Pause between batches
        POLL_INTERVAL_SECONDS: Sleep between runs in continuous mode
        HTTP_TIMEOUT_SECONDS: Per-request timeout for the HN API
        HN_API_BASE_URL: API root (Firebase v0 endpoint by default)
        TRENDS_BLACKLIST: Drop generic tags when aggregating trends (default: true)

    Logging:
        LOG_DIR: Where hnbrief.log is written
        LOG_LEVEL: Console verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Rotated files to keep
        LOG_MAX_BYTES: Rotate at this size; 0 rotates daily instead
        LOG_FORMAT: 'text' or 'json'

    Tracing:
        ENABLE_LOGFIRE: Send spans to Logfire (requires the tracing extra)
        LOGFIRE_TOKEN: Logfire write token; optional for local-only spans
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_ANALYZER_MODEL = "anthropic:claude-3-5-sonnet-latest"
HN_API_BASE_URL = "https://hacker-news.firebaseio.com/v0"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _env_number(key: str, default, cast):
    """Parse a numeric variable; unset or empty means default.

    Raises:
        ValueError: If the variable is set to something cast() rejects
    """
    raw = os.environ.get(key)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid {cast.__name__} value for {key}: '{raw}'")


def _env_int(key: str, default: int) -> int:
    return _env_number(key, default, int)


def _env_float(key: str, default: float) -> float:
    return _env_number(key, default, float)


def _env_bool(key: str, default: bool = False) -> bool:
    """On/off flag; anything outside 1/0, true/false, yes/no, on/off keeps the default."""
    raw = os.environ.get(key, "").lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def is_local_model(model: str) -> bool:
    """Return True for 'openai:{model}@{base_url}' local server strings."""
    return model.startswith("openai:") and "@" in model


@dataclass
class Config:
    """Pipeline settings. Each field notes the variable it is read from.

    Example:
        >>> config = Config.load()
        >>> Config(anthropic_api_key="k", batch_size=9).validate()
        'BATCH_SIZE must be between 1 and 5'
    """

    # === Model ===
    anthropic_api_key: str = ""  # ANTHROPIC_API_KEY
    analyzer_model: str = DEFAULT_ANALYZER_MODEL  # ANALYZER_MODEL
    language: str = "en"  # LANGUAGE - 'en' or 'zh'

    # === Source ===
    hn_api_base_url: str = HN_API_BASE_URL  # HN_API_BASE_URL
    http_timeout_seconds: int = 30  # HTTP_TIMEOUT_SECONDS

    # === Storage ===
    data_dir: Path = field(default_factory=lambda: Path("data"))  # DATA_DIR
    posts_dir: Path = field(default_factory=lambda: Path("posts"))  # POSTS_DIR
    prune_after_days: int = 30  # PRUNE_AFTER_DAYS

    # === Pipeline Behavior ===
    max_stories: int = 50  # MAX_STORIES - newest IDs considered per run
    batch_size: int = 3  # BATCH_SIZE - concurrent analyses per batch
    batch_delay_seconds: float = 1.0  # BATCH_DELAY_SECONDS
    poll_interval_seconds: int = 900  # POLL_INTERVAL_SECONDS
    trends_blacklist: bool = True  # TRENDS_BLACKLIST - drop generic tags from trends

    # === Logging Configuration ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES - 0 = time-based rotation
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json'

    # === Tracing ===
    # Requires: pip install hn-brief[tracing]
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @property
    def tracker_dir(self) -> Path:
        """Directory holding the record log and stats file."""
        return self.data_dir / "tracker"

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            anthropic_api_key=_env("ANTHROPIC_API_KEY"),
            analyzer_model=_env("ANALYZER_MODEL", DEFAULT_ANALYZER_MODEL),
            language=_env("LANGUAGE", "en").lower(),
            hn_api_base_url=_env("HN_API_BASE_URL", HN_API_BASE_URL).rstrip("/"),
            http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
            data_dir=Path(_env("DATA_DIR", "data")),
            posts_dir=Path(_env("POSTS_DIR", "posts")),
            prune_after_days=_env_int("PRUNE_AFTER_DAYS", 30),
            max_stories=_env_int("MAX_STORIES", 50),
            batch_size=_env_int("BATCH_SIZE", 3),
            batch_delay_seconds=_env_float("BATCH_DELAY_SECONDS", 1.0),
            poll_interval_seconds=_env_int("POLL_INTERVAL_SECONDS", 900),
            trends_blacklist=_env_bool("TRENDS_BLACKLIST", True),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    def validate(self) -> str | None:
        """Check required settings and ranges.

        Returns:
            The first problem found, or None when the configuration is usable.
        """
        if not self.anthropic_api_key and not is_local_model(self.analyzer_model):
            return "ANTHROPIC_API_KEY environment variable is required"
        if self.language not in ("en", "zh"):
            return f"Invalid LANGUAGE '{self.language}' - must be 'en' or 'zh'"

        positive = {
            "MAX_STORIES": self.max_stories,
            "PRUNE_AFTER_DAYS": self.prune_after_days,
            "POLL_INTERVAL_SECONDS": self.poll_interval_seconds,
            "HTTP_TIMEOUT_SECONDS": self.http_timeout_seconds,
        }
        for name, value in positive.items():
            if value <= 0:
                return f"{name} must be positive"

        non_negative = {
            "BATCH_DELAY_SECONDS": self.batch_delay_seconds,
            "LOG_BACKUP_COUNT": self.log_backup_count,
            "LOG_MAX_BYTES": self.log_max_bytes,
        }
        for name, value in non_negative.items():
            if value < 0:
                return f"{name} must be non-negative"

        if not 1 <= self.batch_size <= 5:
            return "BATCH_SIZE must be between 1 and 5"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}'"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        return None
