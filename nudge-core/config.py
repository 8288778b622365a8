import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MIN_INACTIVE_HOURS = 24
DEFAULT_BATCH_LIMIT = 25


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, default)).strip())
    except (TypeError, ValueError):
        return default


def _env_positive_int(name: str, default: int) -> int:
    value = _env_int(name, default)
    return value if value > 0 else default


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, default)).strip())
    except (TypeError, ValueError):
        return default


def _valid_timezone_name(value: str, fallback: str = "UTC") -> str:
    candidate = (value or fallback).strip() or fallback
    try:
        ZoneInfo(candidate)
        return candidate
    except Exception:  # noqa: BLE001
        return fallback


@dataclass
class AppConfig:
    nudge_enabled: bool = _env_bool("NUDGE_ENABLED", False)
    nudge_min_inactive_hours: int = _env_positive_int("NUDGE_MIN_INACTIVE_HOURS", DEFAULT_MIN_INACTIVE_HOURS)
    nudge_max_per_day: int = _env_int("NUDGE_MAX_PER_DAY", 1)
    nudge_batch_limit: int = _env_positive_int("NUDGE_BATCH_LIMIT", DEFAULT_BATCH_LIMIT)
    nudge_tick_interval_seconds: int = _env_positive_int("NUDGE_TICK_INTERVAL_SECONDS", 60)
    nudge_lock_key: str = os.getenv("NUDGE_LOCK_KEY", "nudge:lock")
    nudge_lock_ttl_seconds: int = _env_positive_int("NUDGE_LOCK_TTL_SECONDS", 55)
    nudge_skip_probability: float = _env_float("NUDGE_SKIP_PROBABILITY", 0.4)

    push_enabled: bool = _env_bool("PUSH_ENABLED", False)
    push_gateway_url: str = os.getenv("PUSH_GATEWAY_URL", "https://exp.host/--/api/v2/push/send")
    push_access_token: str | None = os.getenv("PUSH_ACCESS_TOKEN")
    push_timeout_seconds: int = _env_int("PUSH_TIMEOUT_SECONDS", 8)

    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    groq_api_key: str | None = os.getenv("GROQ_API_KEY")
    groq_model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    groq_api_base: str = os.getenv("GROQ_API_BASE", "https://api.groq.com/openai/v1")
    openrouter_api_key: str | None = os.getenv("OPENROUTER_API_KEY")
    openrouter_model: str = os.getenv("OPENROUTER_MODEL", "meta-llama/llama-3.3-70b-instruct")
    openrouter_api_base: str = os.getenv("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.2:3b")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://ollama:11434")
    llm_timeout_seconds: int = _env_int("LLM_TIMEOUT_SECONDS", 20)
    llm_temperature: float = _env_float("LLM_TEMPERATURE", 0.9)

    postgres_user: str = os.getenv("POSTGRES_USER", "chat")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "changeme123")
    postgres_db: str = os.getenv("POSTGRES_DB", "chat_app")
    postgres_host: str = os.getenv("POSTGRES_HOST", "postgres")
    postgres_port: int = _env_int("POSTGRES_PORT", 5432)

    redis_host: str = os.getenv("REDIS_HOST", "redis")
    redis_port: int = _env_int("REDIS_PORT", 6379)
    redis_password: str = os.getenv("REDIS_PASSWORD", "")

    health_port: int = _env_int("HEALTH_PORT", 8000)
    system_timezone: str = _valid_timezone_name(os.getenv("TZ", "UTC"), "UTC")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    environment: str = os.getenv("ENVIRONMENT", "development")

    @property
    def postgres_dsn(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )
