import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val not in (None, "") else default
    except ValueError:
        return default


def _as_float(val: str | None, default: float) -> float:
    try:
        return float(val) if val not in (None, "") else default
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        # Server
        self.APP_ENV: str = os.getenv("APP_ENV", "development")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "*")

        # Google Maps
        self.GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
        self.MAPS_DEFAULT_REGION: str = os.getenv("MAPS_DEFAULT_REGION", "ID")
        self.MAPS_DEFAULT_LANGUAGE: str = os.getenv("MAPS_DEFAULT_LANGUAGE", "id")
        self.MAPS_DEFAULT_LAT: float = _as_float(os.getenv("MAPS_DEFAULT_LAT"), -6.9667)
        self.MAPS_DEFAULT_LNG: float = _as_float(os.getenv("MAPS_DEFAULT_LNG"), 107.6073)
        self.MAPS_SEARCH_RADIUS: int = _as_int(os.getenv("MAPS_SEARCH_RADIUS"), 5000)
        self.PLACES_TIMEOUT: float = _as_float(os.getenv("PLACES_TIMEOUT"), 10.0)

        # LLM
        self.LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "ollama")
        self.LLM_ENDPOINT: str = os.getenv("LLM_ENDPOINT", "http://localhost:11434")
        self.LLM_MODEL: str = os.getenv("LLM_MODEL", "mistral:7b-instruct-q4_0")
        self.LLM_MAX_TOKENS: int = _as_int(os.getenv("LLM_MAX_TOKENS"), 500)
        self.LLM_TEMPERATURE: float = _as_float(os.getenv("LLM_TEMPERATURE"), 0.7)
        self.LLM_TIMEOUT: float = _as_float(os.getenv("LLM_TIMEOUT"), 120.0)
        self.LLM_EXTRACTION_TIMEOUT: float = _as_float(os.getenv("LLM_EXTRACTION_TIMEOUT"), 20.0)
        self.LLM_CHECK_ON_STARTUP: bool = _as_bool(os.getenv("LLM_CHECK_ON_STARTUP"), True)

        # Redis
        self.REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
        self.REDIS_PORT: int = _as_int(os.getenv("REDIS_PORT"), 6379)
        self.REDIS_PASSWORD: str | None = os.getenv("REDIS_PASSWORD") or None
        self.REDIS_DB: int = _as_int(os.getenv("REDIS_DB"), 0)
        self.CACHE_TTL: int = _as_int(os.getenv("CACHE_TTL"), 1800)

        # Rate limiting (requests per minute per client, 0 disables)
        self.RATE_LIMIT_MAX_REQUESTS: int = _as_int(os.getenv("RATE_LIMIT_MAX_REQUESTS"), 30)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() == "development"


settings = Settings()
