import os
from pydantic_settings import BaseSettings


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseSettings):
    PROJECT_NAME: str = "GeoGuard API"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"

    # GeoIP access control
    GEOIP_ENABLED: bool = _env_flag("GEOIP_ENABLED", "1")
    GEOIP_DB_PATH: str = os.getenv("GEOIP_DB_PATH", "/app/data/GeoLite2-City.mmdb")

    # Country codes are matched case-sensitively ("US" != "us").
    # Lists are comma or whitespace separated.
    GEOIP_ALLOW_ONLY: bool = _env_flag("GEOIP_ALLOW_ONLY", "0")
    GEOIP_ALLOW_COUNTRIES: str = os.getenv("GEOIP_ALLOW_COUNTRIES", "")
    GEOIP_ALLOW_IPS: str = os.getenv("GEOIP_ALLOW_IPS", "")
    GEOIP_BLOCK_COUNTRIES: str = os.getenv("GEOIP_BLOCK_COUNTRIES", "")
    GEOIP_BLOCK_IPS: str = os.getenv("GEOIP_BLOCK_IPS", "")

    GEOIP_FORWARDED_HEADER: str = os.getenv("GEOIP_FORWARDED_HEADER", "X-Forwarded-For")
    GEOIP_EXEMPT_PATHS: str = os.getenv("GEOIP_EXEMPT_PATHS", "/health")

    # Example: Country-Code={geoip_country_code};Country-Name={geoip_country_name}
    GEOIP_RESPONSE_HEADERS: str = os.getenv("GEOIP_RESPONSE_HEADERS", "")

    GEOIP_DECISION_LOG_ENABLED: bool = _env_flag("GEOIP_DECISION_LOG_ENABLED", "1")
    GEOIP_DECISION_LOG_MAXLEN: int = max(100, int(os.getenv("GEOIP_DECISION_LOG_MAXLEN", "1000")))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "/app/data/logs")
    LOG_FILE_NAME: str = os.getenv("LOG_FILE_NAME", "geoguard.log")
    LOG_FILE_ROTATION_WHEN: str = os.getenv("LOG_FILE_ROTATION_WHEN", "midnight")
    LOG_FILE_ROTATION_INTERVAL: int = max(1, int(os.getenv("LOG_FILE_ROTATION_INTERVAL", "1")))
    LOG_FILE_RETENTION_DAYS: int = max(1, int(os.getenv("LOG_FILE_RETENTION_DAYS", "7")))

    class Config:
        case_sensitive = True


settings = Settings()
