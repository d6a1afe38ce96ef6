from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

def _int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default

def _float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return float(v.strip())
    except ValueError:
        return default

def _bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}

@dataclass(frozen=True)
class EngineLimits:
    top_n: int = 4
    host_limit: int = 12
    host_code_limit: int = 12
    host_status_limit: int = 12
    available_limit: int = 8
    available_status_limit: int = 12
    fine_span_minutes: float = 180.0
    fine_bucket_seconds: int = 60
    coarse_bucket_seconds: int = 900

@dataclass(frozen=True)
class Settings:
    WINDOW_MINUTES: float = _float("TRIAGE_WINDOW_MINUTES", 60.0)
    TOP_N: int = _int("TRIAGE_TOP_N", 4)
    HOST_LIMIT: int = _int("TRIAGE_HOST_LIMIT", 12)
    HOST_CODE_LIMIT: int = _int("TRIAGE_HOST_CODE_LIMIT", 12)
    HOST_STATUS_LIMIT: int = _int("TRIAGE_HOST_STATUS_LIMIT", 12)
    AVAILABLE_LIMIT: int = _int("TRIAGE_AVAILABLE_LIMIT", 8)
    FINE_SPAN_MINUTES: float = _float("TRIAGE_FINE_SPAN_MINUTES", 180.0)
    FETCH_TIMEOUT: float = _float("TRIAGE_FETCH_TIMEOUT", 30.0)
    DEBUG_DEFAULT: bool = _bool("TRIAGE_DEBUG", False)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    API_BASE: str = os.getenv("API_BASE", "http://localhost:8000").rstrip("/")

    def limits(self) -> EngineLimits:
        return EngineLimits(
            top_n=self.TOP_N,
            host_limit=self.HOST_LIMIT,
            host_code_limit=self.HOST_CODE_LIMIT,
            host_status_limit=self.HOST_STATUS_LIMIT,
            available_limit=self.AVAILABLE_LIMIT,
            fine_span_minutes=self.FINE_SPAN_MINUTES,
        )

def get_settings() -> Settings:
    return Settings()

settings = get_settings()
