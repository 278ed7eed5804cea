import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    api_base_url: str = os.getenv("TRIPBOARD_API_BASE_URL", "http://localhost:8080")
    request_timeout: float = float(os.getenv("TRIPBOARD_REQUEST_TIMEOUT", "10"))
    lookup_timeout: float = float(os.getenv("TRIPBOARD_LOOKUP_TIMEOUT", "10"))
    empty_day_policy: Literal["keep", "drop"] = os.getenv(  # type: ignore[assignment]
        "TRIPBOARD_EMPTY_DAY_POLICY", "keep"
    ).lower()
    default_title: str = os.getenv("TRIPBOARD_DEFAULT_TITLE", "My Itinerary")
    log_level: str = os.getenv("TRIPBOARD_LOG_LEVEL", "INFO").upper()
    allowed_origins: list[str] = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]


def get_settings() -> Settings:
    return Settings()
