"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Generative model
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Aladin catalog
    ALADIN_TTB_KEY = os.getenv("ALADIN_TTB_KEY", "")
    CATALOG_MAX_RESULTS = int(os.getenv("CATALOG_MAX_RESULTS", "5"))

    # Cover probing (HEAD requests against the image hosts)
    VERIFY_COVERS = _flag("VERIFY_COVERS", "true")

    # Defaults
    DEFAULT_REGION = os.getenv("DEFAULT_REGION", "서울")
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "3"))
    MAX_CONCURRENT = int(os.getenv("MAX_CONCURRENT", "5"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
