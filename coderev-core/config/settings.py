"""
Configuration settings for coderev-core
Loads environment variables and provides configuration access
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Settings:
    """Application settings loaded from environment"""

    # Google Gemini
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    MODEL_NAME: str = os.getenv("MODEL_NAME", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = float(os.getenv("GEMINI_TEMPERATURE", "0.2"))
    GEMINI_MAX_OUTPUT_TOKENS: int = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "4096"))

    # Analysis run defaults (read at the start of each run)
    ANALYSIS_ENABLED: tuple[str, ...] = _csv(os.getenv(
        "ANALYSIS_ENABLED",
        "code_quality,security,performance,maintainability,testing,documentation",
    ))
    ANALYSIS_TIMEOUT_MS: int = int(os.getenv("ANALYSIS_TIMEOUT_MS", "45000"))
    ANALYSIS_MAX_CONCURRENCY: int = int(os.getenv("ANALYSIS_MAX_CONCURRENCY", "1"))  # 1 keeps us under free tier RPM
    ANALYSIS_MAX_RETRIES: int = int(os.getenv("ANALYSIS_MAX_RETRIES", "2"))
    ANALYSIS_BACKOFF_MULTIPLIER: float = float(os.getenv("ANALYSIS_BACKOFF_MULTIPLIER", "1.5"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> list[str]:
        """Validate required settings, returns list of missing vars"""
        missing = []
        if not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")
        if not cls.MODEL_NAME:
            missing.append("MODEL_NAME")
        return missing


settings = Settings()
