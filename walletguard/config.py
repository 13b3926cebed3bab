import os
from dotenv import load_dotenv


load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Config:
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///walletguard.db")
    SQLALCHEMY_ECHO = _flag("SQLALCHEMY_ECHO")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "true")

    # External risk advisor (OpenAI-compatible chat completions)
    ADVISOR_API_KEY = os.getenv("ADVISOR_API_KEY") or os.getenv("OPENAI_API_KEY")
    ADVISOR_ENABLED = _flag("ADVISOR_ENABLED", "true" if ADVISOR_API_KEY else "false")
    ADVISOR_URL = os.getenv("ADVISOR_URL", "https://api.openai.com/v1/chat/completions")
    ADVISOR_MODEL = os.getenv("ADVISOR_MODEL", "gpt-4o")
    ADVISOR_TIMEOUT_SECONDS = float(os.getenv("ADVISOR_TIMEOUT_SECONDS", "5"))
    ADVISOR_MAX_PER_MINUTE = int(os.getenv("ADVISOR_MAX_PER_MINUTE", "15"))
    ADVISOR_MAX_PER_DAY = int(os.getenv("ADVISOR_MAX_PER_DAY", "1500"))

    # Score fusion
    FUSION_MIN_CONFIDENCE = int(os.getenv("FUSION_MIN_CONFIDENCE", "20"))
    FUSION_MAX_ADVISOR_WEIGHT = float(os.getenv("FUSION_MAX_ADVISOR_WEIGHT", "0.6"))

    # Disposition
    REVIEW_HOLD_HOURS = int(os.getenv("REVIEW_HOLD_HOURS", "24"))

    # Trust score
    TRUST_HALF_LIFE_DAYS = float(os.getenv("TRUST_HALF_LIFE_DAYS", "60"))
    TRUST_LOOKBACK_DAYS = int(os.getenv("TRUST_LOOKBACK_DAYS", "180"))
    TRUST_MIN_WEIGHT = float(os.getenv("TRUST_MIN_WEIGHT", "0.05"))
    TRUST_RECENCY_BONUS = float(os.getenv("TRUST_RECENCY_BONUS", "1.5"))
    TRUST_RECENCY_COUNT = int(os.getenv("TRUST_RECENCY_COUNT", "10"))
    TRUST_MIN_HISTORY = int(os.getenv("TRUST_MIN_HISTORY", "5"))
    TRUST_NEW_USER_CAP = float(os.getenv("TRUST_NEW_USER_CAP", "30"))
    TRUST_GOOD_THRESHOLD = float(os.getenv("TRUST_GOOD_THRESHOLD", "20"))
