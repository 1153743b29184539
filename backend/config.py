import os
import logging
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger("config")
logging.basicConfig(level=logging.INFO)

DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "openai/gpt-3.5-turbo"


class Settings(BaseModel):
    """
    Runtime configuration for the API.

    Built once from the environment (``.env`` supported) by ``get_settings``.
    Tests build their own instance instead of touching ``os.environ``.
    """
    openrouter_api_key: Optional[str] = None
    openrouter_api_url: str = DEFAULT_API_URL
    openrouter_model: str = DEFAULT_MODEL
    site_url: str = "http://localhost:8501"
    app_title: str = "AI Assistant Chatbot"
    llm_timeout: float = 60.0

    mongo_uri: Optional[str] = None
    mongo_db: str = "chat_db"

    secret_key: str = "change-me-in-env"
    jwt_alg: str = "HS256"
    access_token_expire_minutes: int = 60

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()  # loads .env from the working directory
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            openrouter_api_url=os.getenv("OPENROUTER_API_URL", DEFAULT_API_URL),
            openrouter_model=os.getenv("OPENROUTER_MODEL", DEFAULT_MODEL),
            site_url=os.getenv("SITE_URL", "http://localhost:8501"),
            app_title=os.getenv("APP_TITLE", "AI Assistant Chatbot"),
            llm_timeout=float(os.getenv("LLM_TIMEOUT", "60")),
            mongo_uri=os.getenv("MONGO_URI") or None,
            mongo_db=os.getenv("MONGO_DB", "chat_db"),
            secret_key=os.getenv("SECRET_KEY", "change-me-in-env"),
            jwt_alg=os.getenv("JWT_ALG", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    if settings.openrouter_api_key:
        logger.info("OPENROUTER_API_KEY loaded successfully.")
    else:
        # not fatal here: /chat answers 500 with a ConfigError until it is set
        logger.error("OPENROUTER_API_KEY is missing. Check your .env file and working directory.")
    return settings
