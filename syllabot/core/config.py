from pydantic_settings import BaseSettings
from pydantic import AnyHttpUrl
from typing import List, Optional


class Settings(BaseSettings):
    ENV: str = "development"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"

    CORS_ORIGINS: List[AnyHttpUrl] = []

    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    GOOGLE_CLOUD_PROJECT: Optional[str] = None

    # Gemini
    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    MAX_OUTPUT_TOKENS: int = 512

    # Firebase web config (identity toolkit + storage)
    FIREBASE_WEB_API_KEY: str = ""
    FIREBASE_STORAGE_BUCKET: str = ""
    SIGNED_URL_MINUTES: int = 15

    ADMIN_UIDS: List[str] = []
    DEFAULT_REDIRECT: str = "/management"

    SUGGESTIONS: List[str] = [
        "When is the next exam?",
        "How is my grade calculated?",
        "What is the late work policy?",
        "When are office hours?",
    ]
    MAX_CHAT_SESSIONS: int = 500

    class Config:
        env_file = ".env"


settings = Settings()
