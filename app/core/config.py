from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    APP_NAME: str = "Kenova LMS"
    AUTH_MODE: Literal["supabase", "mock"] = "mock"
    RECORD_STORE: Literal["supabase", "memory"] = "supabase"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    CORS_ORIGINS: str = "http://localhost:5173"

    OPENAI_API_KEY: str = ""
    GRADING_MODEL: str = "gpt-4-turbo"
    GRADING_TIMEOUT_SECONDS: float = 60.0
    GRADING_MAX_RETRIES: int = Field(default=1, ge=0, le=1)

    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Portal Kenova <onboarding@resend.dev>"
    PORTAL_URL: str = "http://localhost:5173"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
