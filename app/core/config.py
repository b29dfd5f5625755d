"""
Configuration management using Pydantic settings.
"""
from typing import List, Union
import os
from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
load_dotenv()



class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "LearnStack Progress Service"
    DEBUG: bool = True
    ENV: str = os.getenv("ENV", "development")

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./learnstack.db")

    # JWT Configuration
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

    # Seeded admin account
    FIRST_ADMIN_EMAIL: str = os.getenv("FIRST_ADMIN_EMAIL", "admin@example.com")
    FIRST_ADMIN_PASSWORD: str = os.getenv("FIRST_ADMIN_PASSWORD", "admin123")

    # Code execution service (OneCompiler-compatible API)
    EXECUTION_API_URL: str = os.getenv(
        "EXECUTION_API_URL", "https://onecompiler-apis.p.rapidapi.com/api/v1/run"
    )
    EXECUTION_API_HOST: str = os.getenv("EXECUTION_API_HOST", "onecompiler-apis.p.rapidapi.com")
    EXECUTION_API_KEY: str = os.getenv("EXECUTION_API_KEY", "")
    EXECUTION_TIMEOUT_SECONDS: float = float(os.getenv("EXECUTION_TIMEOUT_SECONDS", 15))

    # Progress rules
    DAILY_PROBLEM_RUN_LIMIT: int = 2
    SYNC_TOPIC_ORDER: bool = os.getenv("SYNC_TOPIC_ORDER", "true").lower() == "true"

    # Mentor tests and doubts
    MAX_TEST_STRIKES: int = int(os.getenv("MAX_TEST_STRIKES", 3))
    DOUBT_RETENTION_HOURS: int = int(os.getenv("DOUBT_RETENTION_HOURS", 24))

    # Leaderboards
    LEADERBOARD_MAX_AGE_MINUTES: int = int(os.getenv("LEADERBOARD_MAX_AGE_MINUTES", 15))
    LEADERBOARD_SIZE: int = int(os.getenv("LEADERBOARD_SIZE", 100))

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[List[AnyHttpUrl], str] = "*"

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v):
        if v == "*" or v == ["*"]:
            return "*"
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
