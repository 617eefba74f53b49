from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "retrade"
    POSTGRES_USER: str = "retrade"
    POSTGRES_PASSWORD: str = "retrade"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts when set
    DATABASE_URL: Optional[str] = None
    RUN_MIGRATIONS: bool = True
    # Path to alembic.ini; defaults to the one next to the retrade package
    ALEMBIC_CONFIG: Optional[str] = None

    SESSION_COOKIE_NAME: str = "retrade_session"
    SESSION_MAX_AGE_DAYS: int = 7
    COOKIE_SECURE: bool = False
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    BCRYPT_ROUNDS: int = 12

    # Blob storage: "local" writes under UPLOAD_DIR, "http" talks to a blob REST API
    BLOB_BACKEND: str = "local"
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    BLOB_API_URL: str = "https://blob.vercel-storage.com"
    BLOB_READ_WRITE_TOKEN: Optional[str] = None
    MAX_IMAGE_BYTES: int = 3 * 1024 * 1024
    MAX_IMAGES_PER_PRODUCT: int = 3

    LOG_LEVEL: str = "INFO"
    # JSON log file with rotation, in addition to stdout
    LOG_FILE: Optional[str] = None
    SERVICE_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
