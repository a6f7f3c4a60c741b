"""
Configuration management for the knowledge-base portal
Uses pydantic-settings for environment variable validation
"""

from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./kbportal.db"
    DATABASE_ECHO: bool = False

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True
    DEBUG: bool = False

    # Security
    API_KEY_PREFIX: str = "kb_"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Application
    APP_NAME: str = "KB Portal"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # development or production

    # Storage
    UPLOAD_DIR: str = "./uploads"
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    STORAGE_PUBLIC_BASE_URL: str = ""  # Optional: serve local files behind a static host

    # S3 Storage (if STORAGE_BACKEND="s3")
    S3_BUCKET_NAME: str = "kbportal-documents"
    S3_ACCESS_KEY_ID: str = ""  # Optional: uses AWS credentials if empty
    S3_SECRET_ACCESS_KEY: str = ""
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str = ""  # Optional: for MinIO, DigitalOcean Spaces, etc.
    S3_PUBLIC_BASE_URL: str = ""  # Optional: CDN / custom domain in front of the bucket

    # Upload validation (matches the upload form: PDF, DOCX, TXT up to 20MB)
    MAX_UPLOAD_SIZE: int = 20 * 1024 * 1024
    ALLOWED_EXTENSIONS: List[str] = [".pdf", ".docx", ".txt"]

    # Indexing service (Dify-compatible knowledge base API)
    INDEXING_API_URL: str = "https://dify.unified-bi.org/v1"
    INDEXING_ADMIN_API_KEY: str = ""  # Only needed to create datasets from the admin API
    INDEXING_TIMEOUT: float = 60.0
    INDEXING_DEFAULT_TECHNIQUE: str = "high_quality"  # high_quality or economy
    INDEXING_SOURCE_URL_FIELD: str = "source_url"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"  # e.g. redis://localhost:6379/0
    RATE_LIMIT_UPLOAD: str = "20/hour"
    RATE_LIMIT_AUTH: str = "5/minute"

    # Retry Logic (batch orchestrator only; the pipeline itself never retries)
    RETRY_ENABLED: bool = True
    BATCH_RETRY_MAX_ATTEMPTS: int = 2
    RETRY_EXPONENTIAL_BASE: int = 2
    RETRY_MAX_WAIT: float = 10.0

    @model_validator(mode='after')
    def normalize_derived_values(self):
        """
        Normalize values that are compared or concatenated elsewhere

        - Extensions are lower-cased and always carry a leading dot
        - Base URLs never end with a slash
        """
        self.ALLOWED_EXTENSIONS = [
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in self.ALLOWED_EXTENSIONS
        ]
        self.INDEXING_API_URL = self.INDEXING_API_URL.rstrip("/")
        self.STORAGE_PUBLIC_BASE_URL = self.STORAGE_PUBLIC_BASE_URL.rstrip("/")
        self.S3_PUBLIC_BASE_URL = self.S3_PUBLIC_BASE_URL.rstrip("/")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


# Default document quota per account type
# Consulted only when an account or credential is created without an explicit limit
ACCOUNT_TYPE_DEFAULT_QUOTAS = {
    "free": 5,
    "trial": 10,
    "paid": 50,
}

INDEXING_TECHNIQUES = ("high_quality", "economy")
