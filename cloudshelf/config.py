from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import logging
from functools import lru_cache


class Settings(BaseSettings):
    """
    Centralized configuration for the hierarchy manager, with type validation.
    Reads variables from the environment and from a .env file.
    Instances are passed explicitly to the components that need them.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- General Settings ---
    STORAGE_PROVIDER: str = "s3"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    # --- S3 Settings ---
    S3_BUCKET_NAME: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None  # S3-compatible services (MinIO, etc.)

    # --- Listing / URLs ---
    SIGNED_URL_TTL_SECONDS: int = Field(3600, gt=0)
    LIST_PAGE_SIZE: int = Field(1000, gt=0, le=1000)

    # --- Upload Settings ---
    RESIZE_IMAGES: bool = True
    IMAGE_MAX_WIDTH: int = Field(1920, gt=0)
    IMAGE_MAX_HEIGHT: int = Field(1080, gt=0)
    IMAGE_QUALITY: int = Field(90, ge=1, le=100)
    UPLOAD_CHUNK_SIZE: int = Field(
        8 * 1024 * 1024, ge=5 * 1024 * 1024
    )  # 8 MB default, S3 minimum part size is 5 MB
    UPLOAD_MAX_CONCURRENCY: int = Field(4, ge=0)  # 0 means one worker per file

    @model_validator(mode="before")
    def validate_storage_provider_settings(cls, values):
        provider = values.get("STORAGE_PROVIDER", "s3")

        if provider != "s3":
            raise ValueError("Invalid STORAGE_PROVIDER. Must be 's3'.")

        bucket = values.get("S3_BUCKET_NAME")
        if not bucket or not str(bucket).strip():
            raise ValueError("S3_BUCKET_NAME is required when STORAGE_PROVIDER is 's3'")

        # Keys go in pairs; with neither set, boto3 falls back to its default credential chain.
        has_key_id = bool(values.get("AWS_ACCESS_KEY_ID"))
        has_secret = bool(values.get("AWS_SECRET_ACCESS_KEY"))
        if has_key_id != has_secret:
            raise ValueError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together"
            )
        if not has_key_id:
            logging.warning(
                "AWS credentials not set explicitly. Falling back to the default boto3 credential chain."
            )

        return values


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the settings for the command-line entrypoint.
    Library code receives its Settings explicitly instead of calling this.
    """
    return Settings()
