from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Runtime configuration for launching image descriptors"""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_IMAGES_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Docker
    docker_base_url: Optional[str] = None
    container_host: str = "localhost"
    container_prefix: str = "mongo-images"
    pull_missing_images: bool = True

    # Readiness
    startup_timeout_seconds: float = 60.0
    exec_timeout_seconds: float = 30.0
    log_poll_interval_seconds: float = 0.5

    # Failure handling
    remove_on_failure: bool = False


# Global settings instance
settings = Settings()
