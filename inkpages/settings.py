from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def choose_env_file() -> str:
    return ".env.local" if Path(".env.local").exists() else ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=choose_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # tolerate unrelated env vars
    )

    # CouchDB
    COUCHDB_HOST: str = "localhost"
    COUCHDB_PORT: int = 5984
    COUCHDB_USERNAME: str = "admin"
    COUCHDB_PASSWORD: str = ""
    COUCHDB_DATABASE: str = "blog_posts"

    # Site
    BLOG_API_URL: str = "http://localhost:8000"
    BASE_BLOG_URL: str = "http://localhost:3000"
    SITE_NAME: str = "Ink & Pages"
    SITE_DESCRIPTION: str = (
        "Where thoughts flow like ink onto pages, creating stories that inspire and connect."
    )
    AUTHOR_NAME: str = "Ink & Pages Writer"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Auth
    WRITER_EMAIL: str = ""
    SESSION_COOKIE_NAME: str = "inkpages_session"
    IDENTITY_URL: str = ""

    # Local cache
    LOCAL_CACHE_DIR: str = ".inkpages"
    LOCAL_CACHE_QUOTA_BYTES: int = 5 * 1024 * 1024

    # Authoring
    READING_WORDS_PER_MINUTE: int = 200
    EXCERPT_MAX_LENGTH: int = 150

    # Images
    IMAGE_MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    IMAGE_MAX_WIDTH: int = 1200
    IMAGE_MAX_HEIGHT: int = 800
    IMAGE_QUALITY: float = 0.8
    IMAGE_TARGET_KB: int = 500
    COVER_IMAGE_MODE: str = "upload"  # "upload" or "inline"

    @property
    def couchdb_url(self) -> str:
        return f"http://{self.COUCHDB_USERNAME}:{self.COUCHDB_PASSWORD}@{self.COUCHDB_HOST}:{self.COUCHDB_PORT}"

    @property
    def identity_url(self) -> str:
        if self.IDENTITY_URL:
            return self.IDENTITY_URL.rstrip("/")
        return f"http://{self.COUCHDB_HOST}:{self.COUCHDB_PORT}"

    @property
    def local_cache_enabled(self) -> bool:
        return bool(self.LOCAL_CACHE_DIR)


# Global settings instance (evaluated at import, but reads env on construction)
settings = Settings()
