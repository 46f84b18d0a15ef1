"""
Settings and configuration management using Pydantic BaseSettings.
All configuration values can be overridden via environment variables.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden by creating a .env file in the project root
    or by setting environment variables with the same names.
    """

    # ========================================================================
    # SOURCE TREE
    # ========================================================================
    PDF_ROOT: str = "PDFs"  # PDFs/<NIVEAU>/<MATIERE?>/*.pdf
    INGEST_MAX_WORKERS: int = 1  # 1 = secuencial

    # ========================================================================
    # CHUNKING CONFIGURATION
    # ========================================================================
    CHUNK_SIZE: int = 800
    CHUNK_OVERLAP: int = 300

    # ========================================================================
    # EMBEDDING CONFIGURATION
    # ========================================================================
    EMBEDDING_PROVIDER: str = "dummy"  # Available: "dummy", "hf-e5"
    EMBEDDING_MODEL: str = "intfloat/multilingual-e5-small"
    EMBEDDING_DIMENSION: int = 384
    EMBEDDING_BATCH_SIZE: int = 64
    EMBEDDING_RETRY_ATTEMPTS: int = 5
    EMBEDDING_RETRY_BASE_MS: int = 500

    # ========================================================================
    # INDEX STORE CONFIGURATION
    # ========================================================================
    INDEX_STORE_TYPE: str = "chroma"  # Available: "memory", "chroma"
    CHROMA_PERSIST_DIRECTORY: str = "data/chroma"
    SEARCH_TOP_K: int = 8

    # ========================================================================
    # LOGGING
    # ========================================================================
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Singleton instance
settings = Settings()
