from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Orderbook API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Order and payment ledger for small sales operations"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017/?replicaSet=rs0"
    DATABASE_NAME: str = "orderbook"
    # Multi-document transactions need a replica set; standalone servers
    # fall back to version-guarded writes only.
    MONGODB_TRANSACTIONS: bool = True
    TRANSACTION_MAX_RETRIES: int = 5
    TRANSACTION_RETRY_DELAY_MS: int = 50

    # Ledger
    ORDER_CODE_PREFIX: str = "OTK"
    SEQUENCE_MAX_RETRIES: int = 5
    DEFAULT_ACTOR: str = "system"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
