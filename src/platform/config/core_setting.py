from pathlib import Path
from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Inventory'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Database
    # DATABASE_URL wins over the POSTGRES_* parts (e.g. sqlite+aiosqlite:///./inventory.db)
    DATABASE_URL: Optional[str] = None
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: str = '5432'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'ticket_inventory'

    # Database Connection Pool
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for a connection
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour
    DB_POOL_PRE_PING: bool = True
    DB_LOCK_TIMEOUT_MS: int = 3000  # Lock wait before TransientStoreError (Postgres and SQLite)

    # Inventory
    RESERVATION_TTL_MINUTES: int = 15
    MAX_TICKETS_PER_RESERVATION: int = 10
    ORDER_NUMBER_MAX_ATTEMPTS: int = 5

    # Expiry Sweeper
    SWEEP_INTERVAL_SECONDS: float = 60.0
    SWEEP_BATCH_SIZE: int = 100
    LAZY_SWEEP_ON_READ: bool = True

    # Transient store errors (lock timeout, connection loss)
    TRANSIENT_RETRY_ATTEMPTS: int = 3
    TRANSIENT_RETRY_DELAY_SECONDS: float = 0.05

    # Payment
    PAYMENT_REDIRECT_BASE_URL: str = 'https://pay.example.test/checkout'

    # Observability
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_CONSOLE_EXPORT: bool = False

    @field_validator('RESERVATION_TTL_MINUTES', 'MAX_TICKETS_PER_RESERVATION', 'SWEEP_BATCH_SIZE')
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError('must be a positive integer')
        return v

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}'
            f'@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    @property
    def IS_SQLITE(self) -> bool:
        return self.DATABASE_URL_ASYNC.startswith('sqlite')


settings = Settings()  # type: ignore
