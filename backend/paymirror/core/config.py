"""Configuration settings for the billing mirror.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from paymirror.core.shared_models import ConversionFailurePolicy, ShutdownPolicy


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[str]): The SQLAlchemy async database URI.
        CREATE_TABLES_ON_STARTUP (bool): Whether to create the mirror tables on startup.
        STRIPE_SECRET_KEY (Optional[str]): Stripe secret key used for list/retrieve calls.
        STRIPE_WEBHOOK_SECRET (Optional[str]): Shared secret for webhook signatures.
        STRIPE_API_VERSION (Optional[str]): Pinned Stripe API version.
        STRIPE_PAGE_SIZE (int): Page size used while enumerating Stripe collections.
        WEBHOOK_MAX_BODY_BYTES (int): Maximum accepted webhook body size.
        WEBHOOK_SIGNATURE_TOLERANCE (int): Accepted signature timestamp skew in seconds.
        WEBHOOK_QUEUE_MAXSIZE (int): Capacity of the in-process webhook queue.
        WEBHOOK_ENQUEUE_TIMEOUT (float): Seconds to wait for queue space before failing.
        WEBHOOK_SHUTDOWN_POLICY (ShutdownPolicy): Drain or discard queued events on shutdown.
        WEBHOOK_DRAIN_TIMEOUT (float): Seconds to wait for the queue to drain on shutdown.
        WEBHOOK_REVALIDATE_OBJECTS (bool): Re-fetch webhook objects from the provider.
        SYNC_ON_STARTUP (bool): Run a full sync when the service starts.
        SYNC_INTERVAL_SECONDS (Optional[int]): Interval of the periodic sync, disabled if unset.
        SYNC_CONVERSION_FAILURE_POLICY (ConversionFailurePolicy): Orphan handling on bad records.
    """

    PROJECT_NAME: str = "PayMirror"
    LOCAL_DEVELOPMENT: bool = False
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "paymirror"
    POSTGRES_USER: str = "paymirror"
    POSTGRES_PASSWORD: str = ""
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[str] = None

    CREATE_TABLES_ON_STARTUP: bool = True

    # Stripe configuration
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_API_VERSION: Optional[str] = None
    STRIPE_PAGE_SIZE: int = 100

    # Webhook configuration
    WEBHOOK_MAX_BODY_BYTES: int = 65536
    WEBHOOK_SIGNATURE_TOLERANCE: int = 300
    WEBHOOK_QUEUE_MAXSIZE: int = 1000
    WEBHOOK_ENQUEUE_TIMEOUT: float = 5.0
    WEBHOOK_SHUTDOWN_POLICY: ShutdownPolicy = ShutdownPolicy.DRAIN
    WEBHOOK_DRAIN_TIMEOUT: float = 30.0
    WEBHOOK_REVALIDATE_OBJECTS: bool = False

    # Sync configuration
    SYNC_ON_STARTUP: bool = False
    SYNC_INTERVAL_SECONDS: Optional[int] = None
    SYNC_CONVERSION_FAILURE_POLICY: ConversionFailurePolicy = ConversionFailurePolicy.RETAIN

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=info.data.get("POSTGRES_USER"),
                password=info.data.get("POSTGRES_PASSWORD") or None,
                host=info.data.get("POSTGRES_HOST", "localhost"),
                port=info.data.get("POSTGRES_PORT"),
                path=f"{info.data.get('POSTGRES_DB') or ''}",
            )
        )

    @property
    def stripe_enabled(self) -> bool:
        """Whether both Stripe credentials are configured."""
        return bool(self.STRIPE_SECRET_KEY and self.STRIPE_WEBHOOK_SECRET)


settings = Settings()
