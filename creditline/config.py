"""Application-wide configuration settings."""

from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables
load_dotenv(override=True)

# Base paths
BASE_DIR = Path(__file__).parent
LOGS_DIR = BASE_DIR / "logs"


class APISettings(BaseSettings):
    """API-related settings."""

    api_key: SecretStr = Field(default=SecretStr(""), validation_alias="API_KEY")
    cors_origins: list[str] = Field(default=["http://localhost:3000"])
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class DatabaseSettings(BaseSettings):
    """Database-related settings."""

    mongodb_uri: str = Field(default="mongodb://localhost:27017", validation_alias="MONGODB_URI")
    database_name: str = Field(default="creditline", validation_alias="MONGODB_DATABASE")
    subscriptions_collection: str = Field(default="subscriptions")
    events_collection: str = Field(default="webhook_events")
    server_selection_timeout_ms: int = Field(default=5000)

    @property
    def uri(self) -> str:
        """Get the MongoDB connection URI."""
        return self.mongodb_uri

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class AuthSettings(BaseSettings):
    """Bearer token verification settings."""

    secret_key: SecretStr = Field(default=SecretStr(""), validation_alias="AUTH_SECRET_KEY")
    algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    audience: Optional[str] = Field(default=None, validation_alias="AUTH_AUDIENCE")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class BillingSettings(BaseSettings):
    """Razorpay settings."""

    key_id: str = Field(default="", validation_alias="RAZORPAY_KEY_ID")
    key_secret: SecretStr = Field(default=SecretStr(""), validation_alias="RAZORPAY_KEY_SECRET")
    webhook_secret: SecretStr = Field(default=SecretStr(""), validation_alias="RAZORPAY_WEBHOOK_SECRET")
    api_base: str = Field(default="https://api.razorpay.com/v1", validation_alias="RAZORPAY_API_BASE")
    timeout_seconds: float = Field(default=10.0, validation_alias="RAZORPAY_TIMEOUT_SECONDS")
    total_count: int = Field(default=12, validation_alias="RAZORPAY_SUBSCRIPTION_TOTAL_COUNT")

    # Gateway plan ids, one per catalog plan
    basic_plan_id: str = Field(default="plan_SJ7ZNktTUB9PNr", validation_alias="RAZORPAY_PLAN_BASIC")
    pro_plan_id: str = Field(default="plan_SJ7azBfqgFOu3R", validation_alias="RAZORPAY_PLAN_PRO")
    premium_plan_id: str = Field(default="plan_SJ7c3ilphWBQmh", validation_alias="RAZORPAY_PLAN_PREMIUM")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class LedgerSettings(BaseSettings):
    """Credit ledger settings."""

    trial_credits: int = Field(default=50, ge=0, validation_alias="TRIAL_CREDITS")
    plan_period_days: int = Field(default=30, gt=0, validation_alias="PLAN_PERIOD_DAYS")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class AnalyzerSettings(BaseSettings):
    """Settings for the external text analyzer."""

    url: str = Field(default="", validation_alias="ANALYZER_URL")
    timeout_seconds: float = Field(default=60.0, validation_alias="ANALYZER_TIMEOUT_SECONDS")
    credit_cost: int = Field(default=1, gt=0, validation_alias="ANALYSIS_CREDIT_COST")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class LoggingSettings(BaseSettings):
    """Logging-related settings."""

    log_level: str = Field(default="INFO")
    file_log_level: str = Field(default="DEBUG")
    log_file_name: str = Field(default="ledger.log", validation_alias="LOG_FILE_NAME")
    rotate_when: str = Field(default="midnight", validation_alias="LOG_ROTATE_WHEN")
    backup_count: int = Field(default=9, ge=0, validation_alias="LOG_BACKUP_COUNT")
    format: str = Field(default="%(name)s - %(levelname)s - %(message)s")
    file_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    enable_request_logging: bool = Field(default=False, validation_alias="ENABLE_REQUEST_LOGGING")
    noisy_loggers: Dict[str, str] = Field(
        default={
            "urllib3": "WARNING",
            "uvicorn": "WARNING",
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "pymongo": "WARNING",
            "pymongo.topology": "WARNING",
            "pymongo.server": "WARNING",
            "pymongo.connection": "WARNING",
            "pymongo.monitoring": "WARNING",
            "watchfiles": "WARNING",
            "watchfiles.main": "WARNING",
        }
    )

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class Settings(BaseSettings):
    """Global settings container."""

    api: APISettings = Field(default_factory=APISettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    billing: BillingSettings = Field(default_factory=BillingSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


# Create global settings instance
settings = Settings()
