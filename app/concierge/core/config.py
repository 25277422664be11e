from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "Concierge"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./concierge.db"
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "change-me"
    ADMIN_NOTIFY_EMAILS: str = ""
    APP_BASE_URL: str = "http://localhost:8000"
    SHORT_CODE_LENGTH: int = 6
    SHORT_CODE_MAX_ATTEMPTS: int = 5
    SHIPMENTS_MAX_PAGE_SIZE: int = 100
    MAIL_API_URL: str = "https://api.resend.com/emails"
    MAIL_API_KEY: str = ""
    MAIL_FROM: str = ""
    MAIL_TIMEOUT_SEC: float = 10.0
    DEVICE_MGMT_URL: str = ""
    DEVICE_MGMT_USER: str = ""
    DEVICE_MGMT_PASSWORD: str = ""
    DEVICE_MGMT_TIMEOUT_SEC: float = 10.0
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
