from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "SignalCast"
    DATABASE_URL: str = "sqlite:///./signalcast.db"

    # Auth Config
    JWT_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    MIN_PASSWORD_LENGTH: int = 8

    # Security
    PASSWORD_PEPPER: str = ""
    ARGON2_TIME_COST: int = 2
    ARGON2_MEMORY_COST: int = 102400
    ARGON2_PARALLELISM: int = 8

    # HTTP
    CORS_ORIGIN: str = "http://localhost:5173"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Live channel: pending pushes allowed per connection before it is dropped
    LIVE_QUEUE_SIZE: int = 256

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGIN.split(",") if origin.strip()]

settings = Settings()
