from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_NAME: str = "School Messaging API"
    LOG_LEVEL: str = "INFO"

    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "school_messaging"
    # multi-document transactions need a replica set
    MONGO_USE_TRANSACTIONS: bool = False


settings = Settings()
