# chat_client/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client configuration, read from environment variables or client.env.
    """

    model_config = SettingsConfigDict(
        env_file="client.env",
        env_file_encoding="utf-8"
    )

    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 4077

    KEY_SIZE: int = 1024

    LOG_LEVEL: str = "WARNING"


settings = Settings()
