# chat_server/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Define the base directory of the server component
SERVER_DIR = Path(__file__).parent.parent.resolve()

class Settings(BaseSettings):
    """
    Manages the server's configuration settings using pydantic-settings.
    It automatically reads values from environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file="server.env",
        env_file_encoding="utf-8"
    )

    # --- Network Settings ---
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 4077

    # --- Cipher Settings ---
    # Modulus size of the per-connection key pairs, in bits.
    KEY_SIZE: int = 1024

    # --- Credential Store Settings ---
    DATABASE_PATH: Path = SERVER_DIR / "chat_server.db"
    BCRYPT_ROUNDS: int = 12

    # --- Logging Settings ---
    LOG_LEVEL: str = "INFO"


# Create a single, globally accessible instance of the settings.
# Other modules will import this `settings` object.
settings = Settings()
