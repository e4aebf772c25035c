# chat_server/auth.py

import asyncio

import bcrypt

from chat_common.logging_util import setup_logger

from .config import settings
from .db_async import Database

logger = setup_logger(__name__, settings.LOG_LEVEL)


def hash_password(password: str, rounds: int = settings.BCRYPT_ROUNDS) -> str:
    """
    Hashes a password using bcrypt.
    Returns the hashed password as a UTF-8 string suitable for storing in the DB.
    """
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=rounds)
    hashed_bytes = bcrypt.hashpw(password_bytes, salt)
    return hashed_bytes.decode('utf-8')


def check_password(password: str, hashed_password: str) -> bool:
    """
    Checks if a plain-text password matches a stored hash.
    """
    password_bytes = password.encode('utf-8')
    hashed_password_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_password_bytes)


class Authenticator:
    """
    Checks username/password pairs against the credential store.
    """
    def __init__(self, db: Database):
        self.db = db

    async def authenticate(self, username: str, password: str) -> bool:
        user_row = await self.db.get_user(username)
        if not user_row:
            logger.info("Authentication failed: user '%s' not found.", username)
            return False

        # bcrypt is deliberately slow; don't stall other connections on it
        if await asyncio.to_thread(check_password, password, user_row['password']):
            logger.info("Authentication successful for user '%s'.", username)
            return True

        logger.info("Authentication failed: invalid password for user '%s'.", username)
        return False
