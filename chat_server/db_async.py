# chat_server/db_async.py

import aiosqlite
from pathlib import Path
from typing import List

from chat_common.logging_util import setup_logger

from .config import settings

logger = setup_logger(__name__, settings.LOG_LEVEL)


class Database:
    """
    Asynchronous wrapper for the SQLite credential store.
    Usernames are stored and compared exactly as given (case-sensitive).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self):
        # Establish a connection to the SQLite database.
        try:
            self._conn = await aiosqlite.connect(self.db_path)
            # Enable row factory to get results as dictionaries
            self._conn.row_factory = aiosqlite.Row
            logger.info("Connected to credential store at %s", self.db_path)
            await self._initialize_schema()
        except aiosqlite.Error:
            logger.exception("Error connecting to database %s", self.db_path)
            raise

    async def close(self):
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed.")

    async def _initialize_schema(self):
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                username TEXT PRIMARY KEY,
                password TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await self._conn.commit()

    async def add_user(self, username: str, password_hash: str) -> bool:
        """
        Adds a new user. Returns False if the username already exists.
        """
        try:
            await self._conn.execute(
                "INSERT INTO users (username, password) VALUES (?, ?)",
                (username, password_hash)
            )
            await self._conn.commit()
            logger.info("User '%s' added.", username)
            return True
        except aiosqlite.IntegrityError:
            logger.info("User '%s' already exists.", username)
            return False

    async def remove_user(self, username: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM users WHERE username = ?",
            (username,)
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def get_user(self, username: str) -> aiosqlite.Row | None:
        cursor = await self._conn.execute(
            "SELECT * FROM users WHERE username = ?",
            (username,)
        )
        return await cursor.fetchone()

    async def list_usernames(self) -> List[str]:
        cursor = await self._conn.execute("SELECT username FROM users ORDER BY username")
        return [row['username'] for row in await cursor.fetchall()]
