# chat_server/registry.py

import asyncio
from typing import TYPE_CHECKING, Dict, List, Optional

from chat_common.logging_util import setup_logger
from chat_common.secure_channel import ChannelClosed

from .config import settings

if TYPE_CHECKING:
    from .connection import ClientSession

logger = setup_logger(__name__, settings.LOG_LEVEL)


class UserRegistry:
    """
    Who is online: maps each nickname to the session that owns it.

    A nickname is present exactly while an authenticated session holds it.
    All reads and writes of the map happen under one lock; broadcasts work on
    a snapshot so slow recipients never hold the lock.
    """
    def __init__(self):
        self._online_users: Dict[str, "ClientSession"] = {}
        self._lock = asyncio.Lock()

    async def claim(self, username: str, session: "ClientSession") -> bool:
        """
        Registers `session` under `username` unless the nickname is taken.
        Returns True if this call won the nickname.
        """
        async with self._lock:
            if username in self._online_users:
                logger.debug("Nickname '%s' is already taken.", username)
                return False
            self._online_users[username] = session
            logger.info("User '%s' registered.", username)
            return True

    async def unregister_user(self, username: str, session: "ClientSession") -> bool:
        """
        Removes `username` if it is still owned by `session`.
        Returns True if an entry was removed.
        """
        async with self._lock:
            if self._online_users.get(username) is not session:
                return False
            del self._online_users[username]
            logger.info("User '%s' unregistered.", username)
            return True

    async def contains(self, username: str) -> bool:
        async with self._lock:
            return username in self._online_users

    async def get_session(self, username: str) -> Optional["ClientSession"]:
        async with self._lock:
            return self._online_users.get(username)

    async def nicknames(self) -> List[str]:
        async with self._lock:
            return list(self._online_users)

    async def snapshot(self) -> List["ClientSession"]:
        async with self._lock:
            return list(self._online_users.values())

    async def deliver(self, session: "ClientSession", message: str) -> bool:
        """
        Sends `message` to one session. A failed send closes that session only.
        """
        try:
            await session.send_line(message)
            return True
        except ChannelClosed as e:
            logger.warning("Delivery to '%s' failed: %s", session.username, e)
            await session.close()
            return False

    async def broadcast(self, message: str, sender: Optional["ClientSession"] = None) -> None:
        """Sends `message` to every active session except `sender`."""
        recipients = [
            session for session in await self.snapshot()
            if session is not sender and session.is_active
        ]
        await asyncio.gather(*(self.deliver(session, message) for session in recipients))
