# chat_client/network_client.py
import asyncio
from typing import Optional

from chat_common import protocol
from chat_common.cipher import KeyPairEngine
from chat_common.logging_util import setup_logger
from chat_common.secure_channel import ChannelClosed, SecureChannel

from .config import settings

DEFAULT_HOST = settings.SERVER_HOST
DEFAULT_PORT = settings.SERVER_PORT

logger = setup_logger(__name__, settings.LOG_LEVEL)


class NetworkClient:
    """
    Connecting side of the chat protocol: key exchange, login, then plain
    send/receive of decrypted lines.
    """
    def __init__(self, engine: Optional[KeyPairEngine] = None):
        self.engine = engine or KeyPairEngine(settings.KEY_SIZE)
        self._channel: Optional[SecureChannel] = None
        self.username: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and self._channel.is_established

    async def connect(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise ChannelClosed(f"Could not connect to {host}:{port}: {e}") from e

        channel = SecureChannel(reader, writer, self.engine)
        try:
            await channel.handshake()
        except ChannelClosed:
            await channel.close()
            raise
        self._channel = channel
        logger.info("Cryptographic handshake with %s:%s successful.", host, port)

    async def login(self, username: str, password: str) -> bool:
        """Sends one login attempt; True if the server accepted it."""
        channel = self._require_channel()
        await channel.send_line(username)
        await channel.send_line(password)
        reply = await channel.receive_line()
        if reply == protocol.LOGIN_ACCEPTED:
            self.username = username
            return True
        return False

    async def send(self, text: str) -> None:
        await self._require_channel().send_line(text)

    async def receive(self) -> str:
        """Next decrypted line from the server; raises ChannelClosed at EOF."""
        return await self._require_channel().receive_line()

    async def close(self) -> None:
        if self._channel:
            await self._channel.close()
            self._channel = None

    def _require_channel(self) -> SecureChannel:
        if self._channel is None:
            raise ChannelClosed("Not connected")
        return self._channel
