# chat_server/connection.py

import asyncio
import enum
from typing import TYPE_CHECKING, Awaitable, Optional, Protocol, TypeVar

from chat_common import protocol
from chat_common.cipher import KeyPairEngine, MalformedCiphertext
from chat_common.logging_util import setup_logger
from chat_common.secure_channel import ChannelClosed, SecureChannel

from .config import settings

if TYPE_CHECKING:
    from .registry import UserRegistry
    from .router import Router

logger = setup_logger(__name__, settings.LOG_LEVEL)

T = TypeVar("T")


class CredentialChecker(Protocol):
    async def authenticate(self, username: str, password: str) -> bool: ...


class SessionState(enum.Enum):
    HANDSHAKING = "handshaking"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    CLOSED = "closed"


class ClientSession:
    """
    One accepted client: key exchange, login loop, message loop, cleanup.

    States only move forward: HANDSHAKING -> AUTHENTICATING -> ACTIVE -> CLOSED.
    """
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 registry: "UserRegistry", router: "Router",
                 authenticator: CredentialChecker, engine: KeyPairEngine):
        self.registry = registry
        self.router = router
        self.authenticator = authenticator
        self.channel = SecureChannel(reader, writer, engine)

        self.username: Optional[str] = None
        self.state = SessionState.HANDSHAKING
        self.addr = writer.get_extra_info('peername')
        self._cancelled = asyncio.Event()
        logger.info("ClientSession created for %r", self.addr)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def cancel(self) -> None:
        """Makes the worker stop at its next (or current) read."""
        self._cancelled.set()

    async def send_line(self, text: str) -> None:
        await self.channel.send_line(text)

    async def handle_connection(self) -> None:
        """Manages the full lifecycle: handshake, authentication, messaging."""
        try:
            await self._until_cancelled(self.channel.handshake())
            self._advance(SessionState.AUTHENTICATING)

            await self._authenticate()
            self._advance(SessionState.ACTIVE)
            await self.registry.broadcast(protocol.joined_notice(self.username), sender=self)

            while True:
                line = await self._receive_plaintext()
                if line is None:
                    continue
                await self.router.route(self, line)

        except ChannelClosed as e:
            logger.info("Connection to %r ended: %s", self.addr, e)
        except Exception:
            logger.exception("An unexpected error occurred with client %r", self.addr)
        finally:
            await self.close()

    def _advance(self, state: SessionState) -> None:
        # close() may have run while we were awaiting; never leave CLOSED.
        if self.state is SessionState.CLOSED:
            raise ChannelClosed("Session closed")
        self.state = state

    async def _authenticate(self) -> None:
        # Only a channel failure ends this loop without a login.
        while True:
            username = await self._receive_plaintext()
            password = await self._receive_plaintext()
            if await self._try_login(username, password):
                self.username = username
                await self.send_line(protocol.LOGIN_ACCEPTED)
                logger.info("%r logged in as '%s'.", self.addr, username)
                return
            await self.send_line(protocol.WRONG_LOGIN)

    async def _try_login(self, username: Optional[str], password: Optional[str]) -> bool:
        if username is None or password is None:
            return False
        if not protocol.is_valid_nickname(username):
            logger.debug("Rejected login from %r: invalid nickname.", self.addr)
            return False
        if await self.registry.contains(username):
            logger.debug("Rejected login from %r: '%s' is online.", self.addr, username)
            return False
        if not await self.authenticator.authenticate(username, password):
            logger.debug("Rejected login from %r: bad credentials for '%s'.", self.addr, username)
            return False
        # Another session may have logged in while the credentials were checked.
        if not await self.registry.claim(username, self):
            return False
        if self.state is SessionState.CLOSED:
            # close() ran while the credentials were checked and had nothing to release.
            await self.registry.unregister_user(username, self)
            raise ChannelClosed("Session closed during login")
        return True

    async def _receive_plaintext(self) -> Optional[str]:
        """Next decrypted line, or None if the line was not valid ciphertext."""
        try:
            return await self._until_cancelled(self.channel.receive_line())
        except MalformedCiphertext as e:
            logger.warning("Dropping undecryptable line from %r: %s", self.addr, e)
            return None

    async def _until_cancelled(self, aw: Awaitable[T]) -> T:
        work = asyncio.ensure_future(aw)
        stop = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, stop):
                if not task.done():
                    task.cancel()
        if work.done() and not work.cancelled():
            return work.result()
        raise ChannelClosed("Session cancelled")

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        was_active = self.is_active
        self.state = SessionState.CLOSED
        self._cancelled.set()

        # Only sessions whose arrival was announced announce their departure.
        removed = self.username and await self.registry.unregister_user(self.username, self)
        if removed and was_active:
            await self.registry.broadcast(protocol.left_notice(self.username), sender=self)
        await self.channel.close()
        logger.info("Connection to %r closed.", self.addr)
