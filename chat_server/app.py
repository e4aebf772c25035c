# chat_server/app.py

import argparse
import asyncio
from typing import Optional, Set

from chat_common.cipher import KeyPairEngine
from chat_common.logging_util import setup_logger

from .auth import Authenticator
from .config import settings
from .connection import ClientSession, CredentialChecker
from .db_async import Database
from .registry import UserRegistry
from .router import Router

logger = setup_logger(__name__, settings.LOG_LEVEL)


class Server:
    """
    The main Chat Server class.
    Manages the server lifecycle and client connections.
    """
    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 authenticator: Optional[CredentialChecker] = None,
                 key_size: Optional[int] = None):
        self.host = host if host is not None else settings.SERVER_HOST
        self.port = port if port is not None else settings.SERVER_PORT

        # Without an injected credential checker, use the SQLite store.
        self.db: Optional[Database] = None
        if authenticator is None:
            self.db = Database(settings.DATABASE_PATH)
            authenticator = Authenticator(self.db)
        self.authenticator = authenticator

        self.engine = KeyPairEngine(key_size or settings.KEY_SIZE)
        self.registry = UserRegistry()
        self.router = Router(self.registry)

        self._server: Optional[asyncio.Server] = None
        self._sessions: Set[ClientSession] = set()

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """
        This coroutine is executed for each new client connection.
        It creates a ClientSession to manage the connection.
        """
        session = ClientSession(reader, writer, self.registry, self.router,
                                self.authenticator, self.engine)
        self._sessions.add(session)
        try:
            await session.handle_connection()
        finally:
            self._sessions.discard(session)

    async def listen(self) -> asyncio.Server:
        """Opens the credential store and the listening socket."""
        if self.db:
            await self.db.connect()

        self._server = await asyncio.start_server(
            self.handle_client, self.host, self.port)

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets)
        logger.info("Serving on %s", addrs)
        return self._server

    @property
    def bound_port(self) -> int:
        return self._server.sockets[0].getsockname()[1]

    async def start(self):
        """
        Starts the server and serves until cancelled.
        """
        server = await self.listen()
        async with server:
            await server.serve_forever()

    async def stop(self):
        """
        Disconnects every client, stops listening and closes the database.
        """
        logger.info("Shutting down server...")
        for session in list(self._sessions):
            session.cancel()
        for session in list(self._sessions):
            await session.close()

        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        if self.db:
            await self.db.close()
        logger.info("Server shut down gracefully.")


def parse_args():
    parser = argparse.ArgumentParser(description="RSA Chatroom Server")
    parser.add_argument("--host", default=settings.SERVER_HOST, help="Address to listen on")
    parser.add_argument("--port", type=int, default=settings.SERVER_PORT, help="Port to listen on")
    return parser.parse_args()


async def main(host: str, port: int):
    setup_logger("chat_common", settings.LOG_LEVEL)
    server = Server(host=host, port=port)
    try:
        await server.start()
    except asyncio.CancelledError:
        logger.info("Server task cancelled.")
    finally:
        await server.stop()


if __name__ == "__main__":
    args = parse_args()
    try:
        asyncio.run(main(args.host, args.port))
    except KeyboardInterrupt:
        print("\nKeyboard interrupt received.")
