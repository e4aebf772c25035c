# chat_common/secure_channel.py

import asyncio
import logging

from .cipher import KeyPair, KeyPairEngine, PublicKey, block_size

logger = logging.getLogger(__name__)


class ChannelClosed(ConnectionError):
    """The transport failed, or the peer went away."""


class SecureChannel:
    """
    Line-oriented duplex over an asyncio stream pair, encrypted with textbook RSA.

    Both ends run the same handshake: send our public key as two decimal
    lines (exponent, then modulus), then read the peer's the same way.
    Every line after that is an encrypted line.
    """
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 engine: KeyPairEngine):
        self.reader = reader
        self.writer = writer
        self.engine = engine
        self.key_pair: KeyPair | None = None
        self.peer_key: PublicKey | None = None
        self.peer = writer.get_extra_info('peername')

    @property
    def is_established(self) -> bool:
        return self.key_pair is not None and self.peer_key is not None

    async def handshake(self) -> None:
        # Prime generation is CPU bound; keep it off the event loop.
        self.key_pair = await asyncio.to_thread(self.engine.generate)
        await self._write_raw(str(self.key_pair.public_exponent))
        await self._write_raw(str(self.key_pair.modulus))

        exponent = await self._read_raw()
        modulus = await self._read_raw()
        self.peer_key = self._parse_public_key(exponent, modulus)
        logger.debug("Key exchange with %r complete.", self.peer)

    def _parse_public_key(self, exponent: str, modulus: str) -> PublicKey:
        # Plain decimal digits only; int() would also take signs, spaces and underscores.
        if not all(part.isascii() and part.isdigit() for part in (exponent, modulus)):
            raise ChannelClosed(f"Peer {self.peer!r} sent a non-numeric public key")
        key = PublicKey(int(exponent), int(modulus))
        if key.exponent <= 0 or block_size(key.modulus) < 1:
            raise ChannelClosed(f"Peer {self.peer!r} sent an unusable public key")
        return key

    async def send_line(self, text: str) -> None:
        """Encrypts `text` with the peer's public key and writes it as one line."""
        if self.peer_key is None:
            raise RuntimeError("send_line called before the handshake")
        await self._write_raw(self.engine.encrypt_string(text, self.peer_key))

    async def receive_line(self) -> str:
        """
        Reads one encrypted line and returns its plaintext.

        Raises:
            ChannelClosed: on EOF or transport failure.
            MalformedCiphertext: if the line does not decrypt.
        """
        if self.key_pair is None:
            raise RuntimeError("receive_line called before the handshake")
        line = await self._read_raw()
        return self.engine.decrypt_string(line, self.key_pair)

    async def _write_raw(self, line: str) -> None:
        if self.writer.is_closing():
            raise ChannelClosed(f"Connection to {self.peer!r} is closing")
        try:
            self.writer.write((line + '\n').encode('ascii'))
            await self.writer.drain()
        except (ConnectionError, OSError) as e:
            raise ChannelClosed(f"Write to {self.peer!r} failed: {e}") from e

    async def _read_raw(self) -> str:
        try:
            data = await self.reader.readline()
        except (ConnectionError, OSError) as e:
            raise ChannelClosed(f"Read from {self.peer!r} failed: {e}") from e
        except ValueError as e:
            # StreamReader line limit exceeded
            raise ChannelClosed(f"Line from {self.peer!r} too long: {e}") from e

        if not data.endswith(b'\n'):
            raise ChannelClosed(f"Peer {self.peer!r} closed the connection")
        return data.decode('ascii', errors='replace').rstrip('\r\n')

    async def close(self) -> None:
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug("Ignoring error while closing %r: %s", self.peer, e)
