# tests/fakes.py

import asyncio

from chat_common.secure_channel import ChannelClosed


class InMemoryAuthenticator:
    """Credential checker backed by a plain dict."""
    def __init__(self, users):
        self.users = dict(users)

    async def authenticate(self, username: str, password: str) -> bool:
        return self.users.get(username) == password


class FakeSession:
    """Stands in for a ClientSession wherever only delivery matters."""
    def __init__(self, username, active=True, broken=False):
        self.username = username
        self.is_active = active
        self.broken = broken
        self.received = []
        self.close_calls = 0

    async def send_line(self, text: str) -> None:
        if self.broken:
            raise ChannelClosed("broken pipe")
        self.received.append(text)

    async def close(self) -> None:
        self.close_calls += 1


class GatedAuthenticator(InMemoryAuthenticator):
    """
    Holds logins for the `gated` usernames until `release` is set, so a test
    can act while the credential check is in flight.
    """
    def __init__(self, users, gated):
        super().__init__(users)
        self.gated = set(gated)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def authenticate(self, username: str, password: str) -> bool:
        if username in self.gated:
            self.started.set()
            await self.release.wait()
        return await super().authenticate(username, password)
