# tests/test_router.py

import unittest

from chat_server.registry import UserRegistry
from chat_server.router import Router

from fakes import FakeSession


class RouterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.registry = UserRegistry()
        self.router = Router(self.registry)
        self.alice = FakeSession("alice")
        self.bob = FakeSession("bob")
        self.carol = FakeSession("carol")
        for session in (self.alice, self.bob, self.carol):
            await self.registry.claim(session.username, session)

    async def test_clients_command_lists_everyone_to_sender_only(self):
        await self.router.route(self.alice, ":clients")
        self.assertCountEqual(self.alice.received, ["\talice", "\tbob", "\tcarol"])
        self.assertEqual(self.bob.received, [])
        self.assertEqual(self.carol.received, [])

    async def test_private_message_reaches_only_recipient(self):
        await self.router.route(self.alice, "@bob hello")
        self.assertEqual(self.bob.received, ["PRIVATE alice: hello"])
        self.assertEqual(self.alice.received, [])
        self.assertEqual(self.carol.received, [])

    async def test_private_message_keeps_rest_of_line(self):
        await self.router.route(self.alice, "@bob  two  spaces @carol")
        self.assertEqual(self.bob.received, ["PRIVATE alice:  two  spaces @carol"])

    async def test_private_message_to_unknown_nickname(self):
        await self.router.route(self.alice, "@dave hello")
        self.assertEqual(self.alice.received, ["SERVER: WRONG NICKNAME"])
        self.assertEqual(self.bob.received, [])
        self.assertEqual(self.carol.received, [])

    async def test_plain_text_is_broadcast_to_others(self):
        await self.router.route(self.alice, "hi all")
        self.assertEqual(self.alice.received, [])
        self.assertEqual(self.bob.received, ["alice: hi all"])
        self.assertEqual(self.carol.received, ["alice: hi all"])

    async def test_near_misses_are_broadcast(self):
        for line in (":clients ", "@bob", "@ bob hi", "hey @bob hi"):
            with self.subTest(line=line):
                self.bob.received.clear()
                await self.router.route(self.alice, line)
                self.assertEqual(self.bob.received, [f"alice: {line}"])


if __name__ == "__main__":
    unittest.main()
