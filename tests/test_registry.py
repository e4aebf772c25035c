# tests/test_registry.py

import asyncio
import unittest

from chat_server.registry import UserRegistry

from fakes import FakeSession


class UserRegistryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.registry = UserRegistry()

    async def test_claim_and_lookup(self):
        alice = FakeSession("alice")
        self.assertTrue(await self.registry.claim("alice", alice))
        self.assertTrue(await self.registry.contains("alice"))
        self.assertIs(await self.registry.get_session("alice"), alice)
        self.assertIsNone(await self.registry.get_session("bob"))
        self.assertEqual(await self.registry.nicknames(), ["alice"])

    async def test_racing_claims_have_one_winner(self):
        sessions = [FakeSession("alice") for _ in range(20)]
        results = await asyncio.gather(*(self.registry.claim("alice", s) for s in sessions))
        self.assertEqual(results.count(True), 1)
        winner = sessions[results.index(True)]
        self.assertIs(await self.registry.get_session("alice"), winner)

    async def test_unregister_only_by_owner(self):
        alice = FakeSession("alice")
        impostor = FakeSession("alice")
        await self.registry.claim("alice", alice)

        self.assertFalse(await self.registry.unregister_user("alice", impostor))
        self.assertTrue(await self.registry.contains("alice"))

        self.assertTrue(await self.registry.unregister_user("alice", alice))
        self.assertFalse(await self.registry.unregister_user("alice", alice))
        self.assertFalse(await self.registry.contains("alice"))

    async def test_nickname_is_free_again_after_unregister(self):
        first = FakeSession("alice")
        await self.registry.claim("alice", first)
        await self.registry.unregister_user("alice", first)
        self.assertTrue(await self.registry.claim("alice", FakeSession("alice")))

    async def test_broadcast_skips_sender_and_inactive_sessions(self):
        alice = FakeSession("alice")
        bob = FakeSession("bob")
        carol = FakeSession("carol", active=False)
        for session in (alice, bob, carol):
            await self.registry.claim(session.username, session)

        await self.registry.broadcast("alice: hi", sender=alice)

        self.assertEqual(alice.received, [])
        self.assertEqual(bob.received, ["alice: hi"])
        self.assertEqual(carol.received, [])

    async def test_failed_recipient_is_closed_and_others_still_receive(self):
        alice = FakeSession("alice")
        broken = FakeSession("bob", broken=True)
        carol = FakeSession("carol")
        for session in (alice, broken, carol):
            await self.registry.claim(session.username, session)

        await self.registry.broadcast("alice: hi", sender=alice)

        self.assertEqual(carol.received, ["alice: hi"])
        self.assertEqual(broken.close_calls, 1)
        self.assertEqual(alice.close_calls, 0)
        self.assertEqual(carol.close_calls, 0)

    async def test_deliver_reports_failure(self):
        self.assertTrue(await self.registry.deliver(FakeSession("bob"), "x"))
        self.assertFalse(await self.registry.deliver(FakeSession("bob", broken=True), "x"))


if __name__ == "__main__":
    unittest.main()
