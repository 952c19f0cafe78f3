import unittest
from unittest.mock import Mock

from chat_relay.persistence.dynamodb import DynamoDBSessionStore
from chat_relay.persistence.hooks import PersistenceHooks, PersistenceWorker
from chat_relay.persistence.in_memory import InMemorySessionStore
from chat_relay.turns import ChatTurn


class InMemorySessionStoreTests(unittest.TestCase):
    def test_messages_are_listed_in_creation_order(self) -> None:
        store = InMemorySessionStore()
        session = store.create_session("user-1", "Chat")

        store.create_message(session.id, "user", "first")
        store.create_message(session.id, "assistant", "second", "gpt-4o-mini")

        messages = store.list_messages(session.id)
        self.assertEqual([m.content for m in messages], ["first", "second"])
        self.assertEqual(messages[1].model, "gpt-4o-mini")

    def test_unknown_session(self) -> None:
        store = InMemorySessionStore()

        self.assertIsNone(store.get_session("missing"))
        with self.assertRaises(KeyError):
            store.create_message("missing", "user", "hi")
        with self.assertRaises(KeyError):
            store.touch_session("missing")

    def test_touch_session_advances_updated_at(self) -> None:
        store = InMemorySessionStore()
        session = store.create_session(None)

        store.touch_session(session.id)

        self.assertGreaterEqual(store.get_session(session.id).updated_at, session.updated_at)


class DynamoDBSessionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.table = Mock()
        self.store = DynamoDBSessionStore("sessions", "ap-northeast-1", table=self.table)

    def test_get_session_reads_meta_item(self) -> None:
        self.table.get_item.return_value = {
            "Item": {
                "pk": "SESSION#abc",
                "sk": "META",
                "session_id": "abc",
                "user_id": "u1",
                "created_at": "2025-01-01T00:00:00+00:00",
                "updated_at": "2025-01-02T00:00:00+00:00",
            }
        }

        session = self.store.get_session("abc")

        self.table.get_item.assert_called_once_with(Key={"pk": "SESSION#abc", "sk": "META"})
        self.assertEqual(session.id, "abc")
        self.assertEqual(session.user_id, "u1")

    def test_get_session_missing(self) -> None:
        self.table.get_item.return_value = {}

        self.assertIsNone(self.store.get_session("abc"))

    def test_create_message_writes_sortable_key(self) -> None:
        message = self.store.create_message("abc", "assistant", "hello", "gpt-4o-mini")

        item = self.table.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["pk"], "SESSION#abc")
        self.assertTrue(item["sk"].startswith("MSG#"))
        self.assertEqual(item["model"], "gpt-4o-mini")
        self.assertEqual(message.content, "hello")

    def test_list_messages_follows_pagination(self) -> None:
        def item(message_id: str) -> dict[str, str]:
            return {
                "message_id": message_id,
                "session_id": "abc",
                "role": "user",
                "content": message_id,
                "created_at": "2025-01-01T00:00:00+00:00",
            }

        self.table.query.side_effect = [
            {"Items": [item("m1")], "LastEvaluatedKey": {"pk": "x", "sk": "y"}},
            {"Items": [item("m2")]},
        ]

        messages = self.store.list_messages("abc")

        self.assertEqual([m.id for m in messages], ["m1", "m2"])
        self.assertEqual(self.table.query.call_count, 2)
        self.assertEqual(
            self.table.query.call_args.kwargs["ExclusiveStartKey"], {"pk": "x", "sk": "y"}
        )

    def test_touch_session_requires_existing_item(self) -> None:
        self.store.touch_session("abc")

        kwargs = self.table.update_item.call_args.kwargs
        self.assertEqual(kwargs["Key"], {"pk": "SESSION#abc", "sk": "META"})
        self.assertEqual(kwargs["ConditionExpression"], "attribute_exists(pk)")


class PersistenceHooksTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = InMemorySessionStore()
        self.session = self.store.create_session("user-1")
        self.worker = PersistenceWorker()
        self.hooks = PersistenceHooks(self.store, self.worker, timeout_seconds=1.0)

    async def asyncTearDown(self) -> None:
        await self.worker.aclose()

    async def test_inbound_stores_latest_user_turn(self) -> None:
        turns = [
            ChatTurn(role="user", content="first"),
            ChatTurn(role="assistant", content="reply"),
            ChatTurn(role="user", content="second"),
        ]

        persisted = await self.hooks.record_inbound(self.session.id, turns)

        self.assertTrue(persisted)
        self.assertEqual([m.content for m in self.store.list_messages(self.session.id)], ["second"])

    async def test_inbound_without_session_reference_is_skipped(self) -> None:
        self.assertFalse(await self.hooks.record_inbound(None, [ChatTurn("user", "hi")]))

    async def test_inbound_for_unknown_session(self) -> None:
        self.assertFalse(await self.hooks.record_inbound("missing", [ChatTurn("user", "hi")]))

    async def test_inbound_store_failure_is_swallowed(self) -> None:
        store = Mock()
        store.get_session.side_effect = ConnectionError("dynamodb down")
        hooks = PersistenceHooks(store, self.worker, timeout_seconds=1.0)

        with self.assertLogs("chat_relay.persistence.hooks", level="WARNING"):
            persisted = await hooks.record_inbound("abc", [ChatTurn("user", "hi")])

        self.assertFalse(persisted)

    async def test_outbound_is_written_by_the_worker(self) -> None:
        self.hooks.record_outbound(self.session.id, "assistant reply", "gpt-4o-mini")
        await self.worker.join(timeout_seconds=1.0)

        messages = self.store.list_messages(self.session.id)
        self.assertEqual(
            [(m.role, m.content, m.model) for m in messages],
            [("assistant", "assistant reply", "gpt-4o-mini")],
        )

    async def test_outbound_blank_reply_is_not_stored(self) -> None:
        self.hooks.record_outbound(self.session.id, "  ", "gpt-4o-mini")
        await self.worker.join(timeout_seconds=1.0)

        self.assertEqual(self.store.list_messages(self.session.id), [])

    async def test_worker_failures_reach_only_the_log(self) -> None:
        def failing_job() -> None:
            raise RuntimeError("boom")

        with self.assertLogs("chat_relay.persistence.hooks", level="ERROR"):
            self.worker.submit("failing", failing_job)
            await self.worker.join(timeout_seconds=1.0)

        ran: list[str] = []
        self.worker.submit("after_failure", lambda: ran.append("after_failure"))
        await self.worker.join(timeout_seconds=1.0)
        self.assertEqual(ran, ["after_failure"])


if __name__ == "__main__":
    unittest.main()
