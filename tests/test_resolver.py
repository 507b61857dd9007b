import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from core.resolver import ParticipantKey, ReferenceResolver, placeholder_participant


class TestReferenceResolver(unittest.TestCase):
    def setUp(self):
        self.store = MagicMock()
        self.store.find_archived_user.return_value = None
        self.resolver = ReferenceResolver(self.store)

    def test_category_mapping(self):
        self.resolver.register_category("900", 1)
        self.assertEqual(self.resolver.resolve_category("900"), 1)
        self.assertIsNone(self.resolver.resolve_category("901"))
        self.assertIsNone(self.resolver.resolve_category(None))
        self.assertEqual(self.resolver.category_map, {"900": 1})

    def test_known_user_created_once(self):
        self.assertEqual(self.resolver.ensure_known_user("42"), "42")
        self.assertEqual(self.resolver.ensure_known_user("42"), "42")
        self.store.ensure_user.assert_called_once_with("42")

    def test_known_user_none_stays_none(self):
        self.assertIsNone(self.resolver.ensure_known_user(None))
        self.assertIsNone(self.resolver.ensure_known_user(""))
        self.store.ensure_user.assert_not_called()

    def test_participant_with_metadata(self):
        key = self.resolver.ensure_participant("T1", "U1", {"username": "alice", "bot": False})
        self.assertEqual(key, ParticipantKey("T1", "U1"))
        self.store.create_archived_user.assert_called_once_with(
            {"username": "alice", "bot": False, "ticket_id": "T1", "user_id": "U1"})
        self.assertEqual(self.resolver.placeholders_created, 0)

    def test_participant_placeholder(self):
        self.resolver.ensure_participant("T1", "U9")
        fields = self.store.create_archived_user.call_args[0][0]
        self.assertEqual(fields["username"], "Unknown User")
        self.assertEqual(fields["discriminator"], "0000")
        self.assertEqual(fields["user_id"], "U9")
        self.assertEqual(self.resolver.placeholders_created, 1)

    def test_placeholder_stamped_with_message_time(self):
        sent = datetime(2022, 3, 1, 12, 0, 2, tzinfo=timezone.utc)
        self.resolver.ensure_participant("T1", "U9", created_at=sent)
        fields = self.store.create_archived_user.call_args[0][0]
        self.assertEqual(fields["created_at"], sent)

    def test_participant_created_once_per_ticket(self):
        self.resolver.ensure_participant("T1", "U9")
        self.resolver.ensure_participant("T1", "U9")
        self.resolver.ensure_participant("T2", "U9")
        self.assertEqual(self.store.create_archived_user.call_count, 2)
        self.assertEqual(self.store.find_archived_user.call_count, 2)

    def test_existing_participant_not_modified(self):
        self.store.find_archived_user.return_value = {"ticket_id": "T1", "user_id": "U1"}
        self.resolver.ensure_participant("T1", "U1")
        self.store.create_archived_user.assert_not_called()
        self.assertEqual(self.resolver.placeholders_created, 0)

    def test_placeholder_is_fresh_copy(self):
        first = placeholder_participant()
        first["username"] = "changed"
        self.assertEqual(placeholder_participant()["username"], "Unknown User")


if __name__ == '__main__':
    unittest.main()
