import unittest

from skillswap.db import InMemoryDbClient, PostgresDbClient
from skillswap.errors import Conflict
from skillswap.types import ExchangeStatus, SkillType


class DbClientContract:
    """Behaviour both storage backends must share."""

    def make_client(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_client()
        self.alice = self.db.create_user(
            username="alice",
            password="hash-a",
            email="alice@example.com",
            full_name="Alice",
        )
        self.bob = self.db.create_user(
            username="bob",
            password="hash-b",
            email="bob@example.com",
            full_name="Bob",
            bio="Designer",
        )

    def add_skill(self, user, title, **overrides):
        fields = dict(
            user_id=user.id,
            title=title,
            description=f"All about {title}",
            skill_type=SkillType.OFFERING,
            category="development",
            tags=[title],
        )
        fields.update(overrides)
        return self.db.create_skill(**fields)

    def test_create_and_lookup_users(self):
        self.assertEqual(self.alice.exchange_count, 0)
        self.assertEqual(self.alice.rating, 0)
        self.assertIsNone(self.alice.avatar)
        self.assertEqual(self.db.get_user(self.bob.id).bio, "Designer")
        self.assertEqual(self.db.get_user_by_username("bob").id, self.bob.id)
        self.assertEqual(self.db.get_user_by_email("alice@example.com").id, self.alice.id)
        self.assertIsNone(self.db.get_user(999))
        self.assertIsNone(self.db.get_user_by_username("nobody"))

    def test_duplicate_user_is_a_conflict(self):
        with self.assertRaises(Conflict):
            self.db.create_user(
                username="alice",
                password="x",
                email="new@example.com",
                full_name="Other",
            )

    def test_update_user_merges_fields(self):
        updated = self.db.update_user(self.alice.id, {"bio": "Teaches React"})
        self.assertEqual(updated.bio, "Teaches React")
        self.assertEqual(updated.full_name, "Alice")
        self.assertIsNone(self.db.update_user(999, {"bio": "ghost"}))
        with self.assertRaises(ValueError):
            self.db.update_user(self.alice.id, {"id": 7})

    def test_skill_tags_keep_order(self):
        skill = self.add_skill(self.alice, "React", tags=["A", "B"])
        self.assertEqual(self.db.get_skill(skill.id).tags, ["A", "B"])
        self.assertIsNotNone(skill.created_at.tzinfo)

    def test_list_skills_filters(self):
        self.add_skill(self.alice, "React")
        self.add_skill(
            self.alice, "Figma", skill_type=SkillType.SEEKING, category="design"
        )
        self.add_skill(self.bob, "Docker", category="devops", tags=["Kubernetes"])

        self.assertEqual(len(self.db.list_skills()), 3)
        self.assertEqual(
            [s.title for s in self.db.list_skills(user_id=self.alice.id)],
            ["React", "Figma"],
        )
        self.assertEqual(
            [s.title for s in self.db.list_skills(category="devops")], ["Docker"]
        )
        self.assertEqual(
            [s.title for s in self.db.list_skills(skill_type=SkillType.SEEKING)],
            ["Figma"],
        )
        self.assertEqual(
            [s.title for s in self.db.list_skills(search="KUBER")], ["Docker"]
        )
        self.assertEqual(
            self.db.list_skills(user_id=self.bob.id, category="design"), []
        )
        self.assertEqual(self.db.list_skills(skill_type="bogus"), [])

    def test_update_and_delete_skill(self):
        skill = self.add_skill(self.alice, "React")
        updated = self.db.update_skill(skill.id, {"title": "Hooks", "tags": ["X"]})
        self.assertEqual(updated.title, "Hooks")
        self.assertEqual(updated.tags, ["X"])
        self.assertEqual(updated.description, skill.description)
        self.assertIsNone(self.db.update_skill(999, {"title": "ghost"}))

        self.assertTrue(self.db.delete_skill(skill.id))
        self.assertIsNone(self.db.get_skill(skill.id))
        self.assertFalse(self.db.delete_skill(skill.id))

    def make_exchange(self):
        offered = self.add_skill(self.alice, "React")
        wanted = self.add_skill(self.bob, "Figma")
        return self.db.create_exchange(
            initiator_id=self.alice.id,
            responder_id=self.bob.id,
            initiator_skill_id=offered.id,
            responder_skill_id=wanted.id,
        )

    def test_exchanges_for_user_newest_update_first(self):
        first = self.make_exchange()
        second = self.make_exchange()
        self.db.transition_exchange(
            first.id,
            ExchangeStatus.ACCEPTED,
            allowed_from={ExchangeStatus.PENDING},
        )
        ids = [e.id for e in self.db.list_exchanges_for_user(self.bob.id)]
        self.assertEqual(ids, [first.id, second.id])
        self.assertEqual(len(self.db.list_exchanges_for_user(self.alice.id)), 2)
        self.assertEqual(self.db.list_exchanges_for_user(999), [])

    def test_transition_is_compare_and_set(self):
        exchange = self.make_exchange()
        self.assertEqual(exchange.status, ExchangeStatus.PENDING)

        completed = self.db.transition_exchange(
            exchange.id,
            ExchangeStatus.COMPLETED,
            allowed_from={ExchangeStatus.PENDING, ExchangeStatus.ACCEPTED},
            count_completion=True,
        )
        self.assertEqual(completed.status, ExchangeStatus.COMPLETED)
        self.assertGreaterEqual(completed.updated_at, exchange.updated_at)

        again = self.db.transition_exchange(
            exchange.id,
            ExchangeStatus.COMPLETED,
            allowed_from={ExchangeStatus.PENDING, ExchangeStatus.ACCEPTED},
            count_completion=True,
        )
        self.assertIsNone(again)
        self.assertEqual(self.db.get_user(self.alice.id).exchange_count, 1)
        self.assertEqual(self.db.get_user(self.bob.id).exchange_count, 1)
        self.assertIsNone(
            self.db.transition_exchange(
                999, ExchangeStatus.ACCEPTED, allowed_from={ExchangeStatus.PENDING}
            )
        )

    def test_messages_in_chronological_order(self):
        exchange = self.make_exchange()
        for sender, content in ((self.alice, "one"), (self.bob, "two"), (self.alice, "three")):
            self.db.create_message(
                exchange_id=exchange.id, sender_id=sender.id, content=content
            )
        other = self.make_exchange()
        self.db.create_message(exchange_id=other.id, sender_id=self.bob.id, content="x")

        messages = self.db.list_messages(exchange.id)
        self.assertEqual([m.content for m in messages], ["one", "two", "three"])
        self.assertEqual(self.db.get_message(messages[0].id).sender_id, self.alice.id)
        self.assertIsNone(self.db.get_message(999))


class InMemoryDbClientTests(DbClientContract, unittest.TestCase):
    def make_client(self):
        return InMemoryDbClient()

    def test_returned_records_are_copies(self):
        skill = self.add_skill(self.alice, "React", tags=["A"])
        skill.tags.append("mutated")
        self.assertEqual(self.db.get_skill(skill.id).tags, ["A"])

    def test_ids_are_monotonic(self):
        first = self.add_skill(self.alice, "React")
        self.db.delete_skill(first.id)
        second = self.add_skill(self.alice, "Vue")
        self.assertGreater(second.id, first.id)


class PostgresDbClientTests(DbClientContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def make_client(self):
        return PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            PostgresDbClient("")


if __name__ == "__main__":
    unittest.main()
