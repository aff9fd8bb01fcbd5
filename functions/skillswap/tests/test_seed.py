import unittest
from unittest.mock import patch

from skillswap import auth
from skillswap.db import InMemoryDbClient
from skillswap.dependencies import get_db_client, reset_db_client
from skillswap.seed import DEMO_PASSWORD, seed_demo_data
from skillswap.types import ExchangeStatus


class SeedTests(unittest.TestCase):
    def test_seed_populates_demo_data_once(self):
        db = InMemoryDbClient()
        self.assertTrue(seed_demo_data(db))
        self.assertFalse(seed_demo_data(db))

        self.assertEqual(len(db.users), 4)
        self.assertEqual(len(db.skills), 8)
        michael = db.get_user_by_username("michaelchen")
        sarah = db.get_user_by_username("sarahkim")
        exchanges = db.list_exchanges_for_user(michael.id)
        self.assertEqual(len(exchanges), 1)
        self.assertEqual(exchanges[0].status, ExchangeStatus.ACCEPTED)
        self.assertEqual(exchanges[0].responder_id, sarah.id)
        self.assertEqual(len(db.list_messages(exchanges[0].id)), 3)

    def test_seeded_users_can_log_in(self):
        db = InMemoryDbClient()
        seed_demo_data(db)
        user = auth.authenticate(db, "priyasharma", DEMO_PASSWORD)
        self.assertEqual(user.full_name, "Priya Sharma")


class DbClientSelectionTests(unittest.TestCase):
    def setUp(self):
        reset_db_client()

    def tearDown(self):
        reset_db_client()

    @patch("skillswap.dependencies.get_settings")
    def test_defaults_to_in_memory_singleton(self, mock_settings):
        mock_settings.return_value = type(
            "Settings",
            (),
            {
                "use_in_memory_backends": False,
                "database_url": None,
                "seed_demo_data": False,
            },
        )()
        db = get_db_client()
        self.assertIsInstance(db, InMemoryDbClient)
        self.assertIs(get_db_client(), db)
        self.assertEqual(db.users, {})

        reset_db_client()
        self.assertIsNot(get_db_client(), db)

    @patch("skillswap.dependencies.get_settings")
    def test_seeds_when_configured(self, mock_settings):
        mock_settings.return_value = type(
            "Settings",
            (),
            {
                "use_in_memory_backends": True,
                "database_url": "postgresql://ignored",
                "seed_demo_data": True,
            },
        )()
        db = get_db_client()
        self.assertIsInstance(db, InMemoryDbClient)
        self.assertIsNotNone(db.get_user_by_username("michaelchen"))


if __name__ == "__main__":
    unittest.main()
