"""Unit tests for the refresh-token registries and the purge CLI."""

import threading
import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

from support import make_file_engine, make_memory_engine, make_session_factory, temp_dir

from storefront.models import RefreshToken, User
from storefront.services.refresh_tokens import (
    InMemoryRefreshTokenRegistry,
    SqlRefreshTokenRegistry,
    registry_for,
)


def _future(minutes: int = 15) -> datetime:
    return datetime.now(UTC) + timedelta(minutes=minutes)


def _past(minutes: int = 1) -> datetime:
    return datetime.now(UTC) - timedelta(minutes=minutes)


def _race(remove, token: str, contenders: int = 8) -> list[bool]:
    """Call remove(token) from several threads released at the same instant."""
    barrier = threading.Barrier(contenders)
    results: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        outcome = remove(token)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(contenders)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestInMemoryRegistry(unittest.TestCase):
    """The process-wide registry removes each token exactly once."""

    def setUp(self) -> None:
        self.registry = InMemoryRefreshTokenRegistry()

    def test_added_token_is_present_until_removed(self) -> None:
        self.registry.add("tok-1", 1, _future())
        self.assertIn("tok-1", self.registry)
        self.assertTrue(self.registry.remove_if_present("tok-1"))
        self.assertNotIn("tok-1", self.registry)
        self.assertFalse(self.registry.remove_if_present("tok-1"))

    def test_unknown_token_is_not_removed(self) -> None:
        self.assertFalse(self.registry.remove_if_present("never-issued"))

    def test_expired_token_counts_as_absent(self) -> None:
        self.registry.add("old", 1, _past())
        self.assertNotIn("old", self.registry)
        self.assertFalse(self.registry.remove_if_present("old"))
        self.assertEqual(len(self.registry), 0)

    def test_purge_expired_keeps_live_tokens(self) -> None:
        self.registry.add("old", 1, _past())
        self.registry.add("live", 1, _future())
        self.assertEqual(self.registry.purge_expired(), 1)
        self.assertEqual(len(self.registry), 1)
        self.assertIn("live", self.registry)

    def test_concurrent_removal_has_one_winner(self) -> None:
        self.registry.add("contested", 1, _future())
        results = _race(self.registry.remove_if_present, "contested")
        self.assertEqual(results.count(True), 1)
        self.assertNotIn("contested", self.registry)

    def test_rotate_swaps_live_token(self) -> None:
        self.registry.add("old", 1, _future())
        self.assertTrue(self.registry.rotate("old", "new", 1, _future()))
        self.assertNotIn("old", self.registry)
        self.assertIn("new", self.registry)
        self.assertFalse(self.registry.rotate("old", "newer", 1, _future()))
        self.assertNotIn("newer", self.registry)


class TestSqlRegistry(unittest.TestCase):
    """The table-backed registry stores only token hashes and deletes atomically."""

    def setUp(self) -> None:
        self.engine = make_memory_engine()
        self.Session = make_session_factory(self.engine)
        self.session = self.Session()
        user = User(email="a@x.com", username="a", password_hash="h", role="customer")
        self.session.add(user)
        self.session.commit()
        self.user_id = user.id
        self.registry = SqlRefreshTokenRegistry(self.session)

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()

    def test_add_and_remove_once(self) -> None:
        self.registry.add("tok-1", self.user_id, _future())
        self.assertIn("tok-1", self.registry)
        self.assertTrue(self.registry.remove_if_present("tok-1"))
        self.assertFalse(self.registry.remove_if_present("tok-1"))
        self.assertEqual(self.session.query(RefreshToken).count(), 0)

    def test_raw_token_is_not_stored(self) -> None:
        self.registry.add("tok-secret", self.user_id, _future())
        row = self.session.query(RefreshToken).one()
        self.assertNotEqual(row.token_hash, "tok-secret")
        self.assertEqual(len(row.token_hash), 64)

    def test_expired_row_is_not_redeemable(self) -> None:
        self.registry.add("old", self.user_id, _past())
        self.assertNotIn("old", self.registry)
        self.assertFalse(self.registry.remove_if_present("old"))

    def test_purge_expired(self) -> None:
        self.registry.add("old", self.user_id, _past())
        self.registry.add("live", self.user_id, _future())
        self.assertEqual(self.registry.purge_expired(), 1)
        self.assertEqual(self.session.query(RefreshToken).count(), 1)
        self.assertIn("live", self.registry)

    def test_rotate_swaps_live_token(self) -> None:
        self.registry.add("old", self.user_id, _future())
        self.assertTrue(self.registry.rotate("old", "new", self.user_id, _future()))
        self.assertNotIn("old", self.registry)
        self.assertIn("new", self.registry)
        self.assertFalse(self.registry.rotate("old", "newer", self.user_id, _future()))
        self.assertNotIn("newer", self.registry)

    def test_rollback_undoes_rotation(self) -> None:
        self.registry.add("old", self.user_id, _future())
        self.session.commit()
        self.assertTrue(self.registry.rotate("old", "new", self.user_id, _future()))
        self.session.rollback()
        self.assertIn("old", self.registry)
        self.assertNotIn("new", self.registry)


class TestSqlRegistryConcurrency(unittest.TestCase):
    """Concurrent sessions redeeming the same token: exactly one DELETE hits the row."""

    def test_concurrent_removal_has_one_winner(self) -> None:
        with temp_dir() as directory:
            engine = make_file_engine(directory)
            Session = make_session_factory(engine)
            try:
                with Session() as session:
                    user = User(email="a@x.com", username="a", password_hash="h", role="customer")
                    session.add(user)
                    session.commit()
                    SqlRefreshTokenRegistry(session).add("contested", user.id, _future())
                    session.commit()

                def remove(token: str) -> bool:
                    with Session() as s:
                        removed = SqlRefreshTokenRegistry(s).remove_if_present(token)
                        s.commit()
                        return removed

                results = _race(remove, "contested", contenders=4)
                self.assertEqual(results.count(True), 1)
                self.assertEqual(results.count(False), 3)
                with Session() as session:
                    self.assertEqual(session.query(RefreshToken).count(), 0)
            finally:
                engine.dispose()


class TestRegistrySelection(unittest.TestCase):
    """registry_for follows REFRESH_TOKEN_STORE."""

    def test_memory_store_is_process_wide(self) -> None:
        settings = MagicMock()
        settings.REFRESH_TOKEN_STORE = "memory"
        first = registry_for(MagicMock(), settings)
        second = registry_for(MagicMock(), settings)
        self.assertIsInstance(first, InMemoryRefreshTokenRegistry)
        self.assertIs(first, second)

    def test_database_store_uses_request_session(self) -> None:
        settings = MagicMock()
        settings.REFRESH_TOKEN_STORE = "database"
        session = MagicMock()
        registry = registry_for(session, settings)
        self.assertIsInstance(registry, SqlRefreshTokenRegistry)
        self.assertIs(registry.session, session)


class TestPurgeCli(unittest.TestCase):
    """python -m storefront.purge_tokens deletes expired rows and reports success."""

    def test_purges_with_database_store(self) -> None:
        from storefront import purge_tokens

        engine = make_memory_engine()
        Session = make_session_factory(engine)
        with Session() as session:
            user = User(email="a@x.com", username="a", password_hash="h", role="customer")
            session.add(user)
            session.commit()
            SqlRefreshTokenRegistry(session).add("old", user.id, _past())
            session.commit()
        settings = MagicMock()
        settings.REFRESH_TOKEN_STORE = "database"
        with patch.object(purge_tokens, "SessionLocal", Session), patch.object(
            purge_tokens, "get_settings", return_value=settings
        ):
            self.assertEqual(purge_tokens.main(), 0)
        with Session() as session:
            self.assertEqual(session.query(RefreshToken).count(), 0)
        engine.dispose()

    def test_skips_with_memory_store(self) -> None:
        from storefront import purge_tokens

        settings = MagicMock()
        settings.REFRESH_TOKEN_STORE = "memory"
        session_factory = MagicMock()
        with patch.object(purge_tokens, "SessionLocal", session_factory), patch.object(
            purge_tokens, "get_settings", return_value=settings
        ):
            self.assertEqual(purge_tokens.main(), 0)
        session_factory.assert_not_called()

    def test_returns_one_on_failure(self) -> None:
        from storefront import purge_tokens

        settings = MagicMock()
        settings.REFRESH_TOKEN_STORE = "database"
        session = MagicMock()
        session.query.side_effect = RuntimeError("db down")
        with patch.object(purge_tokens, "SessionLocal", return_value=session), patch.object(
            purge_tokens, "get_settings", return_value=settings
        ):
            self.assertEqual(purge_tokens.main(), 1)
        session.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
