import unittest

from sqlalchemy import text

from signalcast.core.database import engine, get_session


class TestDatabase(unittest.TestCase):

    def test_sqlite_connections_use_wal_and_wait_on_locks(self):
        with engine.connect() as conn:
            self.assertEqual(conn.execute(text("PRAGMA journal_mode")).scalar(), "wal")
            self.assertEqual(conn.execute(text("PRAGMA busy_timeout")).scalar(), 30000)

    def test_get_session_yields_one_session(self):
        sessions = get_session()
        session = next(sessions)
        self.assertEqual(session.connection().execute(text("SELECT 1")).scalar(), 1)
        sessions.close()


if __name__ == "__main__":
    unittest.main()
