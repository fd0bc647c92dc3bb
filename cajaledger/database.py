"""Durable key-value storage for the CajaLedger ledger."""
import json
import logging
import sqlite3
from contextlib import contextmanager

from cajaledger.config import DEFAULT_DB_NAME, MEMBERS_STORAGE_KEY, LOANS_STORAGE_KEY
from cajaledger.data_structures import Member, Loan
from cajaledger.exceptions import StorageError
from cajaledger.result import Result, ErrorType

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Stores the whole ledger as two JSON records in a SQLite key-value table.

    Members (with their deposits) and loans (with their payments) are kept
    under two fixed keys, mirroring the two named records the ledger is
    exchanged in.
    """

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        self._closed = False
        try:
            self.conn = sqlite3.connect(db_name)
            self.create_tables()
        except sqlite3.Error as e:
            if hasattr(self, "conn"):
                self.conn.close()
            self._closed = True
            raise StorageError(f"Could not open storage: {e}", {'db_name': db_name})

    def close(self):
        """Close the database connection."""
        if not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, "conn"):
            self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def transaction(self):
        """Context manager for writes with automatic rollback on failure.

        Usage:
            with db.transaction():
                db.set_value(...)
                db.set_value(...)
        """
        try:
            yield
            self.conn.commit()
        except sqlite3.Error as e:
            self._rollback()
            raise StorageError(f"Storage write failed: {e}")
        except Exception:
            self._rollback()
            raise

    def _rollback(self):
        try:
            self.conn.rollback()
        except sqlite3.Error as e:
            # Closed connections can't roll back; the original error is raised
            logger.warning("Rollback failed: %s", e)

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        self.conn.commit()

    def get_value(self, key, default=None):
        """Get a raw stored value."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("SELECT value FROM kv_store WHERE key=?", (key,))
            res = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Storage read failed: {e}", {'key': key})
        return res[0] if res else default

    def set_value(self, key, value):
        """Set a raw value. Commit is left to the surrounding transaction."""
        cursor = self.conn.cursor()
        cursor.execute("INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value))

    def save(self, members, loans):
        """Persist the whole ledger in one transaction.

        Raises:
            StorageError: If the data cannot be serialized or written.
        """
        try:
            members_json = json.dumps([m.to_dict() for m in members])
            loans_json = json.dumps([l.to_dict() for l in loans])
        except (TypeError, ValueError) as e:
            raise StorageError(f"Could not serialize ledger: {e}")

        with self.transaction():
            self.set_value(MEMBERS_STORAGE_KEY, members_json)
            self.set_value(LOANS_STORAGE_KEY, loans_json)
        logger.debug("Saved %d members and %d loans", len(members), len(loans))

    def load(self):
        """Read the persisted ledger.

        Missing records mean an empty ledger. Corrupt data never raises: the
        result is a failure whose value is an empty ledger.

        Returns:
            Result whose value is a (members, loans) tuple.
        """
        try:
            members_json = self.get_value(MEMBERS_STORAGE_KEY)
            loans_json = self.get_value(LOANS_STORAGE_KEY)
            members = [Member.from_dict(m) for m in json.loads(members_json or "[]")]
            loans = [Loan.from_dict(l) for l in json.loads(loans_json or "[]")]
        except StorageError as e:
            logger.error("Could not load ledger from storage: %s", e)
            return Result.fail(str(e), ErrorType.STORAGE, value=([], []), details=e.details)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Stored ledger is corrupt, starting empty: %s", e)
            return Result.fail(f"Stored ledger is corrupt: {e}", ErrorType.STORAGE, value=([], []))

        return Result.ok((members, loans))

    def clear(self):
        """Remove both ledger records."""
        with self.transaction():
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM kv_store WHERE key IN (?, ?)",
                           (MEMBERS_STORAGE_KEY, LOANS_STORAGE_KEY))
