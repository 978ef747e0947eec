from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext

from ..extensions import db


# In-memory SQLite hands every session the same DBAPI connection, so a commit
# from one unit of work would also commit rows another one has only flushed.
# Units of work on such an engine run one at a time.
_SHARED_CONNECTION_LOCK = threading.RLock()


def shares_one_connection(engine) -> bool:
    """True for in-memory SQLite, where all sessions share one connection."""
    url = engine.url
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class SqlStore:
    """
    Shared plumbing for the stores: every store works on one SQLAlchemy
    session (the Flask-SQLAlchemy scoped session unless one is injected).

    Mutating store methods only flush. The calling service decides when the
    unit of work is committed or rolled back.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _write_guard(self):
        if shares_one_connection(self.session.get_bind()):
            return _SHARED_CONNECTION_LOCK
        return nullcontext()

    @contextmanager
    def unit_of_work(self):
        """
        Commit when the block finishes, roll back if it raises.

        Raises:
            Whatever the block raised, after the rollback

        WHY: A rejected action must leave the stores exactly as they were,
        including when other requests commit while this one is running.
        """
        with self._write_guard():
            try:
                yield self
            except Exception:
                self.session.rollback()
                raise
            self.session.commit()
