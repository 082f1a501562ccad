"""
Advisory lock that keeps two imports of the same translation code apart.

The lock is a row in ``import_locks`` keyed by translation code; the
primary key makes a second acquire fail in any process that shares the
database. A run killed mid-import leaves its row behind. When the holder
ran on this host and its process is gone the row is taken over; otherwise
``release_import_lock`` (``--unlock`` or the release endpoint) clears it.
"""
import logging
import os
import socket
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from importers.errors import ImportLockedError
from models import ImportLock

logger = logging.getLogger(__name__)


def default_owner():
    return f"{socket.gethostname()}:{os.getpid()}"


def _process_alive(pid):
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def is_stale(holder):
    """True when ``holder`` was taken on this host by a process that no longer exists."""
    host, _, pid = holder.owner.rpartition(':')
    if host != socket.gethostname() or not pid.isdigit():
        return False
    return not _process_alive(int(pid))


def _try_acquire(session, translation_code, owner):
    session.add(ImportLock(translation_code=translation_code, owner=owner))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return False
    return True


def acquire_import_lock(session, translation_code, owner=None):
    owner = owner or default_owner()
    if not _try_acquire(session, translation_code, owner):
        holder = session.get(ImportLock, translation_code)
        if holder is not None and is_stale(holder):
            logger.warning(f"Taking over stale import lock for {translation_code} from dead process {holder.owner}")
            session.expunge(holder)
            session.query(ImportLock).filter_by(translation_code=translation_code, owner=holder.owner).delete(
                synchronize_session=False)
            session.commit()
            acquired = _try_acquire(session, translation_code, owner)
        else:
            acquired = False
        if not acquired:
            holder = session.get(ImportLock, translation_code)
            held_by = f"{holder.owner} since {holder.acquired_at}" if holder else "another process"
            raise ImportLockedError(
                f"An import of '{translation_code}' is already running (lock held by {held_by}). "
                f"If that run is dead, release the lock (import_scripture.py --unlock {translation_code} "
                f"or POST /api/import/locks/{translation_code}/release) and retry."
            )
    logger.info(f"Acquired import lock for {translation_code} ({owner})")


def release_import_lock(session, translation_code):
    deleted = (
        session.query(ImportLock)
        .filter(ImportLock.translation_code == translation_code)
        .delete(synchronize_session=False)
    )
    session.commit()
    if deleted:
        logger.info(f"Released import lock for {translation_code}")
    return bool(deleted)


@contextmanager
def import_lock(session, translation_code, owner=None):
    acquire_import_lock(session, translation_code, owner)
    try:
        yield
    finally:
        try:
            # Anything not committed by now belongs to a failed batch
            session.rollback()
            release_import_lock(session, translation_code)
        except SQLAlchemyError as e:
            logger.error(f"Could not release import lock for {translation_code}: {e}", exc_info=True)
            raise
