"""Transaction boundaries for service-layer mutations.

``atomic`` commits when the outermost block exits cleanly and rolls back on
any exception. Nested blocks join the enclosing transaction, so a service
function that is atomic on its own can be composed into a larger unit of work
(cloning a collection with its assets, for instance) without committing early.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scenes.lib.errors import StorageError

logger = logging.getLogger(__name__)

_DEPTH_KEY = "scenes.atomic_depth"


@asynccontextmanager
async def atomic(db_session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed statements as one transaction.

    SQLAlchemy errors are logged and re-raised as ``StorageError``; every
    other exception propagates unchanged after the rollback.
    """
    depth = db_session.info.get(_DEPTH_KEY, 0)
    db_session.info[_DEPTH_KEY] = depth + 1
    outermost = depth == 0
    try:
        yield db_session
        if outermost:
            await db_session.commit()
    except SQLAlchemyError as exc:
        if outermost:
            await db_session.rollback()
        logger.error("Database operation failed: %s", exc, exc_info=True)
        raise StorageError(f"Database operation failed: {exc}") from exc
    except BaseException:
        if outermost:
            await db_session.rollback()
        raise
    finally:
        db_session.info[_DEPTH_KEY] = depth
