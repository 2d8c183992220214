# Overview: Scoped transactions and row locking shared by the POS services.

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError

from ..errors import PosError, StoreError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@dataclass
class UnitOfWork:
    """Outcome of a unit_of_work() scope."""
    session: Any
    committed: bool = False
    rolled_back: bool = False


@contextmanager
def unit_of_work(session) -> Iterator[UnitOfWork]:
    """
    Run a group of mutations atomically on `session`.

    Clean exit commits. Any exception rolls back every change made in the
    scope and is re-raised; unclassified SQLAlchemy errors are re-raised as
    StoreError carrying the driver's message. There is no retry: the caller
    decides whether to resubmit.

        with unit_of_work(session) as uow:
            ...
        assert uow.committed
    """
    uow = UnitOfWork(session=session)
    try:
        yield uow
        session.commit()
    except PosError:
        session.rollback()
        uow.rolled_back = True
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        uow.rolled_back = True
        logger.exception("Store failure, unit of work rolled back")
        message = str(getattr(exc, "orig", None) or exc)
        raise StoreError(message, details={"store_error": type(exc).__name__}) from exc
    except BaseException:
        session.rollback()
        uow.rolled_back = True
        raise
    uow.committed = True
