"""
Row access shared by the loan services.
Writes that depend on a previously read status go through a single
``UPDATE ... WHERE status = :expected`` so concurrent requests cannot both win. Rows carrying a generated number
are inserted with ON CONFLICT DO NOTHING, so a taken number is redrawn
without aborting the transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import LoanApplication, ORCRReceipt
from services.errors import DuplicateNumber, NotFound, TransitionConflict
from services.state_machine import parse_action, plan_transition, valid_actions

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


async def load_application(session: AsyncSession, application_id: str, *, for_update: bool = False) -> LoanApplication:
    stmt = select(LoanApplication).where(LoanApplication.id == application_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Application", application_id)
    return application


async def load_receipt(session: AsyncSession, receipt_id: str) -> ORCRReceipt:
    result = await session.execute(select(ORCRReceipt).where(ORCRReceipt.id == receipt_id))
    receipt = result.scalar_one_or_none()
    if receipt is None:
        raise NotFound("Receipt", receipt_id)
    return receipt


async def update_if_status(
    session: AsyncSession,
    application: LoanApplication,
    expected_status: str,
    values: Mapping[str, Any],
) -> bool:
    """
    Write ``values`` only if the row still has ``expected_status``.
    Refreshes ``application`` from the database either way; returns False when
    another writer got there first.
    """
    stmt = (
        update(LoanApplication)
        .where(LoanApplication.id == application.id, LoanApplication.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.refresh(application)
    return result.rowcount == 1


async def write_transition(
    session: AsyncSession,
    application: LoanApplication,
    action: str,
    payload: Optional[Mapping[str, Any]] = None,
    *,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """Plan ``action`` against the loaded row and persist it atomically."""
    action = parse_action(action).value
    expected = application.status
    values = plan_transition(application, action, payload, actor_id=actor_id, now=now)
    if not await update_if_status(session, application, expected, values):
        raise TransitionConflict(application.status, action, valid_actions(application.status))
    logger.info(
        "Application %s: %s -> %s (%s)",
        application.reference_number,
        expected,
        application.status,
        action,
    )
    return application


async def number_in_use(session: AsyncSession, column, value: str) -> bool:
    result = await session.execute(select(column).where(column == value).limit(1))
    return result.first() is not None


async def insert_with_unique_number(
    session: AsyncSession,
    model,
    values: Mapping[str, Any],
    number_column: str,
    make: Callable[[], str],
    error_cls: type[DuplicateNumber],
    attempts: Optional[int] = None,
):
    """
    Insert a ``model`` row whose ``number_column`` is drawn from ``make``.
    A number that is already taken, seen before the insert or lost to a
    concurrent insert, is redrawn at most ``attempts`` times.
    """
    attempts = attempts or settings.number_generation_attempts
    column = getattr(model, number_column)
    candidate = ""
    for attempt in range(1, attempts + 1):
        candidate = make()
        if not await number_in_use(session, column, candidate):
            row = await _insert_row(session, model, {**values, number_column: candidate}, number_column, error_cls)
            if row is not None:
                return row
        logger.warning("Number %s already in use (attempt %d/%d)", candidate, attempt, attempts)
    raise error_cls(candidate, attempts)


async def _insert_row(session: AsyncSession, model, values: dict[str, Any], number_column: str, error_cls):
    """Insert one row; returns None when ``number_column`` conflicted at insert time."""
    insert = _CONFLICT_INSERTS.get(session.get_bind().dialect.name)
    if insert is None:
        # No ON CONFLICT support: a lost race can only be reported
        row = model(**values)
        session.add(row)
        try:
            await session.flush()
        except IntegrityError as exc:
            if number_column not in str(exc.orig):
                raise
            raise error_cls(values[number_column]) from exc
        await session.refresh(row)
        return row

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=[number_column])
    result = await session.execute(stmt)
    if result.rowcount != 1:
        return None
    return await session.get(model, values["id"])
