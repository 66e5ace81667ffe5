"""Dense 1..N ordering of the phases of a site.

Every operation here locks the site row first so concurrent inserts and
removals on one site are serialized, and finishes by rewriting the whole
sequence. Any failure rolls back the shift together with the insert or
delete that caused it.

Row locks are always taken site first, then task, then phase; when one
transaction touches several phases it locks them in id order. Callers
outside this module that write phase rows follow the same order.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitetrack.errors import ValidationError
from sitetrack.models.phase import Phase
from sitetrack.services.access import ensure_admin
from sitetrack.services.cascade import purge_phases
from sitetrack.services.lookup import get_phase, get_site


logger = logging.getLogger(__name__)


def clamp_position(position: int | None, upper: int) -> int:
    if position is None:
        return upper
    return max(1, min(int(position), upper))


async def _phase_count(db: AsyncSession, site_id: uuid.UUID) -> int:
    return int(
        (await db.execute(select(func.count()).select_from(Phase).where(Phase.site_id == site_id))).scalar_one()
    )


async def ordered_phases(db: AsyncSession, site_id: uuid.UUID) -> list[Phase]:
    stmt = (
        select(Phase)
        .where(Phase.site_id == site_id)
        .order_by(Phase.order_num, Phase.created_at)
        .execution_options(populate_existing=True)
    )
    return list((await db.execute(stmt)).scalars().all())


async def _write_order(db: AsyncSession, phases: list[Phase]) -> None:
    # Park on negatives first so (site_id, order_num) never holds a transient duplicate.
    for index, phase in enumerate(phases, start=1):
        phase.order_num = -index
    await db.flush()
    for index, phase in enumerate(phases, start=1):
        phase.order_num = index
    await db.flush()


async def renumber_phases(db: AsyncSession, site_id: uuid.UUID) -> list[Phase]:
    phases = await ordered_phases(db, site_id)
    await _write_order(db, phases)
    return phases


async def _shift_from(db: AsyncSession, site_id: uuid.UUID, position: int) -> None:
    await db.execute(
        update(Phase)
        .where(Phase.site_id == site_id, Phase.order_num >= position)
        .values(order_num=-(Phase.order_num + 1))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Phase)
        .where(Phase.site_id == site_id, Phase.order_num < 0)
        .values(order_num=-Phase.order_num)
        .execution_options(synchronize_session=False)
    )


async def insert_phase(
    db: AsyncSession,
    *,
    site_id: uuid.UUID,
    name: str,
    position: int | None = None,
    budget: Decimal | None = None,
) -> Phase:
    """Insert a phase at ``position`` (clamped to 1..N+1, default: append)."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Phase name is required")
    try:
        await get_site(db, site_id, for_update=True)
        count = await _phase_count(db, site_id)
        target = clamp_position(position, count + 1)

        await _shift_from(db, site_id, target)
        phase = Phase(site_id=site_id, name=name, order_num=target, budget=budget or Decimal("0"))
        db.add(phase)
        await db.flush()

        await renumber_phases(db, site_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Inserted phase %s into site %s at position %s", phase.id, site_id, phase.order_num)
    return phase


async def move_phase(db: AsyncSession, *, phase: Phase, position: int) -> None:
    """Reposition an existing phase inside its site. Caller commits."""
    await get_site(db, phase.site_id, for_update=True)
    phases = [p for p in await ordered_phases(db, phase.site_id) if p.id != phase.id]
    target = clamp_position(position, len(phases) + 1)
    phases.insert(target - 1, phase)
    await _write_order(db, phases)


async def remove_phase(db: AsyncSession, *, user, phase_id: uuid.UUID) -> None:
    ensure_admin(user, "Only admin can delete phases")
    try:
        phase = await get_phase(db, phase_id)
        site_id = phase.site_id
        await get_site(db, site_id, for_update=True)

        await purge_phases(db, [phase.id])
        db.expunge(phase)
        await renumber_phases(db, site_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Removed phase %s from site %s", phase_id, site_id)
