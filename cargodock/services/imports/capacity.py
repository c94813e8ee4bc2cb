"""
Pallet capacity allocation for booking imports.

A capacity pool is one order detail line, addressed by
order number + delivery location code + delivery nature. A pool is either
stocked (its inventory lot holds received pallets; capacity is the lot's
unbooked counter) or unstocked (nothing received yet; capacity is the line's
remaining counter, falling back to the estimate). A pool is drawn down
through exactly one of the two counters.

Availability is checked twice: once against the preloaded snapshot, so the
whole batch is rejected before any write, and again inside the commit
transaction with the pool rows locked. Every draw is a conditional UPDATE
that refuses to go below zero.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from cargodock.core.flow_logging import flow_info
from cargodock.models.orders import InventoryLot, OrderDetail
from cargodock.services.imports.errors import CapacityExceededError
from cargodock.services.imports.types import ImportIssue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolKey:
    order_number: str
    location_code: str
    delivery_nature: str

    def __str__(self) -> str:
        return f"{self.order_number}/{self.location_code}/{self.delivery_nature}"


@dataclass(frozen=True)
class Stocked:
    lot_id: int
    unbooked: int

    mode = "stocked"

    @property
    def available(self) -> int:
        return self.unbooked


@dataclass(frozen=True)
class Unstocked:
    order_detail_id: int
    remaining: int

    mode = "unstocked"

    @property
    def available(self) -> int:
        return self.remaining


PoolState = Stocked | Unstocked


def pool_state(detail: OrderDetail, lot: InventoryLot | None) -> PoolState:
    if lot is not None and (lot.pallet_count or 0) > 0:
        unbooked = lot.unbooked_pallet_count
        return Stocked(lot_id=int(lot.id), unbooked=int(lot.pallet_count if unbooked is None else unbooked))
    remaining = detail.remaining_pallets
    if remaining is None:
        remaining = detail.estimated_pallets or 0
    return Unstocked(order_detail_id=int(detail.id), remaining=int(remaining))


@dataclass
class CapacityPool:
    key: PoolKey
    order_detail_id: int
    state: PoolState
    # Capacity seen at preload, recorded on booked lines.
    snapshot: int = 0

    @property
    def available(self) -> int:
        return self.state.available


@dataclass
class PoolRequest:
    row_number: int
    pool: CapacityPool
    quantity: int


@dataclass
class PoolDemand:
    pool: CapacityPool
    requested: int = 0
    rows: list[int] = field(default_factory=list)


@dataclass
class AllocationPlan:
    demands: dict[int, PoolDemand] = field(default_factory=dict)

    def pool_for(self, order_detail_id: int) -> CapacityPool:
        return self.demands[order_detail_id].pool


def _row_list(rows: Sequence[int]) -> str:
    return ", ".join(str(n) for n in rows)


class CapacityAllocator:
    def __init__(self, db: Session, *, field_label: str = "Pallets"):
        self.db = db
        self.field_label = field_label

    @staticmethod
    def build_pool(key: PoolKey, detail: OrderDetail, lot: InventoryLot | None) -> CapacityPool:
        state = pool_state(detail, lot)
        return CapacityPool(
            key=key,
            order_detail_id=int(detail.id),
            state=state,
            snapshot=state.available,
        )

    def _shortfall_issue(self, demand: PoolDemand, available: int) -> ImportIssue:
        return ImportIssue(
            row=demand.rows[0],
            field=self.field_label,
            message=(
                f"Pool {demand.pool.key}: {demand.requested} pallets requested "
                f"across rows {_row_list(demand.rows)} but only {available} available."
            ),
        )

    def plan(self, requests: Iterable[PoolRequest]) -> AllocationPlan:
        """
        Sums requested pallets per pool across the whole batch and rejects
        the batch if any pool is oversubscribed.
        """
        plan = AllocationPlan()
        for request in requests:
            demand = plan.demands.get(request.pool.order_detail_id)
            if demand is None:
                demand = PoolDemand(pool=request.pool)
                plan.demands[request.pool.order_detail_id] = demand
            demand.requested += request.quantity
            demand.rows.append(request.row_number)

        issues = []
        for demand in plan.demands.values():
            if demand.requested > demand.pool.available:
                issues.append(self._shortfall_issue(demand, demand.pool.available))
            else:
                flow_info(
                    logger,
                    "capacity_pool_ok pool=%s mode=%s requested=%s available=%s",
                    demand.pool.key,
                    demand.pool.state.mode,
                    demand.requested,
                    demand.pool.available,
                    category="allocation",
                )
        if issues:
            logger.info("capacity_oversubscribed pools=%s", len(issues))
            raise CapacityExceededError(issues)
        return plan

    def lock_and_recheck(self, plan: AllocationPlan) -> None:
        """
        Locks every pool in the plan (order detail rows and their inventory
        lots, in id order) and re-validates the accumulated totals against
        the locked values. Pool states are refreshed so later draws use the
        accounting mode that holds under the lock.
        """
        detail_ids = sorted(plan.demands)
        if not detail_ids:
            return
        details = (
            self.db.execute(
                select(OrderDetail)
                .where(OrderDetail.id.in_(detail_ids))
                .order_by(OrderDetail.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .all()
        )
        lots = (
            self.db.execute(
                select(InventoryLot)
                .where(InventoryLot.order_detail_id.in_(detail_ids))
                .order_by(InventoryLot.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .all()
        )
        details_by_id = {int(d.id): d for d in details}
        lots_by_detail = {int(lot.order_detail_id): lot for lot in lots}

        issues = []
        for detail_id in detail_ids:
            demand = plan.demands[detail_id]
            detail = details_by_id.get(detail_id)
            if detail is None:
                issues.append(
                    ImportIssue(
                        row=demand.rows[0],
                        field=self.field_label,
                        message=f"Pool {demand.pool.key} no longer exists.",
                    )
                )
                continue
            demand.pool.state = pool_state(detail, lots_by_detail.get(detail_id))
            if demand.requested > demand.pool.available:
                issues.append(self._shortfall_issue(demand, demand.pool.available))
        if issues:
            logger.warning("capacity_recheck_failed pools=%s", len(issues))
            raise CapacityExceededError(issues)

    def draw(self, pool: CapacityPool, quantity: int, *, row_number: int) -> None:
        """Takes `quantity` pallets from the pool through its accounting mode."""
        state = pool.state
        if isinstance(state, Stocked):
            current = func.coalesce(InventoryLot.unbooked_pallet_count, InventoryLot.pallet_count)
            stmt = (
                update(InventoryLot)
                .where(InventoryLot.id == state.lot_id)
                .where(current >= quantity)
                .values(unbooked_pallet_count=current - quantity)
            )
            next_state: PoolState = Stocked(lot_id=state.lot_id, unbooked=state.unbooked - quantity)
        else:
            current = func.coalesce(OrderDetail.remaining_pallets, OrderDetail.estimated_pallets, 0)
            stmt = (
                update(OrderDetail)
                .where(OrderDetail.id == state.order_detail_id)
                .where(current >= quantity)
                .values(remaining_pallets=current - quantity)
            )
            next_state = Unstocked(order_detail_id=state.order_detail_id, remaining=state.remaining - quantity)

        # Session copies of the row go stale until the next refresh or commit.
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise CapacityExceededError(
                [
                    ImportIssue(
                        row=row_number,
                        field=self.field_label,
                        message=(
                            f"Pool {pool.key}: could not take {quantity} pallets; "
                            "capacity changed while the import was running."
                        ),
                    )
                ]
            )
        pool.state = next_state
        flow_info(
            logger,
            "capacity_drawn pool=%s mode=%s row=%s quantity=%s",
            pool.key,
            state.mode,
            row_number,
            quantity,
            category="allocation",
        )
