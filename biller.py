# Biller: period spend rollups for demand customers.
#
# For every billing account: list its orders, list each order's leases
# overlapping the period, price each lease's active window, and fold the
# spend into order -> project -> billing account totals. Order and project
# rollups are upserted after each order; the account rollup after all of
# the account's orders.
#
# One synchronous pass, no internal retries. Any failure aborts the run;
# rollups persisted before the failure stay in place.

import logging
import os
import threading
import time
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from decimals import SPEND_CONTEXT, DecimalContext
from errors import (
    CancellationError,
    ConversionError,
    PersistenceError,
    QueryError,
    SpendArithmeticError,
)
from rollup import DemandSpend
from spend import clamp_lease_window, lease_spend
from store import DRIVER_ERRORS

log = logging.getLogger("biller")

# Reference timezone for the default monthly period
BILLING_TIMEZONE = os.environ.get("BILLER_TIMEZONE", "UTC")


# ── Run Context ───────────────────────────────────────────────────────


class RunContext:
    """Cancellation flag plus optional deadline for one spend run.

    Checked before every listing and persistence call; once cancelled or
    past its deadline, the next check raises CancellationError.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout else None

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self):
        if self.cancelled:
            raise CancellationError("context canceled")
        if self.expired:
            raise CancellationError("context deadline exceeded")


# ── Periods ───────────────────────────────────────────────────────────


def current_month_period(now: Optional[datetime] = None, tz=None):
    """[first instant of this month, first instant of next month) in ``tz``."""
    tz = tz or ZoneInfo(BILLING_TIMEZONE)
    now = now.astimezone(tz) if now is not None else datetime.now(tz)
    start = datetime(now.year, now.month, 1, tzinfo=tz)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=tz)
    return start, end


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


# ── Biller ────────────────────────────────────────────────────────────


class Biller:
    """Computes and persists period spend for every billing account.

    ``store`` is the persistence gateway: anything with the
    list_*/create_*_spend methods of store.SpendStore. Database errors it
    raises (store.DRIVER_ERRORS) are wrapped with the failing stage; any
    other exception propagates as is.
    """

    def __init__(self, store, ctx: DecimalContext = SPEND_CONTEXT):
        self.store = store
        self.ctx = ctx

    def run(self, run_ctx: RunContext, period_start: Optional[datetime] = None,
            period_end: Optional[datetime] = None) -> list:
        """Compute and persist spend for [period_start, period_end).

        Defaults to the current calendar month. Returns the DemandSpend
        tree of every billing account. Raises a BillerError subclass on the
        first failure.
        """
        if period_start is None and period_end is None:
            period_start, period_end = current_month_period()
        elif period_start is None or period_end is None:
            raise ValueError("period_start and period_end must be given together")
        period_start, period_end = _aware(period_start), _aware(period_end)
        if period_start >= period_end:
            raise ValueError(
                f"empty billing period [{period_start.isoformat()}, {period_end.isoformat()})"
            )

        started = time.time()
        run_ctx.check()
        try:
            accounts = self.store.list_all_billing_accounts(run_ctx)
        except DRIVER_ERRORS as e:
            raise QueryError("listing billing accounts", cause=e) from e

        log.info("SPEND RUN period=[%s, %s) accounts=%d",
                 period_start.isoformat(), period_end.isoformat(), len(accounts))

        results = self.calculate_demand_spend(run_ctx, accounts, period_start, period_end)

        log.info("SPEND RUN complete accounts=%d in %.2fs",
                 len(results), time.time() - started)
        return results

    def calculate_demand_spend(self, run_ctx: RunContext, accounts, period_start: datetime,
                               period_end: datetime) -> list:
        results = []
        for account in accounts:
            results.append(
                self._account_spend(run_ctx, account, period_start, period_end)
            )
        return results

    def _account_spend(self, run_ctx, account, period_start, period_end) -> DemandSpend:
        spend = DemandSpend(billing_account_id=account.id, ctx=self.ctx)

        orders = self._query(
            run_ctx, "listing orders", account.id,
            self.store.list_orders_by_billing_account_id, account.id,
        )

        for order in orders:
            spend.project(order.project_id)
            order_spend = spend.open_order(order.project_id, order.id)

            leases = self._query(
                run_ctx, "listing leases", order.id,
                self.store.list_leases_for_time_range_by_order_id,
                order.id, period_start, period_end,
            )

            for lease in leases:
                amount = self._lease_spend(lease, period_start, period_end)
                spend.add(order.project_id, order.id, amount)

            project_spend = spend.projects[order.project_id]
            self._persist(
                run_ctx, "create order spend failed", order.id,
                self.store.create_order_spend,
                order.id, order_spend.spend, period_start, period_end,
            )
            self._persist(
                run_ctx, "create project spend failed", order.project_id,
                self.store.create_project_spend,
                order.project_id, project_spend.spend, period_start, period_end,
            )
            log.debug("ORDER SPEND order=%s project=%s leases=%d spend=%s project_spend=%s",
                      order.id, order.project_id, len(leases),
                      order_spend.spend, project_spend.spend)

        self._persist(
            run_ctx, "create billing account spend failed", account.id,
            self.store.create_billing_account_spend,
            account.id, spend.spend, period_start, period_end,
        )
        log.info("ACCOUNT SPEND account=%s projects=%d orders=%d spend=%s",
                 account.id, len(spend.projects), len(orders), spend.spend)
        return spend

    def _lease_spend(self, lease, period_start, period_end):
        window = clamp_lease_window(lease.create_time, lease.end_time, period_start, period_end)
        if window.is_empty:
            log.warning("LEASE WINDOW empty lease=%s order=%s create=%s end=%s, zero spend",
                        lease.id, lease.order_id, lease.create_time, lease.end_time)
        try:
            return lease_spend(window, lease.price_hr, self.ctx)
        except ConversionError as e:
            raise ConversionError(f"converting spend inputs for lease {lease.id}: {e}") from e
        except SpendArithmeticError as e:
            raise SpendArithmeticError(f"calculating spend for lease {lease.id}: {e}") from e

    @staticmethod
    def _query(run_ctx, stage, entity_id, fn, *args):
        run_ctx.check()
        try:
            return fn(run_ctx, *args)
        except DRIVER_ERRORS as e:
            raise QueryError(stage, entity_id, e) from e

    @staticmethod
    def _persist(run_ctx, stage, entity_id, fn, *args):
        run_ctx.check()
        try:
            return fn(run_ctx, *args)
        except DRIVER_ERRORS as e:
            raise PersistenceError(stage, entity_id, e) from e
