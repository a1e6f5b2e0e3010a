from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from ..core.constants import ANNUAL_LEAVE_QUOTA, DEFAULT_LEAVE_QUOTA
from ..core.exceptions import ConsistencyError, InsufficientBalanceError, NotFoundError, ValidationError
from .model import LeaveBalance, LeaveType
from .repository import LeaveStore, LeaveTransaction

logger = logging.getLogger(__name__)


class LeaveBalanceLedger:
    """Per (user, leave type, year) day counters.

    reserve moves days into ``pending_days``; commit moves them from pending
    to ``used_days``; release gives them back. Every mutation runs inside the
    caller's transaction on a row it has locked, and every result is checked
    against the balance invariant before it is written.
    """

    def __init__(
        self,
        store: LeaveStore,
        *,
        annual_quota: int = ANNUAL_LEAVE_QUOTA,
        default_quota: int = DEFAULT_LEAVE_QUOTA,
    ):
        self._store = store
        self._annual_quota = int(annual_quota)
        self._default_quota = int(default_quota)

    def quota_for(self, leave_type: Optional[LeaveType]) -> int:
        if leave_type is not None and leave_type.is_annual:
            return self._annual_quota
        return self._default_quota

    def get_or_init_balance(
        self,
        tx: LeaveTransaction,
        *,
        user_id: int,
        leave_type: LeaveType,
        year: int,
        total_days: Optional[int] = None,
    ) -> LeaveBalance:
        balance = tx.find_balance(user_id=user_id, leave_type_id=leave_type.leave_type_id, year=year)
        if balance is not None:
            return balance

        quota = self.quota_for(leave_type) if total_days is None else int(total_days)
        balance = tx.insert_balance(
            user_id=user_id,
            leave_type_id=leave_type.leave_type_id,
            year=year,
            total_days=quota,
        )
        logger.info(
            "initialized %s balance for user %s, %s: %s days",
            leave_type.name,
            user_id,
            year,
            balance.total_days,
        )
        return balance

    def reserve(self, tx: LeaveTransaction, balance: LeaveBalance, days: int) -> LeaveBalance:
        days = self._check_days(days)
        if balance.available_days < days:
            raise InsufficientBalanceError(available=balance.available_days, requested=days)
        return self._apply(tx, balance, pending_delta=days)

    def commit(self, tx: LeaveTransaction, balance: LeaveBalance, days: int) -> LeaveBalance:
        days = self._check_days(days)
        return self._apply(tx, balance, used_delta=days, pending_delta=-days)

    def release(self, tx: LeaveTransaction, balance: LeaveBalance, days: int) -> LeaveBalance:
        days = self._check_days(days)
        return self._apply(tx, balance, pending_delta=-days)

    def list_balances(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        """Balances for every leave type, creating missing rows on first read."""

        def work(tx: LeaveTransaction) -> List[LeaveBalance]:
            return [
                self.get_or_init_balance(tx, user_id=user_id, leave_type=lt, year=year)
                for lt in tx.list_leave_types()
            ]

        return self._store.atomic(work)

    def initialize_year(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        def work(tx: LeaveTransaction) -> List[LeaveBalance]:
            if tx.list_balances(user_id=user_id, year=year):
                raise ValidationError("Leave balances already initialized for this year", year=year)

            leave_types = tx.list_leave_types()
            if not leave_types:
                raise NotFoundError("No leave types found")

            return [
                tx.insert_balance(
                    user_id=user_id,
                    leave_type_id=lt.leave_type_id,
                    year=year,
                    total_days=self.quota_for(lt),
                )
                for lt in leave_types
            ]

        balances = self._store.atomic(work)
        logger.info("initialized %d leave balances for user %s, %s", len(balances), user_id, year)
        return balances

    def adjust(
        self,
        balance_id: int,
        *,
        total_days: Optional[int] = None,
        used_days: Optional[int] = None,
        pending_days: Optional[int] = None,
    ) -> LeaveBalance:
        """Administrative overwrite of a balance's counters.

        ``pending_days`` must equal the days held by the balance's PENDING
        requests.
        """

        def work(tx: LeaveTransaction) -> LeaveBalance:
            balance = tx.find_balance_by_id(balance_id)
            if balance is None:
                raise NotFoundError("Leave balance not found", balance_id=balance_id)

            if pending_days is not None:
                reserved = tx.reserved_days(
                    user_id=balance.user_id,
                    leave_type_id=balance.leave_type_id,
                    year=balance.year,
                )
                if int(pending_days) != reserved:
                    raise ValidationError(
                        "Pending days must equal the days held by pending requests",
                        pending_days=int(pending_days),
                        reserved_days=reserved,
                    )

            updated = replace(
                balance,
                total_days=balance.total_days if total_days is None else int(total_days),
                used_days=balance.used_days if used_days is None else int(used_days),
                pending_days=balance.pending_days if pending_days is None else int(pending_days),
            )
            if not updated.is_consistent:
                raise ValidationError(
                    "Used and pending days cannot exceed total days",
                    total_days=updated.total_days,
                    used_days=updated.used_days,
                    pending_days=updated.pending_days,
                )
            tx.save_balance(updated)
            return updated

        updated = self._store.atomic(work)
        logger.info(
            "leave balance %s adjusted: total=%s used=%s pending=%s",
            balance_id,
            updated.total_days,
            updated.used_days,
            updated.pending_days,
        )
        return updated

    @staticmethod
    def _check_days(days: int) -> int:
        days = int(days)
        if days < 0:
            raise ValueError(f"day count must be non-negative, got {days}")
        return days

    @staticmethod
    def _apply(
        tx: LeaveTransaction,
        balance: LeaveBalance,
        *,
        used_delta: int = 0,
        pending_delta: int = 0,
    ) -> LeaveBalance:
        updated = replace(
            balance,
            used_days=balance.used_days + used_delta,
            pending_days=balance.pending_days + pending_delta,
        )
        if not updated.is_consistent:
            logger.critical(
                "leave balance %s would become inconsistent: total=%s used=%s pending=%s",
                balance.balance_id,
                updated.total_days,
                updated.used_days,
                updated.pending_days,
            )
            raise ConsistencyError(f"leave balance {balance.balance_id} invariant violated")
        tx.save_balance(updated)
        return updated
