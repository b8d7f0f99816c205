"""Scheduled ledger jobs: the monthly rollover and the periodic fixed debit.

Both jobs run without a user request, usually from
:class:`budgetledger.scheduling.LedgerScheduler`. Each run happens inside a
single unit of work, so the balances they read form one consistent snapshot
and a crash part-way through leaves nothing half-applied. Per-template and
per-category steps run in their own savepoints: one failing step is logged
and skipped while the rest of the job still commits.

Passing a ``cycle_id`` makes a run at-most-once for that cycle: the cycle is
recorded in the same unit of work, and a later run with the same id returns
early with ``already_ran`` set.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from budgetledger.database.base import Database
from budgetledger.domain.entities import LOAN, PROTECTED_CATEGORIES, SAVINGS
from budgetledger.domain.errors import DomainError
from budgetledger.logging_setup import get_logger
from budgetledger.utils.amount_parser import AmountLike, coerce_amount

logger = get_logger(__name__)

ROLLOVER_JOB = "monthly-rollover"
FIXED_DEBIT_JOB = "fixed-debit"
DEFAULT_FIXED_DEBIT = Decimal("965")


@dataclass(frozen=True)
class RolloverResult:
    """Outcome of one monthly rollover."""

    cycle_id: Optional[str]
    already_ran: bool = False
    transferred: Decimal = Decimal("0")
    savings_amount: Optional[Decimal] = None
    reset_count: int = 0
    reseeded: tuple[str, ...] = field(default_factory=tuple)
    unmatched_templates: tuple[str, ...] = field(default_factory=tuple)
    failed_templates: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DebitResult:
    """Outcome of one periodic fixed debit."""

    cycle_id: Optional[str]
    amount: Decimal
    already_ran: bool = False
    debited: tuple[str, ...] = field(default_factory=tuple)
    skipped: tuple[str, ...] = field(default_factory=tuple)


class JobService:
    """Service running the time-triggered ledger jobs."""

    def __init__(self, db: Database, fixed_debit_amount: Decimal = DEFAULT_FIXED_DEBIT):
        """Initialize job service.

        Args:
            db: Database instance
            fixed_debit_amount: Amount the periodic debit takes from "savings"
                and from "loan"
        """
        self.db = db
        self.fixed_debit_amount = coerce_amount(fixed_debit_amount, field="fixed_debit_amount")

    def run_monthly_rollover(self, cycle_id: Optional[str] = None) -> RolloverResult:
        """Sweep leftover balances into savings, zero them, re-apply templates.

        1. Sum every non-protected category flagged is_add_to_savings.
        2. Add the sum to "savings".
        3. Reset every non-protected category to 0.
        4. Add each recurring template's amount to its matching category.

        Args:
            cycle_id: Optional cycle key (e.g. "2024-06") for at-most-once runs

        Returns:
            RolloverResult describing what moved

        Raises:
            StorageError: If the sweep itself cannot be committed
        """
        with self.db.atomic("run the monthly rollover"):
            if cycle_id is not None and self.db.job_run_exists(ROLLOVER_JOB, cycle_id):
                logger.info("[Rollover] Cycle %s already ran, skipping", cycle_id)
                return RolloverResult(cycle_id=cycle_id, already_ran=True)

            snapshot = self.db.list_categories()
            total = sum(
                (c.amount for c in snapshot if not c.is_protected and c.is_add_to_savings),
                Decimal("0"),
            )

            savings = self.db.increment_category_amount(SAVINGS, total)
            if savings is None:
                logger.warning('[Rollover] No "savings" category found; %s not transferred', total)
            else:
                logger.info('[Rollover] Transferred %s to "savings". New amount: %s', total, savings.amount)

            reset_count = self.db.reset_category_amounts(PROTECTED_CATEGORIES)
            logger.info('[Rollover] Reset %d categories other than "savings" and "loan" to 0', reset_count)

            reseeded, unmatched, failed = [], [], []
            for template in self.db.list_recurring_categories():
                try:
                    with self.db.savepoint():
                        updated = self.db.increment_category_amount(template.name, template.amount)
                except DomainError as exc:
                    logger.error("[Rollover] Could not re-apply '%s': %s", template.name, exc)
                    failed.append(template.name)
                    continue

                if updated is None:
                    logger.warning("[Rollover] No matching category for '%s'. Skipped.", template.name)
                    unmatched.append(template.name)
                else:
                    logger.info(
                        "[Rollover] '%s' increased by %s. New amount: %s",
                        template.name,
                        template.amount,
                        updated.amount,
                    )
                    reseeded.append(template.name)

            if cycle_id is not None:
                self.db.record_job_run(ROLLOVER_JOB, cycle_id)

        return RolloverResult(
            cycle_id=cycle_id,
            transferred=total,
            savings_amount=savings.amount if savings is not None else None,
            reset_count=reset_count,
            reseeded=tuple(reseeded),
            unmatched_templates=tuple(unmatched),
            failed_templates=tuple(failed),
        )

    def run_periodic_fixed_debit(
        self, amount: Optional[AmountLike] = None, cycle_id: Optional[str] = None
    ) -> DebitResult:
        """Debit a fixed amount from "savings" and, separately, from "loan".

        A half whose category is missing, or whose balance is below the
        amount, is skipped with a warning; balances never go negative.

        Args:
            amount: Amount to debit; defaults to the configured fixed amount
            cycle_id: Optional cycle key for at-most-once runs

        Returns:
            DebitResult listing debited and skipped categories
        """
        amount = self.fixed_debit_amount if amount is None else coerce_amount(amount)

        with self.db.atomic("run the fixed debit"):
            if cycle_id is not None and self.db.job_run_exists(FIXED_DEBIT_JOB, cycle_id):
                logger.info("[Fixed Debit] Cycle %s already ran, skipping", cycle_id)
                return DebitResult(cycle_id=cycle_id, amount=amount, already_ran=True)

            debited, skipped = [], []
            for name in (SAVINGS, LOAN):
                if self._debit(name, amount):
                    debited.append(name)
                else:
                    skipped.append(name)

            if cycle_id is not None:
                self.db.record_job_run(FIXED_DEBIT_JOB, cycle_id)

        return DebitResult(
            cycle_id=cycle_id, amount=amount, debited=tuple(debited), skipped=tuple(skipped)
        )

    def run_log_purge(self) -> int:
        """Delete transaction log entries past their retention window."""
        purged = self.db.purge_expired_log_entries()
        if purged:
            logger.info("[Log Purge] Removed %d expired transaction log entries", purged)
        return purged

    def _debit(self, name: str, amount: Decimal) -> bool:
        """Debit one protected category. Returns False when skipped."""
        try:
            with self.db.savepoint():
                category = self.db.get_category(name)
                if category is None:
                    logger.warning('[Fixed Debit] "%s" category not found.', name)
                    return False
                if category.amount < amount:
                    logger.warning(
                        '[Fixed Debit] "%s" has %s, less than %s. Skipped.', name, category.amount, amount
                    )
                    return False
                updated = self.db.increment_category_amount(name, -amount)
        except DomainError as exc:
            logger.error('[Fixed Debit] Could not debit "%s": %s', name, exc)
            return False

        logger.info('[Fixed Debit] Debited %s from "%s". New amount: %s', amount, name, updated.amount)
        return True
