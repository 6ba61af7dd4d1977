"""
Module: runway_kernel.services.ledger_poster
Responsibility: Turn a business transaction into a balanced set of journal
    entries and apply it to the ledger -- entries and cached account
    balances together, as one unit of work.
Architecture position: Kernel > Services.  The only write path into
    ``journal_entries`` and ``accounts.balance``.

Invariants enforced:
    - Sum(debit) == Sum(credit) for every transaction_id.  Checked on the
      constructed lines before anything touches the session; an
      unbalanced set raises UnbalancedPostingError and is never written.
    - Atomicity: journal rows and balance increments are flushed in the
      same database transaction.  With auto_commit=True the poster
      commits on success and rolls back on any failure.
    - No lost updates: the affected account rows are locked
      (SELECT ... FOR UPDATE, ordered by id) and balances are changed with
      ``balance = balance + :delta`` rather than read-modify-write in
      Python.  On SQLite, BEGIN IMMEDIATE serializes writers instead.
    - Append-only: corrections are reversing entries (reversal_of_id);
      originals are never touched.
    - One posting per (company_id, transaction_id).  A repost with the
      same lines replays the first result (already_posted=True) and
      changes no balance; a repost with different lines raises
      DuplicatePostingError.  The postings header row holds the unique
      key, so racing duplicates are settled by the database.

Failure modes:
    - ValidationError: zero amount, negative/oversized tax, archived target,
      malformed lines, transaction already reversed.
    - CompanyNotFoundError / AccountNotFoundError: missing chart or code.
    - UnbalancedPostingError: constructed lines do not balance.
    - DuplicatePostingError: transaction_id already posted with other lines.
    - OperationalError: retried up to max_retries when the poster owns the
      transaction, then re-raised.

Degraded postings:
    An unmapped category posts to the map's fallback account and returns a
    DegradedPostingWarning in PostingResult.warnings.  The posting itself
    succeeds.
"""

import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from runway_engines.tax import TaxEngine
from runway_kernel.db.types import AmountLike, from_minor, is_within_tolerance, to_minor
from runway_kernel.domain.category_map import CategoryMap
from runway_kernel.exceptions import (
    AccountNotFoundError,
    CompanyNotFoundError,
    DegradedPostingWarning,
    DuplicatePostingError,
    TransactionNotFoundError,
    UnbalancedPostingError,
    ValidationError,
)
from runway_kernel.logging_config import LogContext, elapsed_ms, get_logger
from runway_kernel.models.account import Account
from runway_kernel.models.journal import JournalEntry, Posting
from runway_kernel.services.base import BaseService

logger = get_logger("services.ledger_poster")

RETRY_BACKOFF_SECONDS = 0.05


@dataclass(frozen=True)
class LineSpec:
    """
    One requested journal line, amounts in minor units.

    Exactly one of debit/credit is positive.
    """

    account_code: str
    debit: int = 0
    credit: int = 0
    reversal_of_id: UUID | None = None

    @classmethod
    def dr(cls, account_code: str, amount: int) -> "LineSpec":
        return cls(account_code=account_code, debit=amount)

    @classmethod
    def cr(cls, account_code: str, amount: int) -> "LineSpec":
        return cls(account_code=account_code, credit=amount)


@dataclass(frozen=True)
class PostingResult:
    """
    Entries for one transaction, plus any non-fatal warnings.

    already_posted is True when the transaction_id was posted before and
    entries are the ones written then.
    """

    transaction_id: str
    entries: tuple[JournalEntry, ...]
    warnings: tuple[DegradedPostingWarning, ...] = field(default=())
    already_posted: bool = False

    @property
    def is_degraded(self) -> bool:
        return bool(self.warnings)

    @property
    def total_debits(self) -> Decimal:
        return from_minor(sum(e.debit for e in self.entries))

    @property
    def total_credits(self) -> Decimal:
        return from_minor(sum(e.credit for e in self.entries))


class LedgerPoster(BaseService):
    """
    Posts balanced journal entry sets and keeps cached balances in step.

    Contract:
        With ``auto_commit=True`` (default) each posting method is its own
        database transaction: commit on success, rollback on failure.
        With ``auto_commit=False`` the poster only flushes and the caller
        owns the transaction (and any retry).
    """

    def __init__(
        self,
        session: Session,
        category_map: CategoryMap | None = None,
        tax_engine: TaxEngine | None = None,
        auto_commit: bool = True,
        max_retries: int = 3,
    ):
        super().__init__(session)
        if category_map is None:
            from runway_config import get_active_category_map

            category_map = get_active_category_map()
        self._category_map = category_map
        self._tax_engine = tax_engine or TaxEngine()
        self._auto_commit = auto_commit
        self._max_retries = max_retries

    @property
    def category_map(self) -> CategoryMap:
        return self._category_map

    # ------------------------------------------------------------------
    # Business postings
    # ------------------------------------------------------------------

    def post_transaction(
        self,
        company_id: str,
        transaction_id: str,
        amount: AmountLike,
        category: str | None,
        description: str | None,
        entry_date: date,
        tax_amount: AmountLike | None = None,
        is_inter_state: bool = False,
    ) -> PostingResult:
        """
        Post a bank/cash transaction.

        Negative amounts are outflows (Dr category / Cr clearing), positive
        amounts inflows (Dr clearing / Cr category).  When tax_amount is
        given, amount is gross and the tax goes to GST input credit
        (outflow) or GST payable (inflow).
        """
        amount_minor = to_minor(amount)
        if amount_minor == 0:
            raise ValidationError("amount", "must not be zero")

        gross = abs(amount_minor)
        tax = self._tax_minor(tax_amount, gross)
        is_outflow = amount_minor < 0
        cmap = self._category_map

        warnings: list[DegradedPostingWarning] = []
        target = cmap.resolve(category)
        if target is None:
            target = cmap.fallback_for(is_outflow)
            warning = DegradedPostingWarning(
                company_id=company_id,
                transaction_id=transaction_id,
                category=category or "",
                fallback_account_code=target,
            )
            warnings.append(warning)
            logger.warning(
                "degraded_posting",
                extra={**warning.to_dict(), "category_map_version": cmap.version},
            )

        net = gross - tax
        if is_outflow:
            lines = [LineSpec.dr(target, net), LineSpec.dr(cmap.gst_input, tax)]
            lines.append(LineSpec.cr(cmap.clearing_account, gross))
        else:
            lines = [LineSpec.dr(cmap.clearing_account, gross), LineSpec.cr(target, net)]
            lines.extend(self._output_tax_lines(tax, is_inter_state))

        return self._post(
            company_id,
            transaction_id,
            lines,
            description,
            entry_date,
            warnings=tuple(warnings),
        )

    def post_revenue(
        self,
        company_id: str,
        revenue_id: str,
        amount: AmountLike,
        description: str | None,
        entry_date: date,
        gst_amount: AmountLike | None = None,
        is_inter_state: bool = False,
    ) -> PostingResult:
        """
        Invoice revenue: Dr Accounts Receivable (gross) / Cr revenue (net)
        / Cr GST payable.
        """
        gross = to_minor(amount)
        if gross <= 0:
            raise ValidationError("amount", "must be positive")
        tax = self._tax_minor(gst_amount, gross)
        cmap = self._category_map

        lines = [
            LineSpec.dr(cmap.receivable_account, gross),
            LineSpec.cr(cmap.revenue_account, gross - tax),
            *self._output_tax_lines(tax, is_inter_state),
        ]
        return self._post(company_id, revenue_id, lines, description, entry_date)

    def post_payment_received(
        self,
        company_id: str,
        revenue_id: str,
        amount: AmountLike,
        description: str | None,
        entry_date: date,
        payment_id: str | None = None,
    ) -> PostingResult:
        """
        Customer payment: Dr clearing bank / Cr Accounts Receivable.

        Posted under payment_id, or ``<revenue_id>:payment`` when omitted.
        Partial payments of one invoice need distinct payment_ids.
        """
        received = to_minor(amount)
        if received <= 0:
            raise ValidationError("amount", "must be positive")
        cmap = self._category_map
        lines = [
            LineSpec.dr(cmap.clearing_account, received),
            LineSpec.cr(cmap.receivable_account, received),
        ]
        return self._post(
            company_id,
            payment_id or f"{revenue_id}:payment",
            lines,
            description,
            entry_date,
        )

    def post_lines(
        self,
        company_id: str,
        transaction_id: str,
        lines: list[LineSpec],
        description: str | None,
        entry_date: date,
    ) -> PostingResult:
        """Post an explicit set of lines (manual journal)."""
        return self._post(company_id, transaction_id, lines, description, entry_date)

    def reverse_transaction(
        self,
        company_id: str,
        transaction_id: str,
        reversal_transaction_id: str | None = None,
        entry_date: date | None = None,
        description: str | None = None,
    ) -> PostingResult:
        """
        Append mirror-image entries for every line of a transaction.

        Raises:
            TransactionNotFoundError: Nothing posted under transaction_id.
            ValidationError: The transaction was already reversed.
        """
        originals = list(
            self.session.scalars(
                select(JournalEntry)
                .where(
                    JournalEntry.company_id == company_id,
                    JournalEntry.transaction_id == transaction_id,
                )
                .order_by(JournalEntry.created_at, JournalEntry.id)
                .with_for_update()
            )
        )
        if not originals:
            self._abort()
            raise TransactionNotFoundError(company_id, transaction_id)

        # Checked under the row locks above so concurrent reversals serialize
        already = self.session.scalar(
            select(JournalEntry.id).where(
                JournalEntry.reversal_of_id.in_([e.id for e in originals])
            ).limit(1)
        )
        if already is not None:
            self._abort()
            raise ValidationError(
                "transaction_id", f"{transaction_id} has already been reversed"
            )

        codes = {
            a.id: a.code
            for a in self.session.scalars(
                select(Account).where(
                    Account.id.in_(list({e.account_id for e in originals}))
                )
            )
        }
        lines = [
            LineSpec(
                account_code=codes[e.account_id],
                debit=e.credit,
                credit=e.debit,
                reversal_of_id=e.id,
            )
            for e in originals
        ]
        return self._post(
            company_id,
            reversal_transaction_id or f"{transaction_id}:reversal",
            lines,
            description or f"Reversal of {transaction_id}",
            entry_date or originals[0].entry_date,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _abort(self) -> None:
        """Release locks taken before a rejection when the poster owns the transaction."""
        if self._auto_commit:
            self.session.rollback()

    def _tax_minor(self, tax_amount: AmountLike | None, gross: int) -> int:
        if tax_amount is None:
            return 0
        tax = to_minor(tax_amount)
        if tax < 0:
            raise ValidationError("tax_amount", "must not be negative")
        if tax > gross:
            raise ValidationError("tax_amount", "must not exceed the amount")
        return tax

    def _output_tax_lines(self, tax: int, is_inter_state: bool) -> list[LineSpec]:
        cmap = self._category_map
        split = self._tax_engine.split(tax, is_inter_state)
        return [
            LineSpec.cr(cmap.gst_output_cgst, split.cgst),
            LineSpec.cr(cmap.gst_output_sgst, split.sgst),
            LineSpec.cr(cmap.gst_output_igst, split.igst),
        ]

    def _validate_lines(
        self, transaction_id: str, lines: list[LineSpec]
    ) -> list[LineSpec]:
        """Drop zero lines, reject malformed ones, then check the balance."""
        for line in lines:
            if line.debit < 0 or line.credit < 0:
                raise ValidationError("lines", "amounts must not be negative")
            if line.debit and line.credit:
                raise ValidationError(
                    "lines", f"line for {line.account_code} has both debit and credit"
                )

        kept = [line for line in lines if line.debit or line.credit]
        if len(kept) < 2:
            raise ValidationError(
                "lines", "a posting needs at least one debit and one credit"
            )

        debits = sum(line.debit for line in kept)
        credits = sum(line.credit for line in kept)
        if not is_within_tolerance(debits - credits):
            logger.error(
                "unbalanced_posting_rejected",
                extra={
                    "transaction_id": transaction_id,
                    "debits": debits,
                    "credits": credits,
                },
            )
            raise UnbalancedPostingError(
                transaction_id,
                str(from_minor(debits)),
                str(from_minor(credits)),
            )
        return kept

    def _post(
        self,
        company_id: str,
        transaction_id: str,
        lines: list[LineSpec],
        description: str | None,
        entry_date: date,
        warnings: tuple[DegradedPostingWarning, ...] = (),
    ) -> PostingResult:
        lines = self._validate_lines(transaction_id, lines)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            company_id=company_id,
            transaction_id=transaction_id,
        ):
            t0 = time.monotonic()
            logger.info(
                "posting_started",
                extra={
                    "line_count": len(lines),
                    "entry_date": entry_date,
                    "category_map_version": self._category_map.version,
                },
            )

            if not self._auto_commit:
                entries, replayed = self._write(
                    company_id, transaction_id, lines, description, entry_date
                )
                return self._completed(transaction_id, entries, warnings, t0, replayed)

            attempt = 0
            while True:
                attempt += 1
                try:
                    entries, replayed = self._write(
                        company_id, transaction_id, lines, description, entry_date
                    )
                    self.session.commit()
                    return self._completed(
                        transaction_id, entries, warnings, t0, replayed
                    )
                except OperationalError:
                    self.session.rollback()
                    if attempt > self._max_retries:
                        logger.error(
                            "posting_failed",
                            extra={"attempts": attempt},
                            exc_info=True,
                        )
                        raise
                    logger.warning("posting_retry", extra={"attempt": attempt})
                    time.sleep(RETRY_BACKOFF_SECONDS * attempt)
                except Exception:
                    self.session.rollback()
                    logger.error(
                        "posting_failed",
                        extra={"duration_ms": elapsed_ms(t0)},
                        exc_info=True,
                    )
                    raise

    def _completed(
        self,
        transaction_id: str,
        entries: list[JournalEntry],
        warnings: tuple[DegradedPostingWarning, ...],
        t0: float,
        replayed: bool = False,
    ) -> PostingResult:
        logger.info(
            "posting_replayed" if replayed else "posting_completed",
            extra={
                "entry_count": len(entries),
                "total_debits": from_minor(sum(e.debit for e in entries)),
                "degraded": bool(warnings),
                "duration_ms": elapsed_ms(t0),
            },
        )
        return PostingResult(
            transaction_id=transaction_id,
            entries=tuple(entries),
            warnings=warnings,
            already_posted=replayed,
        )

    def _lock_accounts(self, company_id: str, codes: set[str]) -> dict[str, Account]:
        """Load and row-lock the target accounts in a fixed (id) order."""
        accounts = self.session.scalars(
            select(Account)
            .where(Account.company_id == company_id, Account.code.in_(codes))
            .order_by(Account.id)
            .with_for_update()
        ).all()
        by_code = {a.code: a for a in accounts}

        missing = codes - by_code.keys()
        if missing:
            has_chart = self.session.scalar(
                select(Account.id).where(Account.company_id == company_id).limit(1)
            )
            if has_chart is None:
                raise CompanyNotFoundError(company_id)
            raise AccountNotFoundError(company_id, sorted(missing)[0])

        for account in by_code.values():
            if not account.is_active:
                raise ValidationError(
                    "account_code", f"account {account.code} is archived"
                )
        return by_code

    def _posted_entries(
        self, company_id: str, transaction_id: str
    ) -> list[JournalEntry] | None:
        """Entries of an earlier posting under transaction_id, or None."""
        claimed = self.session.scalar(
            select(Posting.id).where(
                Posting.company_id == company_id,
                Posting.transaction_id == transaction_id,
            )
        )
        if claimed is None:
            return None
        return list(
            self.session.scalars(
                select(JournalEntry)
                .where(
                    JournalEntry.company_id == company_id,
                    JournalEntry.transaction_id == transaction_id,
                )
                .order_by(JournalEntry.created_at, JournalEntry.id)
            )
        )

    def _replay(
        self,
        company_id: str,
        transaction_id: str,
        lines: list[LineSpec],
        accounts: dict[str, Account],
        existing: list[JournalEntry],
    ) -> list[JournalEntry]:
        """Accept a repost only when it carries the lines already written."""
        codes = {a.id: a.code for a in accounts.values()}
        written = Counter((codes.get(e.account_id), e.debit, e.credit) for e in existing)
        requested = Counter((line.account_code, line.debit, line.credit) for line in lines)
        if written != requested:
            logger.error(
                "duplicate_posting_rejected",
                extra={
                    "existing_line_count": len(existing),
                    "requested_line_count": len(lines),
                },
            )
            raise DuplicatePostingError(company_id, transaction_id)
        return existing

    def _write(
        self,
        company_id: str,
        transaction_id: str,
        lines: list[LineSpec],
        description: str | None,
        entry_date: date,
    ) -> tuple[list[JournalEntry], bool]:
        """Apply the lines; returns the entries and whether they were already posted."""
        accounts = self._lock_accounts(
            company_id, {line.account_code for line in lines}
        )

        existing = self._posted_entries(company_id, transaction_id)
        if existing is not None:
            return self._replay(company_id, transaction_id, lines, accounts, existing), True

        header = Posting(
            company_id=company_id,
            transaction_id=transaction_id,
            entry_date=entry_date,
            line_count=len(lines),
        )
        try:
            with self.session.begin_nested():
                self.session.add(header)
        except IntegrityError:
            # Another writer claimed the id and committed while we waited
            existing = self._posted_entries(company_id, transaction_id) or []
            return self._replay(company_id, transaction_id, lines, accounts, existing), True

        entries = [
            JournalEntry(
                company_id=company_id,
                account_id=accounts[line.account_code].id,
                transaction_id=transaction_id,
                entry_date=entry_date,
                debit=line.debit,
                credit=line.credit,
                description=description,
                reversal_of_id=line.reversal_of_id,
            )
            for line in lines
        ]
        self.session.add_all(entries)

        deltas: dict[str, int] = defaultdict(int)
        for line in lines:
            account = accounts[line.account_code]
            deltas[account.code] += account.balance_change(line.debit, line.credit)

        for code in sorted(deltas):
            if not deltas[code]:
                continue
            account = accounts[code]
            self.session.execute(
                update(Account)
                .where(Account.id == account.id)
                .values(balance=Account.balance + deltas[code])
                .execution_options(synchronize_session=False)
            )
            self.session.expire(account, ["balance"])

        self.session.flush()
        return entries, False
