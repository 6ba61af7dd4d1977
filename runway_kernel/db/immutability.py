"""
ORM-level append-only enforcement for the ledger.

Journal entries are the source of truth for every balance, so once written
they are never changed: corrections are new reversing entries.  Accounts
carry audit history and are archived (``is_active=False``), never deleted.

SQLAlchemy fires mapper events before UPDATE/DELETE SQL reaches the
database; the listeners below raise ImmutabilityViolationError and the
flush is aborted.

    session.flush()
         |
         v
    [before_update] --> _check_journal_entry_update() --> ImmutabilityViolationError
    [before_delete] --> _check_journal_entry_delete() ---^
    [before_delete] --> _check_account_delete() ---------^

Account balance increments are issued as Core UPDATE statements by the
LedgerPoster and do not pass through these ORM events.
"""

from sqlalchemy import event

from runway_kernel.exceptions import ImmutabilityViolationError
from runway_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_journal_entry_update(mapper, connection, target):
    """Block every UPDATE of a persisted journal entry."""
    from sqlalchemy import inspect

    insp = inspect(target)
    changed = [attr.key for attr in insp.attrs if attr.history.has_changes()]
    if not changed:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "JournalEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "fields": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="JournalEntry",
        entity_id=str(target.id),
        reason=f"Cannot modify {', '.join(changed)} on a journal entry",
    )


def _check_journal_entry_delete(mapper, connection, target):
    """Block every DELETE of a journal entry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "JournalEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="JournalEntry",
        entity_id=str(target.id),
        reason="Journal entries cannot be deleted; post a reversal instead",
    )


def _check_account_delete(mapper, connection, target):
    """Accounts are archived, never hard-deleted."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Account",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Account",
        entity_id=str(target.id),
        reason="Accounts cannot be deleted; archive the account instead",
    )


_LISTENERS = (
    ("JournalEntry", "before_update", _check_journal_entry_update),
    ("JournalEntry", "before_delete", _check_journal_entry_delete),
    ("Account", "before_delete", _check_account_delete),
)


def _targets():
    from runway_kernel.models.account import Account
    from runway_kernel.models.journal import JournalEntry

    return {"Account": Account, "JournalEntry": JournalEntry}


def register_immutability_listeners() -> None:
    """
    Register the append-only listeners (idempotent).

    Call after models are imported and before any posting.
    """
    targets = _targets()
    for name, event_name, listener in _LISTENERS:
        if not event.contains(targets[name], event_name, listener):
            event.listen(targets[name], event_name, listener)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only for tests that must corrupt data on purpose to verify
    detection.
    """
    targets = _targets()
    for name, event_name, listener in _LISTENERS:
        if event.contains(targets[name], event_name, listener):
            event.remove(targets[name], event_name, listener)
