"""
BaseService -- abstract base for kernel services.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()``.  Unless a service documents otherwise (LedgerPoster
with ``auto_commit=True``), the caller owns commit and rollback.

Read-only queries belong in ``runway_kernel/selectors/``.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session."""

    def __init__(self, session: Session):
        self.session = session
