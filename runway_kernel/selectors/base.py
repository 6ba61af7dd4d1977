"""
Module: runway_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, flush, commit or delete.
    - Selectors return frozen dataclasses, not ORM instances.
    - The caller owns the session and its isolation level; use
      ``read_scope(consistent=True)`` for a stable snapshot.
"""

from abc import ABC

from sqlalchemy.orm import Session

from runway_kernel.domain.clock import Clock, SystemClock


class BaseSelector(ABC):
    """Holds the caller's session and a clock for default dates."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
