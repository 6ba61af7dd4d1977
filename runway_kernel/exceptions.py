"""
Typed exception hierarchy for the runway kernel.

Every error carries a machine-readable ``code`` class attribute and keeps its
context as structured attributes, so callers catch by type and read fields
instead of parsing messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RunwayKernelError (base)
    |
    +-- ValidationError
    +-- DuplicateAccountCodeError
    +-- UnbalancedPostingError
    +-- DuplicatePostingError
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- CompanyNotFoundError
    |   +-- TransactionNotFoundError
    +-- ImmutabilityViolationError
    +-- CategoryMapError

    DegradedPostingWarning (UserWarning -- returned, never raised)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                        | When Raised
----------------------------|-----------------------------------------------
VALIDATION_ERROR            | Negative/zero amount, unsupported GST rate,
                            | archived posting target, blank code/name
DUPLICATE_ACCOUNT_CODE      | Account code already used by the company
UNBALANCED_POSTING          | Debits != credits (caught before any write)
DUPLICATE_POSTING           | transaction_id reposted with different lines
ACCOUNT_NOT_FOUND           | Unknown account code for the company
COMPANY_NOT_FOUND           | Company has no chart of accounts
TRANSACTION_NOT_FOUND       | No journal entries for a transaction id
IMMUTABILITY_VIOLATION      | UPDATE/DELETE of a journal entry, account delete
CATEGORY_MAP_INVALID        | Category map fails startup validation
DEGRADED_POSTING            | Category fell back to a default account

===============================================================================
HANDLING PATTERNS
===============================================================================

    result = poster.post_transaction(...)
    for warning in result.warnings:          # non-fatal
        log.warning(warning.code, extra=warning.to_dict())

    try:
        poster.post_transaction(...)
    except UnbalancedPostingError as e:      # fatal to this posting attempt
        flag_for_review(e.transaction_id, e.debits, e.credits)
"""


class RunwayKernelError(Exception):
    """
    Base exception for all runway kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "RUNWAY_KERNEL_ERROR"


class ValidationError(RunwayKernelError):
    """Input rejected before any work was done."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class DuplicateAccountCodeError(RunwayKernelError):
    """Account code is already used within the company."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, company_id: str, account_code: str):
        self.company_id = company_id
        self.account_code = account_code
        super().__init__(
            f"Account code {account_code} already exists for company {company_id}"
        )


class UnbalancedPostingError(RunwayKernelError):
    """
    Constructed journal lines do not balance.

    Raised before persistence; an unbalanced set is never written.
    Amounts are decimal strings in major units.
    """

    code: str = "UNBALANCED_POSTING"

    def __init__(self, transaction_id: str, debits: str, credits: str):
        self.transaction_id = transaction_id
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Unbalanced posting for transaction {transaction_id}: "
            f"debits={debits}, credits={credits}"
        )


class DuplicatePostingError(RunwayKernelError):
    """
    A transaction_id is already posted with different lines.

    Reposting identical lines is an idempotent success, not an error.
    """

    code: str = "DUPLICATE_POSTING"

    def __init__(self, company_id: str, transaction_id: str):
        self.company_id = company_id
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} is already posted for company "
            f"{company_id} with different lines"
        )


class NotFoundError(RunwayKernelError):
    """Base for lookups that found nothing."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """No account with the given code exists for the company."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, company_id: str, account_code: str):
        self.company_id = company_id
        self.account_code = account_code
        super().__init__(
            f"Account code {account_code} not found for company {company_id}"
        )


class CompanyNotFoundError(NotFoundError):
    """The company has no chart of accounts."""

    code: str = "COMPANY_NOT_FOUND"

    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"No chart of accounts for company {company_id}")


class TransactionNotFoundError(NotFoundError):
    """No journal entries are recorded for the transaction."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, company_id: str, transaction_id: str):
        self.company_id = company_id
        self.transaction_id = transaction_id
        super().__init__(
            f"No journal entries for transaction {transaction_id} "
            f"in company {company_id}"
        )


class ImmutabilityViolationError(RunwayKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class CategoryMapError(RunwayKernelError):
    """The category-to-account table failed validation."""

    code: str = "CATEGORY_MAP_INVALID"

    def __init__(self, version: str, problems: list[str]):
        self.version = version
        self.problems = problems
        super().__init__(
            f"Category map {version} is invalid: " + "; ".join(problems)
        )


class DegradedPostingWarning(UserWarning):
    """
    A category had no mapping and the posting used a fallback account.

    Non-fatal: the posting proceeds and the warning is returned to the
    caller in ``PostingResult.warnings`` and logged.
    """

    code: str = "DEGRADED_POSTING"

    def __init__(
        self,
        company_id: str,
        transaction_id: str,
        category: str,
        fallback_account_code: str,
    ):
        self.company_id = company_id
        self.transaction_id = transaction_id
        self.category = category
        self.fallback_account_code = fallback_account_code
        super().__init__(
            f"No account mapping for category {category!r}; "
            f"transaction {transaction_id} posted to {fallback_account_code}"
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "company_id": self.company_id,
            "transaction_id": self.transaction_id,
            "category": self.category,
            "fallback_account_code": self.fallback_account_code,
        }
