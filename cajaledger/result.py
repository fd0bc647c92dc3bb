"""Result pattern for consistent return types in CajaLedger.

The ledger facade never hands UI text or exceptions to the presentation
layer; every operation returns a Result carrying either the value or an
error message with its category.
"""
from dataclasses import dataclass
from typing import Any, Optional, TypeVar, Generic

T = TypeVar('T')


@dataclass
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success. Storage failures may still carry
            a value (e.g. the empty ledger a corrupt store degrades to).
        error: Error message on failure, None on success.
        error_type: Category of error, one of the ErrorType constants.
        details: Structured details copied from the raised exception.

    Usage:
        result = engine.add_deposit(member_id, 10, penalty=5)
        if result.success:
            deposit = result.value
        elif result.error_type == ErrorType.DUPLICATE_DEPOSIT:
            ...
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    details: Optional[dict] = None

    @classmethod
    def ok(cls, value: T = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, error_type: str = None, value: Any = None,
             details: dict = None) -> 'Result[T]':
        """Create a failure result.

        Args:
            error: Error message describing what went wrong.
            error_type: Optional error category for programmatic handling.
            value: Optional value that is still meaningful after the failure.
            details: Optional structured error details.

        Returns:
            A Result with success=False and error details.
        """
        return cls(success=False, value=value, error=error, error_type=error_type,
                   details=details or {})

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """Get the value, raising an exception if the operation failed.

        Raises:
            ValueError: If the operation failed.
        """
        if not self.success:
            raise ValueError(f"Result unwrap failed: {self.error}")
        return self.value


class ErrorType:
    """Standard error type constants."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    DUPLICATE_DEPOSIT = "DUPLICATE_DEPOSIT"
    OVERPAYMENT = "OVERPAYMENT"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    REFERENTIAL_INTEGRITY = "REFERENTIAL_INTEGRITY"
    MALFORMED_IMPORT = "MALFORMED_IMPORT"
    STORAGE = "STORAGE"
    EXPORT = "EXPORT"
