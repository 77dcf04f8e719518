"""
Exception taxonomy for memora.

Data errors are recoverable by the caller (e.g. fall back to an empty deck);
contract violations are defects in the calling code.
"""


class MemoraError(Exception):
    """Base class for every error raised by memora."""


class DeckFormatError(MemoraError):
    """Persisted or exported data is malformed (missing field, bad number, unknown code)."""


class DateOverflowError(MemoraError, OverflowError):
    """Day arithmetic left the representable range."""


class UnsupportedCardType(MemoraError, ValueError):
    """A card requested a derivation mode that does not exist."""


class ContractViolation(MemoraError, RuntimeError):
    """The caller broke a precondition of the operation."""


class SessionError(ContractViolation):
    """A session operation was requested while no card is under review."""


class NotEditableError(ContractViolation):
    """An edit was requested on a card that cannot be edited directly."""
