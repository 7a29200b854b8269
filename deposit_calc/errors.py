"""Exceptions raised when a calculation request is rejected.

All of them derive from ``ValueError`` so callers that already guard
against bad input with ``except ValueError`` keep working.
"""


class DepositCalcError(ValueError):
    """Base class for invalid calculation input."""


class InvalidRangeError(DepositCalcError):
    """The end date is missing, unparsable or not after the start date."""


class InvalidTierError(DepositCalcError):
    """The tier set is empty, malformed or has overlapping bands."""


class InvalidAmountError(DepositCalcError):
    """The principal is missing, unparsable or not positive."""
