"""
Custom Exception Classes for the Hotoken Reservation Engine

This module defines the exception classes raised by the sale components. Every
class deriving from ReservationError is a caller-correctable precondition: the
transactional boundary in reservation.py catches it, discards all staged state
and reports the invocation as reverted.

Exception Categories:
- Access Errors: caller lacks the owner privilege
- Configuration Errors: unknown currencies, discount above the cap
- Eligibility Errors: whitelist, self purchase, minimum purchase
- Supply Errors: purchases or distributions beyond the total supply
- Arithmetic Errors: 256-bit unsigned overflow
- Settlement Errors: the value move to the owner did not happen

ConfigurationError is raised while loading settings and never reaches the
transactional boundary.
"""


class ReservationError(Exception):
    """Base class for every error that reverts an invocation."""


class UnauthorizedError(ReservationError):
    """Raised when a caller other than the owner invokes an owner-only operation."""


class UnknownCurrencyError(ReservationError):
    """Raised when a USD rate is looked up for a symbol that was never set."""


class InvalidDiscountError(ReservationError):
    """Raised when a discount index maps to a percentage above the cap."""


class InvalidBeneficiaryError(ReservationError):
    """Raised when the target address is the zero address or the owner."""


class NotWhitelistedError(ReservationError):
    """Raised when a purchase comes from an address outside the whitelist."""


class SelfPurchaseError(ReservationError):
    """Raised when the owner tries to purchase tokens."""


class BelowMinimumError(ReservationError):
    """Raised when a first contribution is below the minimum purchase."""


class SupplyExceededError(ReservationError):
    """Raised when issuing tokens would push the issued amount above the total supply."""


class DistributionWindowClosedError(ReservationError):
    """Raised when an administrative distribution is attempted while the window is closed."""


class ArithmeticOverflowError(ReservationError):
    """Raised when a token computation leaves the 256-bit unsigned range."""


class ValidationError(ReservationError):
    """Raised when an argument is malformed (address, amount, rate)."""


class SettlementError(ReservationError):
    """Raised when the received value cannot be forwarded to the owner."""


class ConfigurationError(Exception):
    """Raised when there are configuration-related errors."""
