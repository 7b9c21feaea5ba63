"""Credits domain exceptions."""

from aify.core.exceptions import InvalidStateError, PaymentRequiredException


class InsufficientBalanceError(PaymentRequiredException):
    """Raised when a debit exceeds the current balance.

    An expected outcome, not a defect: the user can upgrade or wait for the
    next free-tier rollover. Nothing was mutated.
    """

    def __init__(self, balance: int, required: int):
        """Initialize with the balance seen under lock and the amount requested."""
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient credits: {required} required, {balance} available. "
            "Please upgrade your plan to continue generating designs."
        )


class InvalidAmountError(InvalidStateError):
    """Raised when a ledger mutation is requested with a non-positive amount."""

    def __init__(self, amount: int):
        """Initialize with the rejected amount."""
        self.amount = amount
        super().__init__(f"Amount must be a positive integer, got {amount}")
