"""Exceptions raised by the seating optimizer."""


class SeatingInputError(ValueError):
    """Raised when guests, tables or preferences are inconsistent."""


class InfeasibleSeatingError(ValueError):
    """Raised when no seating can satisfy capacity or hard constraints."""
