"""
Error taxonomy for the net-buy engine.

Chunk- and wallet-level failures are recorded as results, never raised
through a round. Only ConfigurationError (and an explicit stop) ends the
pump loop.
"""


class NetBuyError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(NetBuyError):
    """Missing or invalid session fields. Fatal to the requested operation."""


class PoolNotFound(NetBuyError):
    """No liquidity pool references the token."""

    def __init__(self, token: str):
        super().__init__(f"No liquidity pool found for {token}")
        self.token = token


class RelayError(NetBuyError):
    """Both the private relay and the public path failed."""

    def __init__(self, message: str, private_error: str = "", public_error: str = ""):
        super().__init__(message)
        self.private_error = private_error
        self.public_error = public_error


class InsufficientBalance(NetBuyError):
    """Sellable amount is below one base unit."""


class NotificationError(NetBuyError):
    """Observer delivery failed. Logged and swallowed by the scheduler."""
