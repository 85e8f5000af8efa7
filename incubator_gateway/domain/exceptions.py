"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class SourceUnavailable(DomainException):
    """Ledger query service failed (network, rate limit, malformed response)"""

    pass


class InvalidAccount(DomainException):
    """Supplied account identifier is not a well-formed ledger address"""

    pass


class NoDataAvailable(DomainException):
    """Deposit lookup failed and no cached value exists for the wallet"""

    pass
