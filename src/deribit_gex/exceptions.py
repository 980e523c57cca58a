"""
Exceptions raised by the GEX engine.
"""


class GEXError(Exception):
    """Base class for GEX engine errors"""
    pass


class FetchError(GEXError):
    """Raised when an upstream market data read fails"""

    def __init__(self, message: str, method: str = None):
        super().__init__(message)
        self.method = method


class EmptyResultError(GEXError):
    """Raised when no expiration survives processing"""
    pass
