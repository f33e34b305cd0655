"""
Error taxonomy for catalog, stock and AI intent operations
"""


class RestockError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RestockError):
    """Bad input shape or range, detected before any mutation"""

    status_code = 400


class NotFoundError(RestockError):
    """Referenced ledger or lot does not exist"""

    status_code = 404


class InsufficientStockError(RestockError):
    """Consume request exceeds the lot's remaining quantity"""

    status_code = 400


class PersistenceError(RestockError):
    """Document store unavailable or failed"""

    status_code = 500


class DuplicateDocumentError(PersistenceError):
    """Insert hit the (collection, key) uniqueness constraint"""

    status_code = 409


class UpstreamGenerationError(RestockError):
    """External text generation failed or timed out"""

    status_code = 502
