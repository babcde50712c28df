class DocumentStoreError(Exception):
    """Base document store exception."""


class TableNotFoundError(DocumentStoreError):
    """Raised when a table was never registered with the store."""


class ExpressionError(DocumentStoreError):
    """Raised when an update or condition expression cannot be applied."""


class ConditionalCheckFailedError(DocumentStoreError):
    """Raised when a write condition does not hold for the stored item."""
