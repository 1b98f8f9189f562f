"""
Custom exceptions for the chain embedding pipeline.

Store implementations and pipeline components raise these exceptions
for consistent error handling. None of them is allowed to escape into
the message-creation path; the pipeline and search service catch and log.
"""


class ChainIndexError(Exception):
    """Base exception for all chain index errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MessageNotFoundError(ChainIndexError):
    """Raised when a message row does not exist (or was deleted)."""

    def __init__(self, message_id: str):
        super().__init__(f"Message not found: {message_id}", {"message_id": message_id})
        self.message_id = message_id


class StorageIOError(ChainIndexError):
    """Raised when a store read or write operation fails."""

    def __init__(self, operation: str, table: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if table:
            details["table"] = table
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if table:
            message += f" on {table}"
        super().__init__(message, details)
        self.operation = operation
        self.table = table
        self.cause = cause


class StorageConnectionError(ChainIndexError):
    """Raised when connection to the store fails.

    Note: Named StorageConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class ValidationError(ChainIndexError):
    """Raised when data read at the store boundary is malformed."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class EmbeddingUnavailableError(ChainIndexError):
    """Raised when the embedding service cannot produce a vector."""

    def __init__(self, input_type: str, cause: Exception | None = None):
        details = {"input_type": input_type}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Embedding unavailable for {input_type} text", details)
        self.input_type = input_type
        self.cause = cause


class EmbeddingWriteError(ChainIndexError):
    """Raised when committing a chain embedding fails (the transaction is rolled back)."""

    def __init__(self, message_id: str, superseded: list[str], cause: Exception | None = None):
        details: dict = {"message_id": message_id, "superseded": list(superseded)}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Failed to commit chain embedding on message {message_id}", details)
        self.message_id = message_id
        self.superseded = list(superseded)
        self.cause = cause
