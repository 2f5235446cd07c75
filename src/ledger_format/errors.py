"""
Errors raised by the ledger format classification pipeline.

Every error carries a stable machine-readable ``kind`` and a human-readable
message. No partial result accompanies an error.
"""


class ClassificationError(Exception):
    """Base class for pipeline failures."""

    kind = "classification_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InputError(ClassificationError):
    """The request itself is unusable (missing, empty or non-string headers)."""

    kind = "input_error"


class ServiceUnavailable(ClassificationError):
    """The fallback classifier is not configured."""

    kind = "service_unavailable"


class ServiceError(ClassificationError):
    """The fallback call failed after its retry budget."""

    kind = "service_error"


class MalformedResult(ClassificationError):
    """The fallback returned data that does not match the expected shape."""

    kind = "malformed_result"
