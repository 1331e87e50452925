"""Custom exceptions for the assessment service."""


class AssessmentError(Exception):
    """Base exception for assessment errors."""

    pass


class SessionNotFoundError(AssessmentError):
    """Unknown session identifier."""

    def __init__(self, session_id: str | None):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class InvalidStateError(AssessmentError):
    """Advance requested on a session that has already completed."""

    def __init__(self, session_id: str | None, message: str = "Session already completed"):
        self.session_id = session_id
        super().__init__(f"{message}: {session_id}")


class TransientIOError(AssessmentError):
    """Network failure talking to the session service. Retried on the next tick."""

    pass


class CatalogError(AssessmentError):
    """Malformed section catalog."""

    pass


class StorageError(AssessmentError):
    """Response capture could not be persisted."""

    pass
