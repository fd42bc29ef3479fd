"""Exceptions raised by the conversation components."""


class ChatStreamError(Exception):
    """Base class for errors raised by chatstream."""


class SessionNotFoundError(ChatStreamError, LookupError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class BlobStorageError(ChatStreamError):
    """A blob could not be stored, read or removed."""


class ModelInvocationError(ChatStreamError):
    """The model backend failed before producing any output."""


class PartialResponseError(ModelInvocationError):
    """The model backend failed after some text was already emitted."""

    def __init__(self, message: str, partial: str):
        super().__init__(message)
        self.partial = partial
