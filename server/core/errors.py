"""Chat core error types."""


class ChatError(Exception):
    """Base class for chat core errors."""


class ChatValidationError(ChatError):
    """A user action was rejected before anything was persisted.

    The UI is expected to surface ``str(err)`` as a blocking notice.
    """
