"""Exceptions raised by the chat streaming client and the services."""


class ChatError(Exception):
    """Base class for failures of a streaming chat request."""

    user_message = "Có lỗi xảy ra với trợ lý AI."

    def __init__(self, message=None):
        super().__init__(message or self.user_message)


class RateLimitExceeded(ChatError):
    """Upstream answered HTTP 429."""

    user_message = "Rate limit exceeded. Please try again later."


class PaymentRequired(ChatError):
    """Upstream answered HTTP 402."""

    user_message = "Payment required. Please add credits."


class UpstreamServiceError(ChatError):
    """Any other non-2xx answer, or a response without a body."""

    user_message = "AI service error"

    def __init__(self, message=None, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class StreamDecodeError(ChatError):
    """Transport or decode failure after the stream had started."""

    user_message = "Lost connection to the AI service while streaming."


class StreamCancelled(ChatError):
    """The caller cancelled the stream; nothing was persisted."""

    user_message = "Stream cancelled."


class StreamAlreadyActive(ChatError):
    """A second request was started on a client that is still streaming."""

    user_message = "A response is already being generated. Please wait."


class NotFoundError(LookupError):
    """A requested record does not exist."""
