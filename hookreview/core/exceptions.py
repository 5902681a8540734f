"""Error taxonomy shared by the webhook boundary, adapters and the pipeline."""

from typing import Optional


class HookReviewError(Exception):
    """Base class for all errors raised by hookreview."""


class RejectionError(HookReviewError):
    """The event cannot be handled; no review record is created."""


class UnsupportedPlatformError(RejectionError):
    def __init__(self, platform):
        super().__init__(f"Git platform {platform} is not supported")
        self.platform = platform


class ConfigurationError(HookReviewError):
    """Required configuration (credentials, settings) is missing."""


class WebhookParseError(HookReviewError):
    """The webhook body could not be turned into a canonical event."""


class TransportError(HookReviewError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class TransientTransportError(TransportError):
    """Connection failure, timeout, 5xx or rate limiting. Retried."""


class PermanentTransportError(TransportError):
    """Any other non-success response. Never retried."""


class QueueFullError(HookReviewError):
    """The review queue has no room for another job."""


class ReviewTimeoutError(HookReviewError):
    """A review run exceeded its deadline."""


class InvalidTransitionError(HookReviewError):
    """A review record was moved to a state it cannot reach."""
