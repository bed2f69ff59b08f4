"""Custom TTS exceptions."""


class TTSError(Exception):
    """Base exception for ttsrelay errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class TTSValidationError(TTSError, ValueError):
    """Exception raised when synthesis parameters are invalid.

    This typically occurs when:
    - Text is empty or longer than the allowed length
    - Voice ID is not in the supported voice table
    - Codec or sample rate is not recognized
    """

    pass


class CacheIOError(TTSError):
    """Exception raised for cache store read/write failures.

    The store recovers from these locally for lookup and insert; callers
    only see it when they explicitly read stored audio back.
    """

    pass


class UpstreamError(TTSError):
    """Exception raised for upstream TTS provider failures.

    This typically occurs when:
    - Provider API is unavailable (5xx errors)
    - Quota or rate limits are exceeded (429 error)
    - Network connectivity issues
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class UpstreamAuthError(UpstreamError):
    """Exception raised when provider credentials are missing or rejected."""

    pass


class EmptyAudioError(UpstreamError):
    """Exception raised when the provider reports success but sends no audio."""

    pass


class SynthesisFailed(TTSError):
    """Exception raised when a synthesis request could not be fulfilled.

    Wraps the UpstreamError that caused it and carries its status code so
    the HTTP layer can tell rate limiting from other upstream failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code
