"""
Error types shared across the tutor client.

Configuration problems degrade to placeholder payloads, external failures are
caught where the call is made, and precondition violations never reach an
external service.
"""


class TutorError(Exception):
    """Base class for all tutor client errors."""


class ConfigurationError(TutorError, ValueError):
    """Credentials or endpoints for an external service are missing."""


class LLMError(TutorError, RuntimeError):
    """The chat-completion call failed or returned an unexpected shape."""


class PersistenceError(TutorError, RuntimeError):
    """A Supabase query or write failed."""


class RecommendedContentError(PersistenceError):
    """Fetching the curated recommended content failed."""
