"""Domain exception hierarchy for gpt-term."""

from __future__ import annotations


class GptTermError(RuntimeError):
    """Base class for all domain-level errors."""


class ConfigValidationError(GptTermError):
    """Raised when configuration cannot be validated safely."""


class MissingCredentialError(GptTermError):
    """Raised when the assistant credential variable is not defined."""


class AssistantError(GptTermError):
    """Raised when a completion request fails."""


class AssistantConnectionError(AssistantError):
    """Raised when the assistant API cannot be reached or times out."""


class AssistantResponseError(AssistantError):
    """Raised when the assistant API answers with an unusable response."""


class PersistenceError(GptTermError):
    """Raised when conversation storage fails."""


class ConversationNotFoundError(PersistenceError):
    """Raised when no snapshot exists for a conversation id."""


class PersistenceFormatError(PersistenceError):
    """Raised when a persisted snapshot cannot be decoded."""


class ExternalProcessError(GptTermError):
    """Raised when an external process cannot be spawned or fails."""


class EditorError(ExternalProcessError):
    """Raised when the external editor is missing or exits with an error."""


class ClipboardUnavailableError(ExternalProcessError):
    """Raised when no clipboard tool is available on this platform."""
