"""
Error types for ProviderProfile.

Transition and configuration problems are raised; identifier validation
failures are returned as values so forms can render them inline.
"""

from dataclasses import dataclass
from typing import Any, Optional


class ProfileEngineError(Exception):
    """Base class for errors raised by the profile engine."""


class InvalidTransition(ProfileEngineError):
    """
    A lifecycle action was attempted from a state that forbids it.

    The caller must not apply the mutation.
    """

    def __init__(self, item_id: str, current_status: str, action: str):
        self.item_id = item_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} content item '{item_id}' from status '{current_status}'"
        )


class ConfigurationError(ProfileEngineError):
    """Configuration is missing or unusable."""


@dataclass(frozen=True)
class ValidationError:
    """Identifier or field rejected before admission."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"
