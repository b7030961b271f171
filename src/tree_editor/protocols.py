"""Protocols for dependency injection in the tree editor."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SystemClipboardProtocol(Protocol):
    """Protocol for the platform's plain-text clipboard."""

    def read_text(self) -> str:
        """Return the clipboard text ("" when empty)."""
        ...

    def write_text(self, text: str) -> None:
        """Replace the clipboard text."""
        ...


@runtime_checkable
class ConfirmProtocol(Protocol):
    """Protocol for asking the user to approve a destructive command."""

    def __call__(self, message: str) -> bool:
        """Return True if the user approved."""
        ...
