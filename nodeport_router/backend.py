"""Capability interface every router model implements."""

from abc import ABC, abstractmethod

from .models import Forward


class RouterBackend(ABC):
    """
    The narrow surface the reconciler needs from a router.

    Page layouts, nonces and form quirks stay inside the implementation;
    a different router model plugs in by subclassing this.
    """

    @abstractmethod
    def login(self) -> None:
        """Establish a fresh authenticated session."""

    @abstractmethod
    def ensure_logged_in(self) -> None:
        """Log in again when the current session is missing or stale."""

    @abstractmethod
    def list_forwards(self) -> "tuple[list[Forward], str]":
        """Return the forwards the router currently has, and the page nonce."""

    @abstractmethod
    def add_forward(self, forward: Forward) -> bool:
        """Create *forward*; return False when an identical rule already exists."""

    @abstractmethod
    def delete_forward(self, forward: Forward) -> None:
        """Remove the rule whose service name matches *forward*."""
