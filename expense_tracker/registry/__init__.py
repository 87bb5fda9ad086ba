"""Identity registry package."""

from expense_tracker.registry.identity_registry import IdentityRegistry

__all__ = ["IdentityRegistry"]
