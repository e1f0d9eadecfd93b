"""
Exception types for declaring and submitting resource intents.

Declaration-time problems subclass ValueError so the entrypoint can report
them the same way as configuration problems.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Missing or invalid configuration input."""


class DeclarationError(ValueError):
    pass


class DuplicateIntentError(DeclarationError):
    pass


class UnknownReferenceError(DeclarationError):
    pass


class DependencyCycleError(DeclarationError):
    pass


class OutputNotResolvedError(RuntimeError):
    pass


class OutputAlreadyResolvedError(RuntimeError):
    pass


class ProvisioningError(Exception):
    pass


class GraphAlreadySubmittedError(ProvisioningError):
    pass


class RealizationError(ProvisioningError):
    """The engine failed to realize an intent."""

    def __init__(self, intent_name: str, message: str) -> None:
        super().__init__(f"{intent_name}: {message}")
        self.intent_name = intent_name


class MissingOutputError(RealizationError):
    pass


class DependencyFailedError(ProvisioningError):
    pass


class EmptyOutputError(ProvisioningError):
    pass


class UnsupportedResourceKindError(ProvisioningError):
    pass
