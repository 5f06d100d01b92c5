"""
Error types raised by the STAR-RIS channel pipeline.

Only ProviderUnavailable is recoverable: it is raised by a single attempt
inside a fallback chain (channel acquisition, Doppler generation) and is
always caught by the component that owns the chain. Every other error is
fatal and aborts the whole pipeline run.
"""


class StarRisError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(StarRisError, ValueError):
    """Invalid system parameters or collaborator configuration."""


class ShapeMismatchError(StarRisError, ValueError):
    """A matrix does not match its dimensional contract."""


class ChannelAcquisitionError(StarRisError):
    """Every channel provider in the fallback chain failed."""

    def __init__(self, message: str, reasons: dict | None = None):
        super().__init__(message)
        self.reasons = dict(reasons or {})


class ProviderUnavailable(StarRisError):
    """A single provider could not deliver; the owner tries the next fallback."""
