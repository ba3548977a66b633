"""Exceptions raised by the DashCuro orchestration layer."""


class DashcuroError(RuntimeError):
    """Base class for errors that stop a DashCuro run."""


class ConfigError(DashcuroError):
    """Required configuration is missing or malformed."""


class CheckpointError(DashcuroError):
    """A checkpoint file could not be written or read back."""


class DiscoveryError(DashcuroError):
    """The dashboard list could not be enumerated."""
