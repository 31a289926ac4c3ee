class ForgeSyncError(Exception):
    """Base exception for the forge_sync project."""


class BinderInitError(ForgeSyncError, ValueError):
    """Raised when a binder is given a missing or malformed player record."""


class BinderStateError(ForgeSyncError, RuntimeError):
    """Raised when an operation is not valid for the binder's lifecycle state."""


class UnknownChannelError(ForgeSyncError, ValueError):
    """Raised when subscribing to a channel that does not exist."""


class UnknownSlotError(ForgeSyncError, KeyError):
    """Raised when writing to an equipment slot that is not configured."""


class ConfigError(ForgeSyncError, ValueError):
    """Raised for invalid binder configuration (file, env or values)."""


class ReplayError(ForgeSyncError, ValueError):
    """Raised when a replay script or player file cannot be applied."""
