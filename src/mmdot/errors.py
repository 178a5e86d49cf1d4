"""Exception hierarchy shared by the mmdot packages."""


class MmdotError(Exception):
    """Base class for all mmdot errors."""
    pass


class ValidationError(MmdotError):
    """Invalid host data or conflicting host names."""
    pass


class ConfigReadError(MmdotError):
    """An existing SSH config file could not be read."""
    pass


class SourceLoadError(MmdotError):
    """A host source could not be loaded or parsed."""
    pass


class DecryptionError(MmdotError):
    """The age collaborator failed to decrypt (or encrypt) a file."""
    pass


class BackupError(MmdotError):
    """Pre-sync backup of the SSH config failed."""
    pass


class WriteError(MmdotError):
    """Atomic write of the SSH config failed."""
    pass


class SettingsError(MmdotError):
    """The mmdot config file is missing or invalid."""
    pass
