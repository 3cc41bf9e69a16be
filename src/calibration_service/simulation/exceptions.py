class ConfigurationError(ValueError):
    """The calibration cannot start with the given configuration."""


class RunCreationError(Exception):
    """The calibration run record could not be created."""
