"""
Custom exceptions for pytreesim.
Provides domain-specific error handling with informative messages.
"""
import builtins


class TreeSimError(Exception):
    """Base exception for all pytreesim errors."""
    pass


class ConfigurationError(TreeSimError):
    """Raised when there are configuration-related issues."""
    pass


class SpeciesNotFoundError(ConfigurationError):
    """Raised when a species code is not found in configuration."""
    def __init__(self, species_code: str):
        self.species_code = species_code
        super().__init__(f"Species '{species_code}' not found in configuration. "
                        f"Valid species codes can be found in cfg/species_config.yaml")


class ParameterError(TreeSimError):
    """Raised when parameters are invalid or out of bounds."""
    pass


class InvalidParameterError(ParameterError):
    """Raised when a parameter value is invalid."""
    def __init__(self, param_name: str, value: object, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        message = f"Invalid value for parameter '{param_name}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class SimulationError(TreeSimError):
    """Raised when the simulation encounters an error."""
    pass


class RNGNotSeededError(SimulationError):
    """Raised when random numbers are drawn before the generator is seeded."""
    def __init__(self):
        super().__init__("Random number generator used before seed() was called. "
                        "Seed the generator when the simulation is created.")


class DataError(TreeSimError):
    """Raised when there are data-related issues."""
    pass


class FileNotFoundError(DataError, builtins.FileNotFoundError):
    """Raised when a required file is not found."""
    def __init__(self, file_path: str, file_type: str = "file"):
        self.file_path = file_path
        self.file_type = file_type
        super().__init__(f"Required {file_type} not found: {file_path}")


class InvalidDataError(DataError):
    """Raised when data is malformed or invalid."""
    def __init__(self, data_description: str, reason: str):
        self.data_description = data_description
        self.reason = reason
        super().__init__(f"Invalid {data_description}: {reason}")


class SnapshotVersionError(DataError):
    """Raised when a persisted snapshot has an unsupported format version."""
    def __init__(self, found, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(f"Unsupported snapshot version {found!r}; "
                        f"this release reads version {supported}")


# Validation utilities
def validate_positive(value: float, param_name: str) -> float:
    """Validate that a value is positive.

    Args:
        value: Value to validate
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is not positive
    """
    if not value > 0:
        raise InvalidParameterError(param_name, value, "must be positive")
    return value


def validate_proportion(value: float, param_name: str) -> float:
    """Validate that a value is a valid proportion (0-1).

    Args:
        value: Value to validate
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is not in [0, 1]
    """
    if not 0 <= value <= 1:
        raise InvalidParameterError(param_name, value, "must be between 0 and 1")
    return value


def validate_range(value: float, min_val: float, max_val: float, param_name: str) -> float:
    """Validate that a value is within a specific range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        param_name: Parameter name for error message

    Returns:
        The validated value

    Raises:
        InvalidParameterError: If value is outside the range
    """
    if not min_val <= value <= max_val:
        raise InvalidParameterError(
            param_name, value,
            f"must be between {min_val} and {max_val}"
        )
    return value
