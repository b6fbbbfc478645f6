"""Flow team registry validation."""

from flow_registry.validator import RegistryValidator, ValidationResult

__all__ = ["RegistryValidator", "ValidationResult"]

__version__ = "0.1.0"
