"""Core interfaces and types for the registry validator."""

from flow_registry.core.config import (
    ConfigValidationError,
    ValidatorConfig,
    get_default_config,
    load_config,
    validate_config,
)
from flow_registry.core.directory import (
    DirectoryError,
    DirectoryNotFoundError,
    DirectoryService,
    RequestSpec,
)
from flow_registry.core.telemetry import (
    LookupEvent,
    LookupKind,
    LookupOutcome,
    TelemetryLevel,
    TelemetryRecorder,
    TelemetryStats,
    create_event,
    get_recorder,
    set_recorder,
)

__all__ = [
    # directory
    "DirectoryError",
    "DirectoryNotFoundError",
    "DirectoryService",
    "RequestSpec",
    # config
    "ConfigValidationError",
    "ValidatorConfig",
    "get_default_config",
    "load_config",
    "validate_config",
    # telemetry
    "LookupEvent",
    "LookupKind",
    "LookupOutcome",
    "TelemetryLevel",
    "TelemetryRecorder",
    "TelemetryStats",
    "create_event",
    "get_recorder",
    "set_recorder",
]
