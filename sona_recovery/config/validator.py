"""
Schema validation for the recovery configuration.

Validation uses Pydantic v2 models per configuration section plus a set of
cross-field rules, and reports every problem found rather than the first.
"""

import re
from pathlib import Path
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError
from pydantic.config import ConfigDict


# Kubernetes pod names are RFC 1123 subdomains
POD_NAME_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$')


class ValidationError:
    """Represents a single validation error or warning."""

    def __init__(self, field: str, value: Any, message: str, level: str = "error"):
        self.field = field
        self.value = value
        self.message = message
        self.level = level  # "error" or "warning"

    def __repr__(self):
        return f"ValidationError(field={self.field}, message={self.message}, level={self.level})"


class ValidationResult:
    """Container for validation results including errors and warnings."""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []
        self.valid: bool = True
        # Section values as coerced by the models, e.g. "30" -> 30.0
        self.data: Dict[str, Dict[str, Any]] = {}

    def add_error(self, field: str, value: Any, message: str):
        """Add a validation error."""
        self.errors.append(ValidationError(field, value, message, "error"))
        self.valid = False

    def add_warning(self, field: str, value: Any, message: str):
        """Add a validation warning."""
        self.warnings.append(ValidationError(field, value, message, "warning"))

    def format_result(self) -> str:
        """Format the validation result for display."""
        output = []

        if self.valid:
            output.append("Configuration is valid")
        else:
            output.append(f"Configuration validation failed with {len(self.errors)} error(s):")
            for error in self.errors:
                output.append(f"  - {error.field}: {error.message}")
                if error.value is not None and error.value != "":
                    output.append(f"    Current value: {error.value}")

        if self.warnings:
            output.append(f"{len(self.warnings)} warning(s):")
            for warning in self.warnings:
                output.append(f"  - {warning.field}: {warning.message}")

        return "\n".join(output)


def _validate_pod_name(name: str) -> str:
    if not name or len(name) > 253 or not POD_NAME_PATTERN.match(name):
        raise ValueError(f"Invalid pod name: {name!r}")
    return name


class ValidatedTopologyConfig(BaseModel):
    """Topology configuration with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    namespace: str = Field(default="openstack", min_length=1, max_length=63)
    cluster_manager: str = Field(default="sona-clusterman-0")
    controllers: List[str] = Field(
        default_factory=lambda: ["sona-onos-0", "sona-onos-1", "sona-onos-2"],
        min_length=1,
        description="Controller replica pod names; the first one is the control point"
    )

    @field_validator('namespace')
    @classmethod
    def validate_namespace(cls, v):
        if not re.match(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$', v):
            raise ValueError(f"Invalid namespace: {v!r}")
        return v

    @field_validator('cluster_manager')
    @classmethod
    def validate_cluster_manager(cls, v):
        return _validate_pod_name(v)

    @field_validator('controllers')
    @classmethod
    def validate_controllers(cls, v):
        for name in v:
            _validate_pod_name(name)
        return v


class ValidatedControllerConfig(BaseModel):
    """Controller API configuration with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    scheme: str = Field(default="http", pattern="^(http|https)$")
    port: int = Field(default=8181, ge=1, le=65535)
    base_path: str = Field(default="/onos")
    username: str = Field(default="onos", min_length=1)
    password: str = Field(default="rocks")
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator('base_path')
    @classmethod
    def validate_base_path(cls, v):
        if v and not v.startswith('/'):
            raise ValueError("base_path must start with '/'")
        return v.rstrip('/')


class ValidatedSnapshotConfig(BaseModel):
    """Snapshot configuration with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    path: str = Field(default="network-cfg.json", min_length=1)


class ValidatedRecoveryPolicy(BaseModel):
    """Recovery policy with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    arp_mode: str = Field(default="broadcast", pattern="^(broadcast|proxy)$")
    poll_interval: float = Field(default=5.0, gt=0)
    pod_timeout: Optional[float] = Field(default=None, gt=0)
    app_timeout: Optional[float] = Field(default=None, gt=0)
    wait_for_cluster_manager: bool = False
    parallel_waits: bool = False


class ValidatedKubectlConfig(BaseModel):
    """kubectl configuration with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    binary: str = Field(default="kubectl", min_length=1)
    context: str = ""
    request_timeout: float = Field(default=30.0, gt=0)


class ValidatedLoggingConfig(BaseModel):
    """Logging configuration with validation."""
    model_config = ConfigDict(validate_default=True, extra='forbid')

    level: str = Field(default="info")
    file: str = ""

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.lower() not in ('debug', 'info', 'warning', 'error', 'critical'):
            raise ValueError(f"Invalid log level: {v!r}")
        return v.lower()


SECTION_MODELS = {
    'topology': ValidatedTopologyConfig,
    'controller': ValidatedControllerConfig,
    'snapshot': ValidatedSnapshotConfig,
    'recovery': ValidatedRecoveryPolicy,
    'kubectl': ValidatedKubectlConfig,
    'logging': ValidatedLoggingConfig,
}


class ConfigValidator:
    """Validates a complete configuration dictionary."""

    def __init__(self, config_dict: Dict[str, Any]):
        self.config = config_dict
        self.result = ValidationResult()

    def validate(self) -> ValidationResult:
        """Run all validation checks."""
        for key in self.config:
            if key not in SECTION_MODELS:
                self.result.add_error(key, None, "Unknown configuration section")

        for section, model in SECTION_MODELS.items():
            self._validate_section(section, model)

        self._validate_cross_field_rules()
        return self.result

    def _validate_section(self, section: str, model) -> None:
        try:
            validated = model(**(self.config.get(section) or {}))
            self.result.data[section] = validated.model_dump()
        except PydanticValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error['loc'])
                field = f"{section}.{location}" if location else section
                self.result.add_error(field, error.get('input'), error['msg'])
        except TypeError as e:
            self.result.add_error(section, None, str(e))

    def _section(self, name: str) -> Dict[str, Any]:
        """Coerced section values, or the raw ones when the section is invalid."""
        if name in self.result.data:
            return self.result.data[name]
        return self.config.get(name) or {}

    def _validate_cross_field_rules(self):
        """Rules spanning several fields or sections."""
        topology = self._section('topology')
        controllers = topology.get('controllers') or []
        cluster_manager = topology.get('cluster_manager')

        names = list(controllers) + ([cluster_manager] if cluster_manager else [])
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            self.result.add_error(
                "topology",
                ", ".join(str(d) for d in duplicates),
                "Pod names must be unique across the cluster manager and controllers"
            )

        controller = self._section('controller')
        if not controller.get('password'):
            self.result.add_warning("controller.password", None, "Empty password; API calls will likely be rejected")

        snapshot_path = self._section('snapshot').get('path')
        if snapshot_path:
            resolved = Path(snapshot_path).resolve()
            cwd = Path.cwd().resolve()
            if cwd not in resolved.parents:
                self.result.add_warning(
                    "snapshot.path", snapshot_path,
                    "Snapshot is written outside the working directory"
                )

        recovery = self._section('recovery')
        interval = recovery.get('poll_interval')
        for key in ('pod_timeout', 'app_timeout'):
            timeout = recovery.get(key)
            if isinstance(timeout, (int, float)) and isinstance(interval, (int, float)) and 0 < timeout < interval:
                self.result.add_warning(
                    f"recovery.{key}", timeout,
                    "Timeout is shorter than the poll interval; only one attempt will be made"
                )


def validate_config(config_dict: Dict[str, Any]) -> ValidationResult:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration dictionary to validate

    Returns:
        ValidationResult: Validation result with errors and warnings
    """
    validator = ConfigValidator(config_dict)
    return validator.validate()

