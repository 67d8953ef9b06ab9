"""
Configuration loader for the recovery orchestrator.

Configuration is assembled from built-in defaults, YAML files and
environment variables, validated, and handed to the orchestrator as an
immutable RecoveryConfig.
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field, asdict

from ..errors import new_configuration_error


@dataclass(frozen=True)
class TopologyConfig:
    """Fixed SONA topology inside the orchestration platform."""
    namespace: str = "openstack"
    cluster_manager: str = "sona-clusterman-0"
    controllers: Tuple[str, ...] = ("sona-onos-0", "sona-onos-1", "sona-onos-2")


@dataclass(frozen=True)
class ControllerConfig:
    """ONOS management API access."""
    scheme: str = "http"
    port: int = 8181
    base_path: str = "/onos"
    username: str = "onos"
    password: str = "rocks"
    request_timeout: float = 30.0


@dataclass(frozen=True)
class SnapshotConfig:
    """Node configuration snapshot location."""
    path: str = "network-cfg.json"


@dataclass(frozen=True)
class RecoveryPolicyConfig:
    """Polling and gating policy."""
    arp_mode: str = "broadcast"
    poll_interval: float = 5.0
    pod_timeout: Optional[float] = None
    app_timeout: Optional[float] = None
    wait_for_cluster_manager: bool = False
    parallel_waits: bool = False


@dataclass(frozen=True)
class KubectlConfig:
    """kubectl invocation settings."""
    binary: str = "kubectl"
    context: str = ""
    request_timeout: float = 30.0


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    level: str = "info"
    file: str = ""


@dataclass(frozen=True)
class RecoveryConfig:
    """Complete recovery configuration."""
    topology: TopologyConfig = field(default_factory=TopologyConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    recovery: RecoveryPolicyConfig = field(default_factory=RecoveryPolicyConfig)
    kubectl: KubectlConfig = field(default_factory=KubectlConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecoveryConfig':
        """Build a configuration from a (validated) nested dictionary."""
        topology = dict(data.get('topology', {}))
        if 'controllers' in topology:
            topology['controllers'] = tuple(topology['controllers'])

        return cls(
            topology=TopologyConfig(**topology),
            controller=ControllerConfig(**data.get('controller', {})),
            snapshot=SnapshotConfig(**data.get('snapshot', {})),
            recovery=RecoveryPolicyConfig(**data.get('recovery', {})),
            kubectl=KubectlConfig(**data.get('kubectl', {})),
            logging=LoggingConfig(**data.get('logging', {})),
        )

    def to_dict(self, mask_secrets: bool = False) -> Dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        data = asdict(self)
        data['topology']['controllers'] = list(self.topology.controllers)
        if mask_secrets and data['controller']['password']:
            data['controller']['password'] = '********'
        return data


class ConfigLoader:
    """Configuration loader for the recovery orchestrator."""

    def __init__(self, config_paths: Optional[List[str]] = None):
        """Initialize configuration loader.

        Args:
            config_paths: List of configuration file paths to load
        """
        self.config_paths = config_paths or self._default_config_paths()
        self.warnings: List[str] = []

    @staticmethod
    def _default_config_paths() -> List[str]:
        """Get default configuration file paths."""
        paths = [
            "./sona-recovery.yaml",
            "./config/sona-recovery.yaml",
            "/etc/sona-recovery/config.yaml",
        ]

        home = Path.home()
        paths.append(str(home / ".sona-recovery" / "config.yaml"))

        return paths

    def load(self) -> RecoveryConfig:
        """Load, merge and validate configuration from all sources.

        Returns:
            RecoveryConfig: Loaded and validated configuration

        Raises:
            StandardError: CONFIGURATION if a file cannot be parsed or the
                merged configuration is invalid
        """
        data = self._load_data()
        return RecoveryConfig.from_dict(self._validate(data))

    def _load_data(self) -> Dict[str, Any]:
        data = RecoveryConfig().to_dict()

        for path in self.config_paths:
            data = self._load_file(path, data)

        for section in ('topology', 'controller', 'snapshot', 'recovery', 'kubectl', 'logging'):
            if not isinstance(data.get(section), dict):
                raise new_configuration_error("load", f"config section '{section}' must be a mapping")

        data = self._apply_environment_overrides(data)
        data = self._expand_environment_variables(data)
        return data

    def _load_file(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge a YAML file into the configuration data.

        Args:
            path: Path to configuration file
            data: Existing configuration data to merge with

        Returns:
            Dict[str, Any]: Merged configuration data
        """
        path_obj = Path(path)
        if not path_obj.exists():
            return data

        try:
            with open(path_obj, 'r') as f:
                file_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise new_configuration_error("load", f"failed to load config from {path}", e)

        if file_data is None:
            return data
        if not isinstance(file_data, dict):
            raise new_configuration_error("load", f"config file {path} must contain a mapping")

        return self._merge_configs(data, file_data)

    def _merge_configs(self, data: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override values into configuration data.

        Unknown keys are carried through so that validation can report them.
        """
        merged = copy.deepcopy(data)
        for key, value in overrides.items():
            if value is None and isinstance(merged.get(key), dict):
                continue
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_environment_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides.

        Args:
            data: Configuration data to override

        Returns:
            Dict[str, Any]: Configuration data with environment overrides applied
        """
        topology = data['topology']
        topology['namespace'] = os.getenv('SONA_NAMESPACE', topology['namespace'])
        topology['cluster_manager'] = os.getenv('SONA_CLUSTER_POD', topology['cluster_manager'])

        pods = os.getenv('SONA_PODS')
        if pods:
            topology['controllers'] = [p.strip() for p in pods.split(',') if p.strip()]

        controller = data['controller']
        controller['scheme'] = os.getenv('ONOS_SCHEME', controller['scheme'])
        controller['username'] = os.getenv('ONOS_USER', controller['username'])
        controller['password'] = os.getenv('ONOS_PASSWORD', controller['password'])
        self._override_number(controller, 'port', 'ONOS_PORT', int)

        data['snapshot']['path'] = os.getenv('SONA_CONF_FILE', data['snapshot']['path'])

        recovery = data['recovery']
        recovery['arp_mode'] = os.getenv('ARP_MODE', recovery['arp_mode'])
        self._override_number(recovery, 'poll_interval', 'POLL_INTERVAL', float)
        self._override_number(recovery, 'pod_timeout', 'POD_TIMEOUT', float)
        self._override_number(recovery, 'app_timeout', 'APP_TIMEOUT', float)

        kubectl = data['kubectl']
        kubectl['binary'] = os.getenv('KUBECTL', kubectl['binary'])
        kubectl['context'] = os.getenv('KUBE_CONTEXT', kubectl['context'])

        data['logging']['level'] = os.getenv('LOG_LEVEL', data['logging']['level'])

        return data

    @staticmethod
    def _override_number(section: Dict[str, Any], key: str, env_name: str, convert) -> None:
        raw = os.getenv(env_name)
        if raw:
            try:
                section[key] = convert(raw)
            except ValueError:
                pass

    def _expand_environment_variables(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Expand environment variables in string fields.

        Args:
            data: Configuration data with potential environment variable references

        Returns:
            Dict[str, Any]: Configuration data with expanded environment variables
        """
        controller = data['controller']
        controller['username'] = os.path.expandvars(controller['username'])
        controller['password'] = os.path.expandvars(controller['password'])

        data['snapshot']['path'] = os.path.expanduser(os.path.expandvars(data['snapshot']['path']))
        data['logging']['file'] = os.path.expanduser(os.path.expandvars(data['logging']['file']))
        data['kubectl']['binary'] = os.path.expanduser(data['kubectl']['binary'])

        return data

    def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate configuration data.

        Args:
            data: Configuration data to validate

        Returns:
            Dict[str, Any]: Section values as coerced by the validation models

        Raises:
            StandardError: CONFIGURATION if configuration is invalid
        """
        from .validator import validate_config

        validation_result = validate_config(data)

        if not validation_result.valid:
            raise new_configuration_error(
                "validate",
                f"configuration validation failed:\n{validation_result.format_result()}"
            ).with_context("errors", [e.field for e in validation_result.errors])

        self.warnings = [f"{w.field}: {w.message}" for w in validation_result.warnings]
        return validation_result.data


def load_config(config_path: Optional[str] = None) -> Tuple[RecoveryConfig, List[str]]:
    """Load configuration from an explicit file or the default search paths.

    Returns:
        Tuple[RecoveryConfig, List[str]]: The configuration and its validation warnings
    """
    if config_path and not Path(config_path).exists():
        raise new_configuration_error("load", f"config file {config_path} does not exist")

    config_paths = [config_path] if config_path else None
    loader = ConfigLoader(config_paths)
    config = loader.load()
    return config, loader.warnings
