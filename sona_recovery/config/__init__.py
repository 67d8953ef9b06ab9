from .loader import (
    ConfigLoader,
    RecoveryConfig,
    TopologyConfig,
    ControllerConfig,
    SnapshotConfig,
    RecoveryPolicyConfig,
    KubectlConfig,
    LoggingConfig,
    load_config,
)
from .validator import ValidationResult, validate_config
