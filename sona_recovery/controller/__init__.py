from .client import ARP_MODES, CallResult, ControllerClient
from .snapshot import ConfigSnapshot, ConfigSnapshotStore
from .readiness import ReadinessProber
from .reconfigure import ReconfigurationClient
