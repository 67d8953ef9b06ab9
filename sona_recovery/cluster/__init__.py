from .models import Node, NodeRole, PodInfo, PodStatus, Topology
from .kubectl import KubectlClient
from .directory import NodeDirectory
from .lifecycle import LifecycleController
