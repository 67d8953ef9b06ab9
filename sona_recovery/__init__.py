"""
SONA recovery orchestrator.

Restores a broken SONA (ONOS controller cluster + clusterman) deployment
running on Kubernetes to a known-good state: back up the node
configuration, restart every pod, wait for the controllers to come back,
then restore configuration and resynchronise OpenStack state and flow rules.
"""

__version__ = "1.0.0"
