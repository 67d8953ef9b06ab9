from .orchestrator import RecoveryOrchestrator, RecoveryPhase, RecoveryResult, RecoveryRun
