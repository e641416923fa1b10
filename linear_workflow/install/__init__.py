from .orchestrator import SetupOrchestrator
from .state import InstallationState

__all__ = ["InstallationState", "SetupOrchestrator"]
