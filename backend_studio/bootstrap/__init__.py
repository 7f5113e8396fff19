"""Two-stage bootstrap: skeleton, npm ``postinstall`` hook, real project."""

from backend_studio.bootstrap.coordinator import BootstrapCoordinator
from backend_studio.bootstrap.installer import DependencyInstaller
from backend_studio.bootstrap.state import BootstrapState, detect_state

__all__ = [
    "BootstrapCoordinator",
    "BootstrapState",
    "DependencyInstaller",
    "detect_state",
]
