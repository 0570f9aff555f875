"""GPU passthrough host configurator for vfio-pci."""

# Export public modules and functions
from .cli import main
from .errors import (
    PassthroughError, PreconditionError, DetectionError,
    InvalidReferenceError, RebuildError, UserDeclined
)
from .models import CpuVendor, PciDevice, GpuCandidate, VmAssignment, StepResult
from .system import HostSystem
from .utils import Colors, log_info, log_success, log_warning, log_error, log_debug, run_command

__all__ = [
    # Main CLI function
    'main',
    # Errors
    'PassthroughError', 'PreconditionError', 'DetectionError',
    'InvalidReferenceError', 'RebuildError', 'UserDeclined',
    # Records
    'CpuVendor', 'PciDevice', 'GpuCandidate', 'VmAssignment', 'StepResult',
    # Host access
    'HostSystem',
    # Utility functions
    'Colors', 'log_info', 'log_success', 'log_warning', 'log_error', 'log_debug', 'run_command'
]
