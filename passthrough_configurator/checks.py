"""System checks for GPU passthrough prerequisites."""

from typing import List, Optional

from . import config
from .errors import DetectionError, PreconditionError
from .models import CpuVendor
from .system import HostSystem
from .utils import log_debug, log_info, log_success, log_warning


def check_root(host: HostSystem) -> None:
    """Check if the script is running with root privileges."""
    if not host.is_root():
        raise PreconditionError("This script must be run as root (with sudo).")
    log_success("Running with root privileges.")


def check_dependencies(host: HostSystem, commands: Optional[List[str]] = None) -> None:
    """Check if all required commands are available."""
    log_info("Checking for required dependencies...")
    required = commands if commands is not None else config.REQUIRED_COMMANDS

    missing_commands = [cmd for cmd in required if not host.which(cmd)]
    if missing_commands:
        raise PreconditionError(
            f"Missing required commands: {', '.join(missing_commands)}. "
            "Please install them and rerun the script."
        )
    log_success("All required dependencies are available.")


def check_rebuild_tools(host: HostSystem) -> bool:
    """Warn early if the initramfs or GRUB regeneration tools are missing."""
    tools = [command.split()[0] for command in config.REBUILD_COMMANDS]
    missing = [tool for tool in tools if not host.which(tool)]
    if missing:
        log_warning(f"Missing boot image rebuild tools: {', '.join(missing)}")
        log_warning("Configuration files can still be written, but the rebuild step will fail.")
        return False
    return True


def read_cpu_vendor_id(host: HostSystem) -> str:
    """Return the first vendor_id value from /proc/cpuinfo."""
    try:
        cpuinfo = host.read_text(config.PROC_CPUINFO)
    except OSError as e:
        raise DetectionError(f"Failed to read {config.PROC_CPUINFO}: {e}") from e

    for line in cpuinfo.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "vendor_id":
            return value.strip()
    return ""


def detect_cpu_vendor(host: HostSystem) -> CpuVendor:
    """Detect the CPU vendor; anything but Intel or AMD is fatal."""
    log_info("Checking CPU vendor...")
    vendor_id = read_cpu_vendor_id(host)
    vendor = CpuVendor.from_vendor_id(vendor_id)
    if vendor is CpuVendor.UNKNOWN:
        raise DetectionError(f"Unsupported CPU vendor: {vendor_id or 'none reported'}")
    log_success(f"CPU vendor is {vendor.value}.")
    return vendor


def check_cpu_virtualization(host: HostSystem, vendor: CpuVendor) -> bool:
    """Check if the CPU advertises hardware virtualization."""
    flag = vendor.virtualization_flag
    try:
        cpuinfo = host.read_text(config.PROC_CPUINFO)
    except OSError:
        log_warning("Could not read CPU flags to check virtualization support.")
        return False

    for line in cpuinfo.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "flags":
            if flag in value.split():
                log_success(f"CPU virtualization flag '{flag}' is present.")
                return True
            break

    log_warning(f"CPU virtualization flag '{flag}' not found in {config.PROC_CPUINFO}.")
    log_warning("Please ensure virtualization is enabled in your system BIOS/UEFI.")
    return False


def get_kernel_cmdline(host: HostSystem) -> List[str]:
    """Get the active kernel command line as a list of tokens."""
    try:
        cmdline = host.read_text(config.PROC_CMDLINE)
    except OSError as e:
        log_warning(f"Failed to read kernel command line: {e}")
        return []
    log_debug(f"Current cmdline: {cmdline.strip()}", host.debug)
    return cmdline.split()


def run_preflight(host: HostSystem) -> None:
    """Fail before any change if privileges or required tools are missing."""
    check_root(host)
    check_dependencies(host)
    check_rebuild_tools(host)
