"""vfio-pci binding, native driver blacklisting and module unloading."""

import re
from typing import List, Optional, Tuple

from . import config
from .models import GpuCandidate, StepResult
from .system import HostSystem
from .utils import log_debug, log_info, log_success, log_warning

OPTIONS_PREFIX = f"options {config.VFIO_DRIVER}"
IDS_REGEX = re.compile(r"\bids=(\S+)")
# modprobe treats dashes and underscores in module names alike
BINDING_REGEX = re.compile(r"^\s*options\s+vfio[-_]pci\b")


def binding_line(candidate: GpuCandidate, disable_vga: bool = True) -> str:
    # disable_vga=1 keeps vfio-pci from claiming VGA arbitration for the host console
    line = f"{OPTIONS_PREFIX} ids={candidate.ids_string}"
    if disable_vga:
        line += " disable_vga=1"
    return line


def parse_bound_ids(line: str) -> List[str]:
    """Extract the device IDs from an `options vfio-pci ids=...` line."""
    match = IDS_REGEX.search(line)
    if not match:
        return []
    return [device_id.lower() for device_id in match.group(1).split(",") if device_id]


def find_binding_line(lines: List[str]) -> Optional[int]:
    for i, line in enumerate(lines):
        if BINDING_REGEX.match(line):
            return i
    return None


def configure_vfio_binding(host: HostSystem, candidate: GpuCandidate, decisions, disable_vga: bool = True) -> StepResult:
    """
    Bind the GPU's device IDs to vfio-pci in /etc/modprobe.d/vfio.conf.

    The file holds exactly one binding line. An existing line with the same
    ID set is left alone; a line with different IDs is replaced in place.

    Args:
        host: Host facade used for file access
        candidate: The GPU (and audio function) to bind
        decisions: Decision provider consulted before replacing a binding
        disable_vga: Add disable_vga=1 to the options line

    Returns:
        StepResult describing whether the file changed
    """
    log_info("Configuring vfio-pci device binding...")
    conf_path = config.VFIO_CONF
    new_line = binding_line(candidate, disable_vga)
    target_ids = [device_id.lower() for device_id in candidate.device_ids]

    if not host.exists(conf_path):
        host.write_text(conf_path, new_line + "\n")
        log_success(f"Created {conf_path} with: {new_line}")
        return StepResult("vfio_binding", changed=True, details={"ids": target_ids, "action": "created"})

    lines = host.read_text(conf_path).splitlines()
    index = find_binding_line(lines)

    if index is None:
        backup_path = host.backup(conf_path)
        host.append_text(conf_path, new_line + "\n")
        log_success(f"Added binding to {conf_path}: {new_line}")
        return StepResult(
            "vfio_binding", changed=True,
            backup_paths=(backup_path,) if backup_path else (),
            details={"ids": target_ids, "action": "appended"},
        )

    current_ids = parse_bound_ids(lines[index])
    log_debug(f"Currently bound IDs: {','.join(current_ids) or 'none'}", host.debug)
    if sorted(current_ids) == sorted(target_ids):
        log_info(f"{conf_path} already binds {candidate.ids_string} to {config.VFIO_DRIVER}.")
        return StepResult("vfio_binding", details={"ids": target_ids, "action": "unchanged"})

    log_warning(f"{conf_path} binds {','.join(current_ids) or 'no IDs'}, expected {candidate.ids_string}.")
    if not decisions.confirm(f"Replace the vfio-pci binding in {conf_path}?"):
        log_warning("Keeping the existing vfio-pci binding.")
        return StepResult("vfio_binding", skipped=True, details={"ids": current_ids, "action": "declined"})

    backup_path = host.backup(conf_path)
    lines[index] = new_line
    host.write_text(conf_path, "\n".join(lines) + "\n")
    log_success(f"Replaced binding in {conf_path}: {new_line}")
    return StepResult(
        "vfio_binding", changed=True,
        backup_paths=(backup_path,) if backup_path else (),
        details={"ids": target_ids, "previous_ids": current_ids, "action": "replaced"},
    )


def configure_blacklist(host: HostSystem) -> StepResult:
    """Write the native driver blacklist once; an existing file is left alone."""
    log_info("Blacklisting native GPU drivers...")
    conf_path = config.BLACKLIST_CONF
    if host.exists(conf_path):
        log_warning(f"{conf_path} already exists and was not modified.")
        log_warning(f"Check that it blacklists: {', '.join(config.BLACKLISTED_MODULES)}")
        return StepResult("blacklist", details={"action": "exists"})

    content = "".join(f"blacklist {module}\n" for module in config.BLACKLISTED_MODULES)
    host.write_text(conf_path, content)
    log_success(f"Created {conf_path}")
    return StepResult("blacklist", changed=True, details={"modules": list(config.BLACKLISTED_MODULES)})


def configure_hard_block(host: HostSystem) -> StepResult:
    """Make every load attempt of the native drivers fail."""
    log_info("Blocking native GPU drivers from loading...")
    conf_path = config.BLOCK_CONF
    content = "".join(f"install {module} /bin/false\n" for module in config.HARD_BLOCKED_MODULES)

    if host.exists(conf_path) and host.read_text(conf_path) == content:
        log_info(f"{conf_path} is already up-to-date.")
        return StepResult("hard_block")

    backup_path = host.backup(conf_path)
    host.write_text(conf_path, content)
    log_success(f"Wrote {conf_path}")
    return StepResult(
        "hard_block", changed=True,
        backup_paths=(backup_path,) if backup_path else (),
        details={"modules": list(config.HARD_BLOCKED_MODULES)},
    )


def get_kernel_version(host: HostSystem) -> Optional[Tuple[int, int, int]]:
    """
    Get the running kernel version as a tuple (major, minor, patch).

    Returns:
        A tuple of version numbers, or None if it couldn't be determined
    """
    output = host.run("uname -r", quiet=True)
    if not output:
        return None
    match = re.search(r'(\d+)\.(\d+)(?:\.(\d+))?', output)
    if not match:
        log_debug(f"Could not parse kernel version from: {output}", host.debug)
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)


def vfio_modules_for_kernel(kernel_version: Optional[Tuple[int, int, int]]) -> List[str]:
    modules = list(config.VFIO_MODULES)
    if kernel_version and kernel_version[:2] < (6, 2):
        modules.append(config.VFIO_VIRQFD_MODULE)
    return modules


def configure_vfio_modules_load(host: HostSystem) -> StepResult:
    """Ensure the vfio modules are listed in /etc/modules so they load at boot."""
    log_info("Ensuring vfio modules load at boot...")
    modules_path = config.MODULES_FILE
    modules = vfio_modules_for_kernel(get_kernel_version(host))

    existing = host.read_text(modules_path) if host.exists(modules_path) else ""
    listed = {line.split()[0] for line in existing.splitlines() if line.strip() and not line.lstrip().startswith("#")}
    missing = [module for module in modules if module not in listed]

    if not missing:
        log_info(f"{modules_path} already lists: {', '.join(modules)}")
        return StepResult("vfio_modules", details={"modules": modules})

    separator = "" if not existing or existing.endswith("\n") else "\n"
    backup_path = host.backup(modules_path)
    host.append_text(modules_path, separator + "".join(f"{module}\n" for module in missing))
    log_success(f"Added to {modules_path}: {', '.join(missing)}")
    return StepResult(
        "vfio_modules", changed=True,
        backup_paths=(backup_path,) if backup_path else (),
        details={"modules": modules, "added": missing},
    )


def unload_native_drivers(host: HostSystem) -> StepResult:
    """Unload native GPU driver modules that are currently loaded.

    A module that refuses to unload is reported and skipped; the blacklist
    takes over after the next reboot.
    """
    log_info("Unloading native GPU drivers...")
    loaded = host.loaded_modules()
    unloaded: List[str] = []
    failed: List[str] = []

    for module in config.UNLOAD_ORDER:
        if module not in loaded:
            continue
        log_info(f"Removing {module}...")
        if host.run(f"modprobe -r {module}", mutating=True) is None:
            log_warning(f"Failed to remove {module}; it may still be in use. A reboot will complete the change.")
            failed.append(module)
        else:
            unloaded.append(module)

    if not unloaded and not failed:
        log_info("No native GPU driver modules are loaded.")
    elif not failed:
        log_success("All native GPU driver modules unloaded.")
    return StepResult("unload", details={"unloaded": unloaded, "failed": failed})
