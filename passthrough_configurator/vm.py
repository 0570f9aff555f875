"""Attaching the isolated GPU to a Proxmox VM."""

from pathlib import Path
from typing import List, Tuple

from . import config
from .errors import InvalidReferenceError
from .models import GpuCandidate, StepResult, VmAssignment
from .system import HostSystem
from .utils import log_info, log_success, log_warning


def vm_config_path(vm_id: str) -> Path:
    return config.QEMU_SERVER_DIR / f"{vm_id}.conf"


def list_vms(host: HostSystem) -> List[Tuple[str, str]]:
    """Return (vmid, name) pairs from `qm list`, or an empty list if it fails."""
    output = host.run(config.VM_LIST_COMMAND, quiet=True)
    if output is None:
        log_warning("Could not list VMs (is this a Proxmox host?).")
        return []

    vms = []
    for line in output.splitlines()[1:]:  # Skip header
        parts = line.split()
        if len(parts) >= 2 and parts[0].isdigit():
            vms.append((parts[0], parts[1]))
    return vms


def build_assignment(vm_id: str, candidate: GpuCandidate, index: int = 0) -> VmAssignment:
    audio_address = f"{candidate.gpu.slot}.1" if candidate.audio is not None else None
    return VmAssignment(
        vm_id=vm_id,
        index=index,
        gpu_address=candidate.gpu.address,
        audio_address=audio_address,
    )


def attach_to_vm(host: HostSystem, candidate: GpuCandidate, vm_id: str, index: int = 0) -> StepResult:
    """
    Append a hostpci line for the GPU to a VM's configuration.

    The line is appended unconditionally; running this twice for the same
    slot index adds a second line.

    Raises:
        InvalidReferenceError: if the VM ID is not numeric or the VM has no configuration file
    """
    vm_id = vm_id.strip()
    if not vm_id.isdigit():
        raise InvalidReferenceError(f"Invalid VM ID '{vm_id}': Proxmox VM IDs are numeric.")
    conf_path = vm_config_path(vm_id)
    if not host.exists(conf_path):
        raise InvalidReferenceError(f"Invalid VM ID '{vm_id}': {conf_path} does not exist.")

    assignment = build_assignment(vm_id, candidate, index)
    log_info(f"Adding to {conf_path}: {assignment.config_line}")
    existing = host.read_text(conf_path)
    separator = "" if not existing or existing.endswith("\n") else "\n"
    host.append_text(conf_path, f"{separator}{assignment.config_line}\n")
    log_success(f"GPU assigned to VM {vm_id} as hostpci{index}.")
    return StepResult("vm_attach", changed=False, details={"vm_id": vm_id, "line": assignment.config_line})
