"""Change tracking for the passthrough configuration run."""

import datetime
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .models import CpuVendor, GpuCandidate, StepResult
from .utils import log_debug, log_error, log_success


def track_change(
    changes: Dict[str, List[Dict[str, Any]]],
    category: str,
    target: str,
    action: str,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, List[Dict[str, Any]]]:
    """Track a configuration change in the changes dict.

    Args:
        changes: Dictionary tracking changes by category
        category: Category of the change (e.g., 'files', 'modules')
        target: Target of the change (e.g., file path, module name)
        action: Action taken (e.g., 'modified', 'created', 'unloaded')
        details: Any additional details to record about the change

    Returns:
        Updated changes dictionary
    """
    change_entry = {
        "target": target,
        "action": action,
        "timestamp": datetime.datetime.now().isoformat()
    }
    if details:
        change_entry.update(details)

    changes.setdefault(category, []).append(change_entry)
    return changes


# Which file each step writes, for the change log
STEP_TARGETS = {
    "iommu": "grub",
    "boot_integration": "grub",
    "vfio_binding": "vfio_conf",
    "blacklist": "blacklist_conf",
    "hard_block": "block_conf",
    "vfio_modules": "modules_file",
}


def file_targets() -> Dict[str, str]:
    return {
        "grub": str(config.GRUB_DEFAULT),
        "vfio_conf": str(config.VFIO_CONF),
        "blacklist_conf": str(config.BLACKLIST_CONF),
        "block_conf": str(config.BLOCK_CONF),
        "modules_file": str(config.MODULES_FILE),
    }


def changes_from_results(results: Iterable[StepResult], targets: Optional[Dict[str, str]] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Build the change log from step results.

    Args:
        results: Results of the steps that ran
        targets: Mapping of STEP_TARGETS values to file paths
    """
    targets = targets or file_targets()
    changes: Dict[str, List[Dict[str, Any]]] = {}
    for result in results:
        if result.name == "unload":
            for module in result.details.get("unloaded", []):
                track_change(changes, "modules", module, "unloaded")
            for module in result.details.get("failed", []):
                track_change(changes, "modules", module, "unload_failed")
        elif result.name == "rebuild" and result.changed:
            track_change(changes, "commands", "rebuild", "executed", {"commands": result.details.get("commands", [])})
        elif result.name == "vm_attach":
            track_change(changes, "vm", result.details.get("vm_id", ""), "appended", {"line": result.details.get("line")})
        elif result.changed and result.name in STEP_TARGETS:
            details: Dict[str, Any] = {"step": result.name}
            if result.backup_paths:
                details["backup_path"] = result.backup_paths[0]
            action = "modified" if result.backup_paths else "created"
            track_change(changes, "files", targets[STEP_TARGETS[result.name]], action, details)
    return changes


def save_changes_log(output_path: str, vendor: Optional[CpuVendor], candidate: Optional[GpuCandidate],
                     changes: Dict[str, List[Dict[str, Any]]], debug: bool = False) -> bool:
    """Save tracked changes to a JSON file.

    Returns:
        bool: Whether the save was successful
    """
    output_data = {
        "timestamp": datetime.datetime.now().isoformat(),
        "system_info": {
            "cpu_vendor": vendor.value if vendor else None,
        },
        "gpu_info": {
            "passthrough_bdf": candidate.gpu.address if candidate else None,
            "audio_bdf": candidate.audio.address if candidate and candidate.audio else None,
            "device_ids": candidate.device_ids if candidate else [],
        },
        "changes": changes,
    }
    try:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(output_data, f, indent=2, default=str)
    except OSError as e:
        log_error(f"Failed to save changes log to {output_path}: {e}")
        return False
    log_debug(f"Changes log contents: {output_data}", debug)
    log_success(f"Changes log saved to {output_path}")
    return True
