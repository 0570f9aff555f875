"""GRUB kernel parameter configuration for IOMMU and vfio-pci."""

import re
from typing import List, Optional, Tuple

from . import config
from .checks import get_kernel_cmdline
from .errors import PreconditionError
from .models import CpuVendor, GpuCandidate, StepResult
from .system import HostSystem
from .utils import log_debug, log_info, log_success

CMDLINE_REGEX = re.compile(
    rf"^(?P<prefix>[ \t]*{config.GRUB_CMDLINE_KEY}[ \t]*=[ \t]*)"
    r"(?:(?P<quote>[\"'])(?P<quoted>.*?)(?P=quote)|(?P<bare>[^\s\"'#]*)(?![\"']))",
    re.MULTILINE,
)


def cmdline_value(match: "re.Match[str]") -> str:
    if match.group("quote"):
        return match.group("quoted")
    return match.group("bare")


def param_key(param: str) -> str:
    return param.split("=", 1)[0]


def merge_params(current: List[str], params: List[str], replace_keys: Tuple[str, ...] = ()) -> List[str]:
    """Add params to a token list without disturbing unrelated tokens.

    Tokens are compared exactly. A token whose key is listed in
    replace_keys is swapped in place for the new value instead of
    being appended a second time.
    """
    merged = list(current)
    for param in params:
        if param in merged:
            continue
        key = param_key(param)
        if key in replace_keys:
            positions = [i for i, token in enumerate(merged) if param_key(token) == key]
            if positions:
                merged[positions[0]] = param
                # Drop any further stale copies of the same key
                for i in reversed(positions[1:]):
                    del merged[i]
                continue
        merged.append(param)
    return merged


def get_grub_cmdline_params(content: str) -> Optional[List[str]]:
    """Extract the tokens of GRUB_CMDLINE_LINUX_DEFAULT, or None if the line is absent."""
    match = CMDLINE_REGEX.search(content)
    if not match:
        return None
    return cmdline_value(match).split()


def ensure_grub_params(host: HostSystem, params: List[str], replace_keys: Tuple[str, ...] = ()) -> Tuple[bool, Optional[str]]:
    """
    Ensure kernel parameters are present in GRUB_CMDLINE_LINUX_DEFAULT.

    Args:
        host: Host facade used for file access
        params: Parameters that must be present
        replace_keys: Parameter keys whose existing value should be replaced

    Returns:
        Tuple[bool, Optional[str]]: (changed, backup_path)
    """
    grub_path = config.GRUB_DEFAULT
    if not host.exists(grub_path):
        raise PreconditionError(f"{grub_path} not found. Cannot configure GRUB.")

    original_content = host.read_text(grub_path)
    match = CMDLINE_REGEX.search(original_content)

    if match:
        current = cmdline_value(match).split()
        merged = merge_params(current, params, replace_keys)
        if merged == current:
            log_info(f"{grub_path} {config.GRUB_CMDLINE_KEY} already contains: {' '.join(params)}")
            return False, None
        # An unquoted value is rewritten with quotes so it can hold several tokens
        quote = match.group("quote") or '"'
        new_line = f"{match.group('prefix')}{quote}{' '.join(merged)}{quote}"
        start, end = match.span(0)
        new_content = original_content[:start] + new_line + original_content[end:]
        log_debug(f"Current params: \"{cmdline_value(match)}\"", host.debug)
    else:
        merged = merge_params([], params, replace_keys)
        separator = "" if not original_content or original_content.endswith("\n") else "\n"
        new_content = f"{original_content}{separator}{config.GRUB_CMDLINE_KEY}=\"{' '.join(merged)}\"\n"
        log_info(f"No {config.GRUB_CMDLINE_KEY} line in {grub_path}; adding one.")

    backup_path = host.backup(grub_path)
    host.write_text(grub_path, new_content)
    log_success(f"Updated {config.GRUB_CMDLINE_KEY} to: \"{' '.join(merged)}\"")
    return True, backup_path


def required_iommu_params(vendor: CpuVendor, passthrough_mode: bool = True) -> List[str]:
    params = [vendor.iommu_param]
    if passthrough_mode:
        params.append(config.IOMMU_PASSTHROUGH_PARAM)
    return params


def configure_iommu(host: HostSystem, vendor: CpuVendor, passthrough_mode: bool = True) -> StepResult:
    """Make sure the vendor IOMMU parameter is on the kernel command line."""
    log_info("Configuring IOMMU kernel parameters...")
    params = required_iommu_params(vendor, passthrough_mode)

    if vendor.iommu_param in get_kernel_cmdline(host):
        log_success(f"IOMMU is already active ({vendor.iommu_param} on the running kernel command line).")
        return StepResult("iommu", details={"params": params, "active": True})

    changed, backup_path = ensure_grub_params(host, params)
    return StepResult(
        "iommu",
        changed=changed,
        backup_paths=(backup_path,) if backup_path else (),
        details={"params": params, "active": False},
    )


def vfio_ids_param(candidate: GpuCandidate) -> str:
    return f"{config.VFIO_DRIVER}.ids={candidate.ids_string}"


def configure_vfio_cmdline(host: HostSystem, candidate: GpuCandidate) -> StepResult:
    """Reference the device IDs on the kernel command line as well as in modprobe.d."""
    log_info("Configuring vfio-pci device IDs on the kernel command line...")
    param = vfio_ids_param(candidate)
    changed, backup_path = ensure_grub_params(host, [param], replace_keys=(param_key(param),))
    return StepResult(
        "boot_integration",
        changed=changed,
        backup_paths=(backup_path,) if backup_path else (),
        details={"params": [param]},
    )
