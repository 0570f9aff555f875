"""Reporting functionality for the passthrough configuration run."""

from typing import Iterable, Optional

from .models import CpuVendor, GpuCandidate, StepResult
from .utils import Colors

STEP_LABELS = {
    "iommu": "IOMMU kernel parameters",
    "vfio_binding": "vfio-pci device binding",
    "blacklist": "Native driver blacklist",
    "hard_block": "Native driver load block",
    "vfio_modules": "vfio modules at boot",
    "unload": "Native driver unload",
    "boot_integration": "vfio-pci IDs on kernel command line",
    "rebuild": "initramfs / GRUB rebuild",
    "vm_attach": "VM assignment",
}


def print_status(label: str, status: Optional[bool], message: str) -> None:
    if status is True:
        print(f"  {Colors.GREEN}✓{Colors.ENDC} {label}: {message}")
    elif status is False:
        print(f"  {Colors.RED}✗{Colors.ENDC} {label}: {message}")
    else:
        print(f"  {Colors.YELLOW}?{Colors.ENDC} {label}: {message}")


def describe_result(result: StepResult) -> str:
    if result.name == "unload":
        unloaded = result.details.get("unloaded", [])
        failed = result.details.get("failed", [])
        parts = []
        if unloaded:
            parts.append(f"unloaded {', '.join(unloaded)}")
        if failed:
            parts.append(f"still loaded {', '.join(failed)}")
        return "; ".join(parts) or "nothing loaded"
    if result.name == "vm_attach":
        return f"VM {result.details.get('vm_id')}: {result.details.get('line')}"
    if result.name == "blacklist" and result.details.get("action") == "exists":
        return "existing file left untouched, please review it"
    return result.status


def display_summary(vendor: Optional[CpuVendor], candidate: Optional[GpuCandidate],
                    results: Iterable[StepResult], dry_run: bool = False) -> None:
    """Display a formatted summary of what the run did."""
    results = list(results)
    title = "GPU Passthrough - Summary" + (" [DRY RUN]" if dry_run else "")
    print(f"\n{Colors.BOLD}{'=' * 80}{Colors.ENDC}")
    print(f"{Colors.BOLD}{title:^80}{Colors.ENDC}")
    print(f"{Colors.BOLD}{'=' * 80}{Colors.ENDC}")

    print(f"{Colors.BOLD}Host:{Colors.ENDC}")
    if vendor is not None:
        print_status("CPU vendor", True, f"{vendor.value} ({vendor.iommu_param})")
    if candidate is not None:
        print_status("GPU", True, f"{candidate.gpu.address} {candidate.gpu.description} [{candidate.gpu.ids}]")
        if candidate.audio is not None:
            print_status("Audio", True, f"{candidate.audio.address} {candidate.audio.description} [{candidate.audio.ids}]")
        else:
            print_status("Audio", None, "no companion audio function found")
        print_status("Device IDs", True, candidate.ids_string)

    print(f"\n{Colors.BOLD}Steps:{Colors.ENDC}")
    for result in results:
        label = STEP_LABELS.get(result.name, result.name)
        if result.skipped:
            status: Optional[bool] = None
        elif result.name == "unload":
            status = not result.details.get("failed")
        else:
            status = True
        print_status(label, status, describe_result(result))

    rebuilt = any(result.name == "rebuild" and result.changed for result in results)
    pending = any(result.changed for result in results if result.name != "rebuild")
    print()
    if rebuilt:
        print(f"{Colors.YELLOW}{Colors.BOLD}A system REBOOT is required for changes to take effect.{Colors.ENDC}")
    elif pending:
        print(f"{Colors.YELLOW}{Colors.BOLD}Configuration changed but boot images were not rebuilt. "
              f"Run 'update-initramfs -u -k all && update-grub' before rebooting.{Colors.ENDC}")
    else:
        print(f"{Colors.GREEN}{Colors.BOLD}No configuration changes were needed.{Colors.ENDC}")
