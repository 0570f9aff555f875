"""Command line interface for GPU passthrough configuration."""

import argparse
import sys
from typing import Callable, Iterator, List, Optional, Tuple

from . import config
from .bootloader import configure_iommu, configure_vfio_cmdline
from .checks import check_cpu_virtualization, detect_cpu_vendor, run_preflight
from .errors import InvalidReferenceError, PassthroughError, UserDeclined
from .initramfs import changes_pending, rebuild_boot_images
from .models import CpuVendor, GpuCandidate, StepResult
from .pci import locate_gpu
from .prompts import AutoDecisions, InteractiveDecisions
from .reporting import display_summary
from .state import changes_from_results, save_changes_log
from .system import HostSystem
from .utils import log_debug, log_error, log_info, log_warning, print_banner, print_header
from .vfio_mods import (
    configure_blacklist, configure_hard_block, configure_vfio_binding,
    configure_vfio_modules_load, unload_native_drivers
)
from .vm import attach_to_vm, list_vms


def run_step(decisions, title: str, question: str, name: str, func: Callable[..., StepResult], *args, **kwargs) -> StepResult:
    """Run one configuration step after the operator confirms it."""
    print_header(title)
    if not decisions.confirm(question):
        log_warning(f"{title} skipped by user choice.")
        return StepResult(name, skipped=True)
    return func(*args, **kwargs)


def gather(host: HostSystem, decisions, args) -> Tuple[CpuVendor, GpuCandidate]:
    """Detect everything the configuration needs before anything is written."""
    print_header("Preflight")
    run_preflight(host)

    print_header("Detection")
    vendor = detect_cpu_vendor(host)
    check_cpu_virtualization(host, vendor)
    candidate = locate_gpu(host, decisions, args.vendor_marker)
    return vendor, candidate


def configure_host(host: HostSystem, decisions, vendor: CpuVendor, candidate: GpuCandidate, args) -> Iterator[StepResult]:
    """Apply the IOMMU, driver binding and boot integration steps, yielding each result."""
    yield run_step(decisions, "IOMMU Configuration", "Enable IOMMU in the GRUB configuration?", "iommu",
                   configure_iommu, host, vendor, passthrough_mode=not args.no_iommu_pt)
    yield run_step(decisions, "vfio-pci Binding", f"Bind {candidate.ids_string} to {config.VFIO_DRIVER}?", "vfio_binding",
                   configure_vfio_binding, host, candidate, decisions, disable_vga=not args.no_disable_vga)
    yield run_step(decisions, "Driver Blacklist", "Blacklist the native GPU drivers?", "blacklist",
                   configure_blacklist, host)
    if not args.no_hard_block:
        yield run_step(decisions, "Driver Load Block", "Block the native GPU drivers from loading?",
                       "hard_block", configure_hard_block, host)
    yield run_step(decisions, "vfio Modules", f"Load the vfio modules at boot via {config.MODULES_FILE}?",
                   "vfio_modules", configure_vfio_modules_load, host)
    if not args.skip_unload:
        yield run_step(decisions, "Driver Unload", "Unload the native GPU drivers now?", "unload",
                       unload_native_drivers, host)
    yield run_step(decisions, "Boot Integration", "Add the vfio-pci device IDs to the kernel command line?",
                   "boot_integration", configure_vfio_cmdline, host, candidate)


def rebuild(host: HostSystem, decisions, results: List[StepResult], args) -> Optional[StepResult]:
    if args.skip_rebuild:
        if changes_pending(results):
            log_warning("Rebuild skipped (--skip-rebuild). Run 'update-initramfs -u -k all' and 'update-grub' manually.")
        return None
    print_header("Initramfs and GRUB Update")
    if changes_pending(results) and not decisions.confirm("Rebuild initramfs and GRUB configuration now?"):
        log_warning("Rebuild skipped by user choice. The changes will not take effect until it is done.")
        return StepResult("rebuild", skipped=True)
    return rebuild_boot_images(host, results, decisions, force=args.force_rebuild)


def attach(host: HostSystem, decisions, candidate: GpuCandidate, args) -> Optional[StepResult]:
    """Optionally assign the GPU to a VM; an unknown VM ID only skips this step."""
    vm_id = args.vm_id
    index = args.hostpci_index
    if vm_id is None:
        if not decisions.interactive:
            return None
        print_header("VM Assignment")
        if not decisions.confirm("Assign the GPU to a VM now?", default=False):
            return None
        for vmid, name in list_vms(host):
            log_info(f"  {vmid}: {name}")
        vm_id = decisions.ask("Enter the VM ID")
        index_answer = decisions.ask("Enter the hostpci slot index", str(index))
        try:
            index = int(index_answer)
        except ValueError:
            log_error(f"Invalid hostpci index '{index_answer}'. VM assignment skipped.")
            return None
    else:
        print_header("VM Assignment")

    try:
        return attach_to_vm(host, candidate, vm_id, index)
    except InvalidReferenceError as e:
        log_error(str(e))
        log_warning("VM assignment skipped.")
        return None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Configure a Proxmox/Debian host for GPU passthrough with vfio-pci.',
        epilog="Example: sudo gpu-passthrough --non-interactive --vm-id 100",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would change without writing files or running mutating commands. Implies --debug.')
    parser.add_argument('--debug', action='store_true',
                        help='Enable verbose debug output.')
    parser.add_argument('-y', '--non-interactive', action='store_true',
                        help='Assume "yes" to every prompt and pick the first GPU found.')
    parser.add_argument('--vendor-marker', default=config.DEFAULT_VENDOR_MARKER,
                        help=f'Text identifying the GPU in lspci output (default: {config.DEFAULT_VENDOR_MARKER}).')
    parser.add_argument('--vm-id', default=None,
                        help='Proxmox VM ID to assign the GPU to.')
    parser.add_argument('--hostpci-index', type=int, default=0,
                        help='hostpci slot index used for the VM assignment (default: 0).')
    parser.add_argument('--no-disable-vga', action='store_true',
                        help='Do not add disable_vga=1 to the vfio-pci options.')
    parser.add_argument('--no-hard-block', action='store_true',
                        help='Do not write the install override that blocks the native drivers.')
    parser.add_argument('--no-iommu-pt', action='store_true',
                        help='Do not add iommu=pt to the kernel parameters.')
    parser.add_argument('--skip-unload', action='store_true',
                        help='Do not unload loaded native driver modules.')
    parser.add_argument('--skip-rebuild', action='store_true',
                        help='Do not run update-initramfs and update-grub.')
    parser.add_argument('--force-rebuild', action='store_true',
                        help='Rebuild initramfs and GRUB even if nothing changed.')
    parser.add_argument('--changes-log', default=None,
                        help='Write a JSON log of the changes made to this path.')

    args = parser.parse_args(argv)

    if args.dry_run:
        args.debug = True
    if args.hostpci_index < 0:
        parser.error("--hostpci-index must not be negative")

    return args


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    host = HostSystem(dry_run=args.dry_run, debug=args.debug)
    decisions = AutoDecisions() if args.non_interactive else InteractiveDecisions()

    mode_str = "[DRY RUN MODE]" if args.dry_run else ""
    print_banner(f"GPU Passthrough Setup {mode_str}".strip())
    if args.debug:
        log_debug("Debug mode enabled", True)
    if args.dry_run:
        log_warning("Dry run mode active: No changes will be made to the system.")
    if args.non_interactive:
        log_warning("Non-interactive mode active: Assuming 'yes' to configuration prompts.")

    vendor: Optional[CpuVendor] = None
    candidate: Optional[GpuCandidate] = None
    results: List[StepResult] = []
    try:
        vendor, candidate = gather(host, decisions, args)

        if not decisions.confirm(f"Proceed with configuring {candidate.gpu.address} ({candidate.ids_string}) for passthrough?"):
            raise UserDeclined("Setup aborted by user.")

        for result in configure_host(host, decisions, vendor, candidate, args):
            results.append(result)
        rebuild_result = rebuild(host, decisions, results, args)
        if rebuild_result is not None:
            results.append(rebuild_result)
        vm_result = attach(host, decisions, candidate, args)
        if vm_result is not None:
            results.append(vm_result)
    except UserDeclined as e:
        log_info(str(e) or "Setup aborted by user.")
        log_info("No further changes were made.")
        return 0
    except (PassthroughError, OSError) as e:
        log_error(str(e))
        if results:
            log_warning("Changes made before the failure were left in place.")
        return 1
    finally:
        if args.changes_log and results and not args.dry_run:
            save_changes_log(args.changes_log, vendor, candidate, changes_from_results(results), args.debug)

    display_summary(vendor, candidate, results, args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
