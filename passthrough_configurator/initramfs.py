"""Regenerating the initramfs and GRUB configuration after changes."""

from typing import Iterable

from . import config
from .errors import RebuildError
from .models import StepResult
from .system import HostSystem
from .utils import log_info, log_success, log_warning


def changes_pending(results: Iterable[StepResult]) -> bool:
    return any(result.changed for result in results)


def rebuild_boot_images(host: HostSystem, results: Iterable[StepResult], decisions, force: bool = False) -> StepResult:
    """
    Run the initramfs and bootloader rebuild commands if anything changed.

    When nothing changed the rebuild is skipped, except when forced or
    when an interactive operator asks for it anyway.

    Returns:
        StepResult with changed=True when the rebuild ran
    """
    results = list(results)
    changed_steps = [result.name for result in results if result.changed]

    if changed_steps:
        log_info(f"Changes made by: {', '.join(changed_steps)}")
    elif force:
        log_info("No configuration changes, but a rebuild was requested.")
    elif decisions.interactive and decisions.confirm(
            "No configuration changes were made. Rebuild initramfs and GRUB anyway?", default=False):
        log_info("Rebuilding on request.")
    else:
        log_info("No configuration changes; skipping initramfs and GRUB rebuild.")
        return StepResult("rebuild", skipped=True)

    for command in config.REBUILD_COMMANDS:
        log_info(f"Running: {command}")
        if host.run(command, mutating=True) is None:
            raise RebuildError(f"'{command}' failed. The new configuration will not take effect until it succeeds.")
        log_success(f"'{command}' completed.")

    log_warning("A system REBOOT is required for the changes to take effect.")
    return StepResult("rebuild", changed=True, details={"commands": list(config.REBUILD_COMMANDS)})
