"""Access to the host: files, commands and privileges."""

import os
import shutil
from pathlib import Path
from typing import Dict, Optional, Set, Union

from .errors import PreconditionError
from .utils import log_debug, log_info, run_command

PathLike = Union[str, Path]


class HostSystem:
    """Every read and write this tool performs against the host goes through here.

    In dry-run mode reads still hit the real system, while writes, backups
    and mutating commands are only logged.
    """

    def __init__(self, dry_run: bool = False, debug: bool = False):
        self.dry_run = dry_run
        self.debug = debug
        self._backups: Dict[str, str] = {}

    # Files

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def read_text(self, path: PathLike) -> str:
        try:
            return Path(path).read_text()
        except UnicodeDecodeError as e:
            raise PreconditionError(f"{path} is not a readable text file: {e}") from e

    def write_text(self, path: PathLike, content: str) -> None:
        if self.dry_run:
            log_info(f"[DRY RUN] Would write {path}")
            log_debug(f"[DRY RUN] Content:\n{content}", self.debug)
            return
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        log_debug(f"Wrote {target}", self.debug)

    def append_text(self, path: PathLike, content: str) -> None:
        if self.dry_run:
            log_info(f"[DRY RUN] Would append to {path}: {content.rstrip()}")
            return
        with open(path, "a") as f:
            f.write(content)
        log_debug(f"Appended to {path}", self.debug)

    def backup(self, path: PathLike) -> Optional[str]:
        """Copy a file to `<path>.bak` before it is modified.

        Only the first backup of a run is kept, so a file edited twice
        still has its original content in the backup.

        Returns:
            Path to the backup file or None if there was nothing to back up
        """
        source = Path(path)
        if not source.exists():
            log_debug(f"File {source} does not exist, no backup needed", self.debug)
            return None
        if str(source) in self._backups:
            return self._backups[str(source)]
        backup_path = f"{source}.bak"
        self._backups[str(source)] = backup_path
        if self.dry_run:
            log_info(f"[DRY RUN] Would back up {source} to {backup_path}")
            return backup_path
        shutil.copy2(source, backup_path)  # copy2 preserves metadata
        log_info(f"Created backup of {source} at {backup_path}")
        return backup_path

    # Commands

    def which(self, command: str) -> Optional[str]:
        return shutil.which(command)

    def run(self, command: str, mutating: bool = False, quiet: bool = False) -> Optional[str]:
        """Run a shell command, returning its output or None on failure."""
        if mutating and self.dry_run:
            log_info(f"[DRY RUN] Would run: {command}")
            return ""
        return run_command(command, debug=self.debug, quiet=quiet)

    def is_root(self) -> bool:
        return os.geteuid() == 0

    def loaded_modules(self) -> Set[str]:
        """Names of the kernel modules currently loaded, from lsmod."""
        output = self.run("lsmod")
        if output is None:
            return set()
        modules = set()
        for line in output.splitlines()[1:]:  # Skip header
            parts = line.split()
            if parts:
                modules.add(parts[0])
        return modules
