"""
tests/conftest.py -- Shared fixtures for the passthrough configurator tests.

FakeHost replaces HostSystem with an in-memory filesystem and canned command
output, so every step can run without root, lspci or a real /etc. Files are
keyed by their absolute path string; commands are looked up by the exact
command line the code runs.
"""

from typing import Dict, Iterable, List, Optional

import pytest

from passthrough_configurator import config
from passthrough_configurator.system import HostSystem

LSPCI_OUTPUT = """\
00:00.0 Host bridge [0600]: Advanced Micro Devices, Inc. [AMD] Starship/Matisse Root Complex [1022:1480]
00:01.1 PCI bridge [0604]: Advanced Micro Devices, Inc. [AMD] Starship/Matisse GPP Bridge [1022:1483]
09:00.0 VGA compatible controller [0300]: NVIDIA Corporation GA102 [GeForce RTX 3080 Ti] [10de:2208] (rev a1)
09:00.1 Audio device [0403]: NVIDIA Corporation GA102 High Definition Audio Controller [10de:1aef] (rev a1)
0b:00.0 Non-Essential Instrumentation [1300]: Advanced Micro Devices, Inc. [AMD] Starship/Matisse Reserved SPP [1022:1485]
0b:00.4 Audio device [0403]: Advanced Micro Devices, Inc. [AMD] Starship/Matisse HD Audio Controller [1022:1487]
"""

CPUINFO_INTEL = """\
processor\t: 0
vendor_id\t: GenuineIntel
cpu family\t: 6
model name\t: Intel(R) Core(TM) i7-9700K CPU @ 3.60GHz
flags\t\t: fpu vme de pse tsc msr pae mce cx8 apic sep mtrr vmx ept vpid
"""

CPUINFO_AMD = """\
processor\t: 0
vendor_id\t: AuthenticAMD
cpu family\t: 23
model name\t: AMD Ryzen 9 3900X 12-Core Processor
flags\t\t: fpu vme de pse tsc msr pae mce cx8 apic sep mtrr svm npt
"""

GRUB_DEFAULT = """\
# If you change this file, run 'update-grub' afterwards to update
# /boot/grub/grub.cfg.

GRUB_DEFAULT=0
GRUB_TIMEOUT=5
GRUB_DISTRIBUTOR=`lsb_release -i -s 2> /dev/null || echo Debian`
GRUB_CMDLINE_LINUX_DEFAULT="quiet"
GRUB_CMDLINE_LINUX=""
"""

PROC_CMDLINE = "BOOT_IMAGE=/boot/vmlinuz-6.8.12-4-pve root=/dev/mapper/pve-root ro quiet\n"

LSMOD_HEADER = "Module                  Size  Used by\n"


class FakeHost(HostSystem):
    """In-memory stand-in for HostSystem."""

    def __init__(self, files: Optional[Dict[str, str]] = None, commands: Optional[Dict[str, Optional[str]]] = None,
                 root: bool = True, available: Optional[Iterable[str]] = None, dry_run: bool = False):
        super().__init__(dry_run=dry_run, debug=False)
        self.files: Dict[str, str] = dict(files or {})
        self.commands: Dict[str, Optional[str]] = dict(commands or {})
        self.root = root
        if available is None:
            available = list(config.REQUIRED_COMMANDS) + [cmd.split()[0] for cmd in config.REBUILD_COMMANDS]
        self.available = set(available)
        self.executed: List[str] = []
        self.writes: List[str] = []

    def exists(self, path) -> bool:
        return str(path) in self.files

    def read_text(self, path) -> str:
        try:
            return self.files[str(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def write_text(self, path, content: str) -> None:
        if self.dry_run:
            return
        self.files[str(path)] = content
        self.writes.append(str(path))

    def append_text(self, path, content: str) -> None:
        if self.dry_run:
            return
        self.files[str(path)] = self.files.get(str(path), "") + content
        self.writes.append(str(path))

    def backup(self, path) -> Optional[str]:
        key = str(path)
        if key not in self.files:
            return None
        if key in self._backups:
            return self._backups[key]
        backup_path = f"{key}.bak"
        self._backups[key] = backup_path
        if not self.dry_run:
            self.files[backup_path] = self.files[key]
            self.writes.append(backup_path)
        return backup_path

    def which(self, command: str) -> Optional[str]:
        return f"/usr/bin/{command}" if command in self.available else None

    def run(self, command: str, mutating: bool = False, quiet: bool = False) -> Optional[str]:
        self.executed.append(command)
        if mutating and self.dry_run:
            return ""
        return self.commands.get(command, "")

    def is_root(self) -> bool:
        return self.root


def make_host(cpuinfo: str = CPUINFO_INTEL, lspci: str = LSPCI_OUTPUT, cmdline: str = PROC_CMDLINE,
              grub: Optional[str] = GRUB_DEFAULT, lsmod: str = LSMOD_HEADER, **kwargs) -> FakeHost:
    """Build a FakeHost resembling a fresh Proxmox install with an NVIDIA GPU."""
    files = {
        str(config.PROC_CPUINFO): cpuinfo,
        str(config.PROC_CMDLINE): cmdline,
    }
    if grub is not None:
        files[str(config.GRUB_DEFAULT)] = grub
    files.update(kwargs.pop("files", {}))
    commands = {
        "lspci -nn": lspci,
        "lsmod": lsmod,
        "uname -r": "6.8.12-4-pve",
    }
    commands.update(kwargs.pop("commands", {}))
    return FakeHost(files=files, commands=commands, **kwargs)


@pytest.fixture
def host() -> FakeHost:
    return make_host()


class DecliningDecisions:
    """Interactive-style provider that says no to everything."""

    interactive = True

    def confirm(self, question: str, default: bool = True) -> bool:
        return False

    def choose(self, question: str, options):
        return None

    def ask(self, question: str, default: str = "") -> str:
        return default
