"""Configuration and constants for the passthrough configurator."""

from pathlib import Path

# Kernel interfaces
PROC_CPUINFO: Path = Path("/proc/cpuinfo")
PROC_CMDLINE: Path = Path("/proc/cmdline")

# Bootloader
GRUB_DEFAULT: Path = Path("/etc/default/grub")
GRUB_CMDLINE_KEY: str = "GRUB_CMDLINE_LINUX_DEFAULT"
IOMMU_PASSTHROUGH_PARAM: str = "iommu=pt"

# Module policy
MODPROBE_DIR: Path = Path("/etc/modprobe.d")
VFIO_CONF: Path = MODPROBE_DIR / "vfio.conf"
BLACKLIST_CONF: Path = MODPROBE_DIR / "blacklist-nvidia.conf"
BLOCK_CONF: Path = MODPROBE_DIR / "nvidia-block.conf"
MODULES_FILE: Path = Path("/etc/modules")

# Proxmox VM configuration
QEMU_SERVER_DIR: Path = Path("/etc/pve/qemu-server")

# Pass-through driver
VFIO_DRIVER: str = "vfio-pci"
VFIO_MODULES: list[str] = ["vfio", "vfio_iommu_type1", "vfio_pci"]
# Merged into the vfio module as of 6.2
VFIO_VIRQFD_MODULE: str = "vfio_virqfd"

# Native driver family
DEFAULT_VENDOR_MARKER: str = "NVIDIA"
GPU_CLASS_MARKERS: tuple[str, ...] = ("VGA", "3D")
AUDIO_MARKER: str = "Audio"
BLACKLISTED_MODULES: list[str] = [
    "nouveau",
    "nvidia",
    "nvidia_drm",
    "nvidia_modeset",
    "nvidia_uvm",
    "nvidiafb",
]
HARD_BLOCKED_MODULES: list[str] = ["nvidia", "nouveau"]
# Dependents first so modprobe -r does not trip over users of nvidia
UNLOAD_ORDER: list[str] = [
    "nvidia_drm",
    "nvidia_modeset",
    "nvidia_uvm",
    "nvidia",
    "nouveau",
    "nvidiafb",
]

# Preflight
REQUIRED_COMMANDS: list[str] = ["lspci", "lsmod", "modprobe"]
REBUILD_COMMANDS: list[str] = ["update-initramfs -u -k all", "update-grub"]
VM_LIST_COMMAND: str = "qm list"
