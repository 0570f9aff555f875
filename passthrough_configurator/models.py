"""Records passed between the configuration steps."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import DetectionError


class CpuVendor(Enum):
    """Host processor manufacturer."""

    INTEL = "GenuineIntel"
    AMD = "AuthenticAMD"
    UNKNOWN = "Unknown"

    @classmethod
    def from_vendor_id(cls, vendor_id: str) -> "CpuVendor":
        """Map a /proc/cpuinfo vendor_id value to a vendor."""
        for vendor in cls:
            if vendor.value == vendor_id.strip():
                return vendor
        return cls.UNKNOWN

    @property
    def iommu_param(self) -> str:
        """Kernel parameter that turns the IOMMU on for this vendor."""
        if self is CpuVendor.INTEL:
            return "intel_iommu=on"
        if self is CpuVendor.AMD:
            return "amd_iommu=on"
        raise DetectionError(f"Unsupported CPU vendor: {self.value}")

    @property
    def virtualization_flag(self) -> Optional[str]:
        """CPU flag advertising hardware virtualization support."""
        return {CpuVendor.INTEL: "vmx", CpuVendor.AMD: "svm"}.get(self)


@dataclass(frozen=True)
class PciDevice:
    """One PCI function as reported by `lspci -nn`."""

    address: str  # e.g., "09:00.0"
    class_name: str  # e.g., "VGA compatible controller"
    class_code: str  # e.g., "0300"
    vendor_id: str  # e.g., "10de"
    device_id: str  # e.g., "2208"
    description: str

    @property
    def ids(self) -> str:
        """Vendor:device ID pair used for driver binding."""
        return f"{self.vendor_id}:{self.device_id}"

    @property
    def slot(self) -> str:
        """Bus and slot, without the function suffix."""
        return self.address.rsplit(".", 1)[0]

    @property
    def function(self) -> str:
        return self.address.rsplit(".", 1)[1]


@dataclass(frozen=True)
class GpuCandidate:
    """The GPU selected for passthrough and its optional audio function."""

    gpu: PciDevice
    audio: Optional[PciDevice] = None

    def __post_init__(self) -> None:
        if self.audio is not None and self.audio.slot != self.gpu.slot:
            raise ValueError(
                f"Audio device {self.audio.address} is not on the same slot as {self.gpu.address}"
            )

    @property
    def device_ids(self) -> List[str]:
        ids = [self.gpu.ids]
        if self.audio is not None:
            ids.append(self.audio.ids)
        return ids

    @property
    def ids_string(self) -> str:
        return ",".join(self.device_ids)


@dataclass(frozen=True)
class VmAssignment:
    """A hostpci line granting a Proxmox VM the GPU."""

    vm_id: str
    index: int
    gpu_address: str
    audio_address: Optional[str] = None

    @property
    def config_line(self) -> str:
        value = f"{self.gpu_address},pcie=1"
        if self.audio_address:
            value += f",multifunction=on;{self.audio_address}"
        return f"hostpci{self.index}: {value}"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single configuration step."""

    name: str
    changed: bool = False
    skipped: bool = False
    backup_paths: Tuple[str, ...] = ()
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "changed" if self.changed else "unchanged"
