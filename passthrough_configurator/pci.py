"""PCI device enumeration and GPU selection."""

import re
from typing import List, Optional

from . import config
from .errors import DetectionError, PreconditionError, UserDeclined
from .models import GpuCandidate, PciDevice
from .system import HostSystem
from .utils import log_debug, log_info, log_success, log_warning

# Example: "09:00.0 VGA compatible controller [0300]: NVIDIA Corporation GA102 [GeForce RTX 3090] [10de:2204] (rev a1)"
LSPCI_LINE = re.compile(
    r"^(?P<address>(?:[0-9a-fA-F]{4}:)?[0-9a-fA-F]{2}:[0-9a-fA-F]{2}\.[0-7])\s+"
    r"(?P<class_name>.+?)\s+\[(?P<class_code>[0-9a-fA-F]{4})\]:\s+"
    r"(?P<description>.*)\[(?P<vendor_id>[0-9a-fA-F]{4}):(?P<device_id>[0-9a-fA-F]{4})\]"
)


def parse_lspci_line(line: str) -> Optional[PciDevice]:
    """Parse one line of `lspci -nn` output, or return None if it does not match."""
    match = LSPCI_LINE.match(line.strip())
    if not match:
        return None
    return PciDevice(
        address=match.group("address"),
        class_name=match.group("class_name").strip(),
        class_code=match.group("class_code").lower(),
        vendor_id=match.group("vendor_id").lower(),
        device_id=match.group("device_id").lower(),
        description=match.group("description").strip(),
    )


def parse_lspci_output(output: str) -> List[PciDevice]:
    devices = []
    for line in output.splitlines():
        device = parse_lspci_line(line)
        if device is not None:
            devices.append(device)
    return devices


def list_pci_devices(host: HostSystem) -> List[PciDevice]:
    """Enumerate PCI devices with numeric IDs."""
    log_info("Gathering PCI device information...")
    output = host.run("lspci -nn")
    if output is None:
        raise PreconditionError("Failed to run 'lspci -nn'. Is pciutils installed?")
    devices = parse_lspci_output(output)
    log_debug(f"Parsed {len(devices)} PCI devices.", host.debug)
    return devices


def is_display_controller(device: PciDevice) -> bool:
    return any(marker in device.class_name for marker in config.GPU_CLASS_MARKERS)


def find_gpus(devices: List[PciDevice], vendor_marker: str = config.DEFAULT_VENDOR_MARKER) -> List[PciDevice]:
    """Display-class devices whose description names the vendor."""
    marker = vendor_marker.lower()
    gpus = [
        device for device in devices
        if is_display_controller(device) and marker in device.description.lower()
    ]
    if not gpus:
        raise DetectionError(f"No {vendor_marker} GPU found.")
    return gpus


def find_audio_companion(devices: List[PciDevice], gpu: PciDevice) -> Optional[PciDevice]:
    """Find the audio function sharing the GPU's bus and slot."""
    prefix = f"{gpu.slot}."
    for device in devices:
        if device.address == gpu.address:
            continue
        is_audio = config.AUDIO_MARKER in device.class_name or config.AUDIO_MARKER in device.description
        if is_audio and device.address.startswith(prefix):
            return device
    return None


def describe(device: PciDevice) -> str:
    return f"{device.address} {device.class_name}: {device.description} [{device.ids}]"


def select_gpu(gpus: List[PciDevice], decisions) -> PciDevice:
    """Pick the passthrough GPU; the non-interactive provider takes the first."""
    log_info(f"Found {len(gpus)} GPU(s):")
    for gpu in gpus:
        log_info(f"  {describe(gpu)}")

    index = decisions.choose("Select the GPU to pass through:", [describe(gpu) for gpu in gpus])
    if index is None:
        raise UserDeclined("No GPU selected for passthrough.")
    return gpus[index]


def locate_gpu(host: HostSystem, decisions, vendor_marker: str = config.DEFAULT_VENDOR_MARKER) -> GpuCandidate:
    """Find the passthrough GPU and its companion audio function."""
    devices = list_pci_devices(host)
    gpu = select_gpu(find_gpus(devices, vendor_marker), decisions)
    audio = find_audio_companion(devices, gpu)

    candidate = GpuCandidate(gpu=gpu, audio=audio)
    if audio is None:
        log_warning(f"No audio function found on slot {gpu.slot}; binding the GPU only.")
    else:
        log_info(f"Found companion audio device: {describe(audio)}")
    log_success(f"Selected GPU: {gpu.address} with ID(s): {candidate.ids_string}")
    return candidate
