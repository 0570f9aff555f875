"""
tests/test_models.py -- Unit tests for the records passed between steps.
"""

import pytest

from passthrough_configurator.errors import DetectionError
from passthrough_configurator.models import CpuVendor, GpuCandidate, PciDevice, StepResult, VmAssignment

GPU = PciDevice("09:00.0", "VGA compatible controller", "0300", "10de", "2208", "NVIDIA Corporation GA102")
AUDIO = PciDevice("09:00.1", "Audio device", "0403", "10de", "1aef", "NVIDIA Corporation GA102 HD Audio")


class TestCpuVendor:
    def test_intel_vendor_id_maps_to_intel_iommu(self):
        vendor = CpuVendor.from_vendor_id("GenuineIntel")
        assert vendor is CpuVendor.INTEL
        assert vendor.iommu_param == "intel_iommu=on"

    def test_amd_vendor_id_maps_to_amd_iommu(self):
        vendor = CpuVendor.from_vendor_id("AuthenticAMD")
        assert vendor is CpuVendor.AMD
        assert vendor.iommu_param == "amd_iommu=on"

    def test_other_vendor_ids_are_unknown(self):
        assert CpuVendor.from_vendor_id("HygonGenuine") is CpuVendor.UNKNOWN
        assert CpuVendor.from_vendor_id("") is CpuVendor.UNKNOWN

    def test_unknown_vendor_has_no_iommu_param(self):
        with pytest.raises(DetectionError):
            CpuVendor.UNKNOWN.iommu_param


class TestPciDevice:
    def test_ids_and_slot(self):
        assert GPU.ids == "10de:2208"
        assert GPU.slot == "09:00"
        assert GPU.function == "0"

    def test_slot_with_pci_domain(self):
        device = PciDevice("0000:65:00.1", "Audio device", "0403", "10de", "10f0", "NVIDIA Corporation")
        assert device.slot == "0000:65:00"


class TestGpuCandidate:
    def test_device_ids_list_gpu_first(self):
        candidate = GpuCandidate(gpu=GPU, audio=AUDIO)
        assert candidate.device_ids == ["10de:2208", "10de:1aef"]
        assert candidate.ids_string == "10de:2208,10de:1aef"

    def test_gpu_only(self):
        assert GpuCandidate(gpu=GPU).ids_string == "10de:2208"

    def test_audio_on_another_slot_is_rejected(self):
        other = PciDevice("09:01.1", "Audio device", "0403", "10de", "9999", "NVIDIA Corporation")
        with pytest.raises(ValueError):
            GpuCandidate(gpu=GPU, audio=other)


class TestVmAssignment:
    def test_line_with_audio(self):
        assignment = VmAssignment("100", 0, "09:00.0", "09:00.1")
        assert assignment.config_line == "hostpci0: 09:00.0,pcie=1,multifunction=on;09:00.1"

    def test_line_without_audio(self):
        assert VmAssignment("100", 2, "09:00.0").config_line == "hostpci2: 09:00.0,pcie=1"


class TestStepResult:
    def test_status_labels(self):
        assert StepResult("x").status == "unchanged"
        assert StepResult("x", changed=True).status == "changed"
        assert StepResult("x", skipped=True).status == "skipped"
