"""
tests/test_checks.py -- Preflight checks and CPU vendor detection.

Preflight failures must happen before any file is touched, so every failing
case also asserts that the fake host recorded no writes.
"""

import pytest

from conftest import CPUINFO_AMD, CPUINFO_INTEL, make_host
from passthrough_configurator import checks
from passthrough_configurator.errors import DetectionError, PreconditionError
from passthrough_configurator.models import CpuVendor


class TestPreflight:
    def test_passes_as_root_with_tools(self, host):
        checks.run_preflight(host)

    def test_non_root_fails(self):
        host = make_host(root=False)
        with pytest.raises(PreconditionError, match="root"):
            checks.run_preflight(host)
        assert host.writes == []

    def test_missing_tools_are_all_listed(self):
        host = make_host(available=["grep", "sed", "awk", "lsmod"])
        with pytest.raises(PreconditionError) as excinfo:
            checks.run_preflight(host)
        assert "lspci" in str(excinfo.value)
        assert "modprobe" in str(excinfo.value)
        assert host.writes == []

    def test_only_invoked_tools_are_required(self):
        host = make_host(available=["lspci", "lsmod", "modprobe"])
        checks.run_preflight(host)

    def test_missing_rebuild_tools_only_warn(self):
        host = make_host(available=["lspci", "lsmod", "modprobe", "grep", "sed", "awk"])
        checks.run_preflight(host)
        assert checks.check_rebuild_tools(host) is False


class TestCpuVendor:
    def test_detects_intel(self):
        assert checks.detect_cpu_vendor(make_host(cpuinfo=CPUINFO_INTEL)) is CpuVendor.INTEL

    def test_detects_amd(self):
        assert checks.detect_cpu_vendor(make_host(cpuinfo=CPUINFO_AMD)) is CpuVendor.AMD

    def test_uses_first_vendor_id(self):
        cpuinfo = CPUINFO_AMD + "\nprocessor\t: 1\nvendor_id\t: GenuineIntel\n"
        assert checks.detect_cpu_vendor(make_host(cpuinfo=cpuinfo)) is CpuVendor.AMD

    def test_unsupported_vendor_is_fatal(self):
        host = make_host(cpuinfo="processor\t: 0\nvendor_id\t: CentaurHauls\n")
        with pytest.raises(DetectionError, match="CentaurHauls"):
            checks.detect_cpu_vendor(host)
        assert host.writes == []

    def test_missing_vendor_line_is_fatal(self):
        with pytest.raises(DetectionError):
            checks.detect_cpu_vendor(make_host(cpuinfo="processor\t: 0\n"))

    def test_virtualization_flag(self):
        assert checks.check_cpu_virtualization(make_host(cpuinfo=CPUINFO_INTEL), CpuVendor.INTEL) is True
        assert checks.check_cpu_virtualization(make_host(cpuinfo=CPUINFO_INTEL), CpuVendor.AMD) is False


class TestKernelCmdline:
    def test_tokens(self, host):
        tokens = checks.get_kernel_cmdline(host)
        assert "quiet" in tokens
        assert "ro" in tokens

    def test_unreadable_cmdline_is_empty(self):
        host = make_host()
        del host.files["/proc/cmdline"]
        assert checks.get_kernel_cmdline(host) == []
