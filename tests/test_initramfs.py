"""
tests/test_initramfs.py -- Boot image rebuild after configuration changes.
"""

import pytest

from conftest import DecliningDecisions, make_host
from passthrough_configurator import config
from passthrough_configurator.errors import RebuildError
from passthrough_configurator.initramfs import changes_pending, rebuild_boot_images
from passthrough_configurator.models import StepResult
from passthrough_configurator.prompts import AutoDecisions

CHANGED = [StepResult("iommu", changed=True), StepResult("blacklist")]
UNCHANGED = [StepResult("iommu"), StepResult("blacklist", skipped=True)]


class AcceptingInteractive:
    interactive = True

    def confirm(self, question, default=True):
        return True


class TestRebuild:
    def test_changes_pending(self):
        assert changes_pending(CHANGED)
        assert not changes_pending(UNCHANGED)

    def test_runs_both_commands_in_order(self, host):
        result = rebuild_boot_images(host, CHANGED, AutoDecisions())
        assert result.changed
        assert host.executed == config.REBUILD_COMMANDS

    def test_skipped_when_nothing_changed(self, host):
        result = rebuild_boot_images(host, UNCHANGED, AutoDecisions())
        assert result.skipped
        assert host.executed == []

    def test_forced_without_changes(self, host):
        result = rebuild_boot_images(host, UNCHANGED, AutoDecisions(), force=True)
        assert result.changed
        assert host.executed == config.REBUILD_COMMANDS

    def test_interactive_operator_can_request_rebuild(self, host):
        result = rebuild_boot_images(host, UNCHANGED, AcceptingInteractive())
        assert result.changed

    def test_interactive_operator_can_decline_rebuild(self, host):
        result = rebuild_boot_images(host, UNCHANGED, DecliningDecisions())
        assert result.skipped
        assert host.executed == []

    def test_failure_is_fatal(self):
        host = make_host(commands={"update-initramfs -u -k all": None})
        with pytest.raises(RebuildError, match="update-initramfs"):
            rebuild_boot_images(host, CHANGED, AutoDecisions())
        assert "update-grub" not in host.executed

    def test_dry_run_reports_without_failing(self):
        host = make_host(commands={"update-initramfs -u -k all": None}, dry_run=True)
        result = rebuild_boot_images(host, CHANGED, AutoDecisions())
        assert result.changed
