"""
Tests for the end-to-end collect sessions use case.
"""

from datetime import datetime

import pytest

from usbtrail import collect_sessions
from usbtrail.application.collect_sessions import CollectSessionsUseCase
from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import ConfigurationError, NoEventsError
from usbtrail.core.models import UNSET
from usbtrail.infrastructure.identifiers import IdentifierResolver
from usbtrail.infrastructure.sources import discover_log_files
from usbtrail.infrastructure.whitelist import Whitelist
from usbtrail.parsers import KernelUSBClassifier


FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


def run(log_dir, options=None, **kwargs):
    use_case = CollectSessionsUseCase(
        options or CollectOptions(),
        classifier=KernelUSBClassifier(now=FIXED_NOW),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )
    return use_case, use_case.execute(discover_log_files(log_dir))


class TestCollectSessionsUseCase:
    """Tests for CollectSessionsUseCase."""

    def test_all_sessions(self, log_dir):
        """Both devices are found across the rotated and current log."""
        use_case, sessions = run(log_dir)

        assert [s.product_name for s in sessions] == ["Cruzer Blade", "USB Optical Mouse"]
        assert sessions[0].connected_at == datetime(2024, 1, 15, 10, 0, 0)
        assert use_case.stats["sessions_found"] == 2
        assert use_case.stats["events"] == 10

    def test_streaming_matches_batch(self, log_dir):
        """A single streaming worker keeps file order, so sessions match."""
        _, batch = run(log_dir)
        _, streamed = run(log_dir, CollectOptions(streaming=True, workers=1))

        assert [s.to_dict() for s in streamed] == [s.to_dict() for s in batch]

    def test_mass_storage_desc_limit(self, log_dir):
        """Test filtering, ordering and limit together."""
        _, sessions = run(log_dir, CollectOptions(sort_order="desc", limit=1))
        assert [s.product_name for s in sessions] == ["USB Optical Mouse"]

        _, sessions = run(log_dir, CollectOptions(mass_storage_only=True))
        assert [s.serial_number for s in sessions] == ["4C530001230308117292"]

    def test_whitelist(self, log_dir, whitelist_text):
        """The whitelisted flash drive is trusted and filtered out."""
        whitelist = Whitelist.parse(whitelist_text)
        options = CollectOptions(check_whitelist=True, untrusted_only=True)

        _, sessions = run(log_dir, options, whitelist=whitelist)

        assert [s.product_name for s in sessions] == ["USB Optical Mouse"]
        assert sessions[0].trusted is False

    def test_whitelist_required(self, log_dir):
        """Test whitelist checking without a whitelist fails up front."""
        with pytest.raises(ConfigurationError):
            run(log_dir, CollectOptions(check_whitelist=True))

    def test_resolver(self, log_dir, usb_ids_file):
        """Test names are taken from usb.ids."""
        resolver = IdentifierResolver(use_cache=False)
        resolver.load(usb_ids_file)

        _, sessions = run(log_dir, resolver=resolver)

        mouse = sessions[1]
        assert mouse.manufacturer_name == "Logitech, Inc."
        assert mouse.product_name == "M105 Optical Mouse"
        assert mouse.serial_number == UNSET

    def test_no_events(self, tmp_path):
        """Logs without USB lines raise only when events are required."""
        (tmp_path / "syslog").write_text("Jan 15 10:00:00 host1 cron[1]: nothing\n")

        _, sessions = run(tmp_path)
        assert sessions == []

        with pytest.raises(NoEventsError):
            run(tmp_path, CollectOptions(require_events=True))


class TestCollectSessionsFunction:
    """Tests for the collect_sessions convenience function."""

    def test_collect_sessions(self, log_dir, usb_ids_file, tmp_path, whitelist_text):
        """Test the one-call API with usb.ids and whitelist paths."""
        rules = tmp_path / "99-usb.rules"
        rules.write_text(whitelist_text)

        sessions = collect_sessions(
            log_dir,
            usb_ids=usb_ids_file,
            whitelist=rules,
            sort_order="desc",
        )

        assert [s.trusted for s in sessions] == [False, True]
        assert sessions[1].manufacturer_name == "SanDisk Corp."
