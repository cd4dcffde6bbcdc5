"""
Tests for the session pipeline and its steps.
"""

import pytest
from datetime import datetime

from usbtrail.core.config import CollectOptions
from usbtrail.core.exceptions import ConfigurationError
from usbtrail.core.models import UNSET, SortOrder
from usbtrail.infrastructure.filtering import (
    Deduplicate,
    IdentifierEnricher,
    LimitSessions,
    MassStorageFilter,
    SessionPipeline,
    SortSessions,
    UntrustedFilter,
    WhitelistMarker,
)
from usbtrail.infrastructure.identifiers import IdentifierDatabase, IdentifierResolver
from usbtrail.infrastructure.whitelist import Whitelist, WhitelistEntry

from conftest import make_session


T1 = datetime(2024, 1, 15, 10, 0, 0)
T2 = datetime(2024, 1, 15, 11, 0, 0)
T3 = datetime(2024, 1, 15, 12, 0, 0)


def trusting(*serials: str) -> Whitelist:
    return Whitelist({s: WhitelistEntry(serial=s, is_ignored=False, comment="") for s in serials})


class TestDeduplicate:
    """Tests for Deduplicate."""

    def test_keeps_first_per_timestamp(self):
        """Sessions sharing a connection time collapse to the first one."""
        first = make_session(T1, serial="A")
        sessions = [first, make_session(T2), make_session(T1, serial="B")]

        result = Deduplicate().apply(sessions)

        assert len(result) == 2
        assert result[0] is first

    def test_idempotent(self):
        """Deduplicating twice changes nothing."""
        sessions = [make_session(t) for t in (T1, T2, T1, T3, T2, T1)]
        step = Deduplicate()

        once = step.apply(sessions)
        twice = step.apply(once)

        assert twice == once
        assert [s.connected_at for s in once] == [T1, T2, T3]

    def test_empty(self):
        """Test empty input."""
        assert Deduplicate().apply([]) == []


class TestFilters:
    """Tests for the mass storage, whitelist and untrusted steps."""

    def test_mass_storage_filter(self):
        """Test only mass storage devices are kept."""
        sessions = [make_session(T1, is_mass_storage=True), make_session(T2)]
        result = MassStorageFilter().apply(sessions)
        assert [s.connected_at for s in result] == [T1]

    def test_whitelist_marker(self):
        """Test whitelisted serials are marked trusted."""
        sessions = [make_session(T1, serial="GOOD"), make_session(T2, serial="BAD")]

        result = WhitelistMarker(trusting("GOOD")).apply(sessions)

        assert result[0].trusted is True
        assert result[1].trusted is False

    def test_untrusted_filter(self):
        """Test trusted sessions are dropped."""
        sessions = [make_session(T1, trusted=True), make_session(T2)]
        result = UntrustedFilter().apply(sessions)
        assert [s.connected_at for s in result] == [T2]


class TestIdentifierEnricher:
    """Tests for IdentifierEnricher."""

    @pytest.fixture
    def resolver(self, usb_ids_text):
        return IdentifierResolver(IdentifierDatabase.parse(usb_ids_text.splitlines()))

    def test_known_device(self, resolver):
        """Test names are replaced from the database."""
        session = make_session(T1, vendor_id="0781", product_id="5567")

        IdentifierEnricher(resolver).apply([session])

        assert session.manufacturer_name == "SanDisk Corp."
        assert session.product_name == "Cruzer Blade"

    def test_unknown_product_keeps_logged_name(self, resolver):
        """Only the names the database knows are replaced."""
        session = make_session(T1, vendor_id="0781", product_id="ffff",
                               product_name="Logged Name")

        IdentifierEnricher(resolver).apply([session])

        assert session.manufacturer_name == "SanDisk Corp."
        assert session.product_name == "Logged Name"

    def test_unknown_vendor(self, resolver):
        """Test sessions from unknown vendors are unchanged."""
        session = make_session(T1, vendor_id="9999", product_id="0000")

        IdentifierEnricher(resolver).apply([session])

        assert session.manufacturer_name == UNSET
        assert session.product_name == UNSET


class TestSortAndLimit:
    """Tests for SortSessions and LimitSessions."""

    def test_sort_ascending(self):
        """Test ascending sort."""
        sessions = [make_session(T3), make_session(T1), make_session(T2)]
        result = SortSessions(SortOrder.ASC).apply(sessions)
        assert [s.connected_at for s in result] == [T1, T2, T3]

    def test_sort_descending(self):
        """Test descending sort."""
        sessions = [make_session(T1), make_session(T3), make_session(T2)]
        result = SortSessions(SortOrder.DESC).apply(sessions)
        assert [s.connected_at for s in result] == [T3, T2, T1]

    def test_sort_is_stable(self):
        """Equal timestamps keep their input order."""
        a = make_session(T1, serial="A")
        b = make_session(T1, serial="B")
        assert SortSessions().apply([a, b]) == [a, b]

    def test_limit(self):
        """Test truncation."""
        sessions = [make_session(t) for t in (T1, T2, T3)]
        assert len(LimitSessions(2).apply(sessions)) == 2

    def test_limit_larger_than_result_warns(self):
        """Asking for more than exists returns everything with a warning."""
        sessions = [make_session(T1)]

        with pytest.warns(UserWarning, match="only 1 found"):
            result = LimitSessions(5).apply(sessions)

        assert result == sessions


class TestSessionPipeline:
    """Tests for SessionPipeline."""

    def test_default_steps(self):
        """Default options only deduplicate and sort."""
        pipeline = SessionPipeline.from_options(CollectOptions())
        assert [step.name for step in pipeline.steps] == ["deduplicate", "sort_sessions"]

    def test_all_steps_in_order(self):
        """Test step order with every option enabled."""
        options = CollectOptions(
            mass_storage_only=True,
            check_whitelist=True,
            untrusted_only=True,
            limit=3,
        )
        pipeline = SessionPipeline.from_options(
            options,
            whitelist=trusting(),
            resolver=IdentifierResolver(),
        )

        assert [step.name for step in pipeline.steps] == [
            "deduplicate",
            "mass_storage_filter",
            "whitelist_marker",
            "untrusted_filter",
            "identifier_enricher",
            "sort_sessions",
            "limit_sessions",
        ]

    def test_whitelist_required(self):
        """Whitelist checking without a whitelist is a configuration error."""
        with pytest.raises(ConfigurationError):
            SessionPipeline.from_options(CollectOptions(check_whitelist=True))

    def test_process(self):
        """Test a full pass and the per-step counts."""
        sessions = [
            make_session(T2, serial="GOOD", is_mass_storage=True),
            make_session(T1, serial="BAD", is_mass_storage=True),
            make_session(T1, serial="DUP", is_mass_storage=True),
            make_session(T3, serial="MOUSE"),
        ]
        options = CollectOptions(
            mass_storage_only=True,
            check_whitelist=True,
            untrusted_only=True,
            sort_order="desc",
        )
        pipeline = SessionPipeline.from_options(options, whitelist=trusting("GOOD"))

        result = pipeline.process(sessions)

        assert [s.serial_number for s in result] == ["BAD"]
        assert pipeline.stats == {
            "input": 4,
            "deduplicate": 3,
            "mass_storage_filter": 2,
            "whitelist_marker": 2,
            "untrusted_filter": 1,
            "sort_sessions": 1,
        }

    def test_add_step_chains(self):
        """Test add_step returns the pipeline."""
        pipeline = SessionPipeline()
        assert pipeline.add_step(Deduplicate()).add_step(SortSessions()) is pipeline
        assert len(pipeline.steps) == 2
