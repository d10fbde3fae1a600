"""Tests for the static build tables and the known KB table."""

from __future__ import annotations

from datetime import date

from patchprobe import builds, known_kbs
from patchprobe.models import ReleaseType


class TestVersionName:
    def test_client_builds(self):
        assert builds.version_name(22631) == "Windows 11 23H2"
        assert builds.version_name(19045) == "Windows 10 22H2"
        assert builds.version_name(26100) == "Windows 11 24H2"

    def test_server_builds(self):
        assert builds.version_name(17763, server=True) == "Windows Server 2019"
        assert builds.version_name(14393, server=True) == "Windows Server 2016"
        assert builds.version_name(17763) == "Windows 10 1809"

    def test_server_only_build(self):
        assert builds.version_name(20348) == "Windows Server 2022"

    def test_unknown(self):
        assert builds.version_name(None) == "Unknown build"
        assert builds.version_name(99999) == "Unknown build 99999"


class TestProductFamily:
    def test_families(self):
        assert builds.product_family(19045) == builds.WINDOWS_10
        assert builds.product_family(22631) == builds.WINDOWS_11
        assert builds.product_family(26100) == builds.WINDOWS_11_24H2
        assert builds.product_family(20348, server=True) == builds.SERVER_2022

    def test_server_2022_without_edition_flag(self):
        assert builds.product_family(20348) == builds.SERVER_2022

    def test_server_without_history_page(self):
        assert builds.product_family(17763, server=True) is None

    def test_every_family_has_a_history_page(self):
        for family in (builds.WINDOWS_10, builds.WINDOWS_11, builds.WINDOWS_11_24H2, builds.SERVER_2022):
            assert builds.UPDATE_HISTORY_URLS[family].startswith("https://support.microsoft.com/")

    def test_unknown(self):
        assert builds.product_family(None) is None
        assert builds.product_family(9600) is None


class TestIsSupported:
    def test_supported_before_end_of_servicing(self):
        assert builds.is_supported(22631, date(2024, 11, 20)) is True

    def test_last_day_still_supported(self):
        assert builds.is_supported(19045, date(2025, 10, 14)) is True

    def test_unsupported_after_end_of_servicing(self):
        assert builds.is_supported(22621, date(2024, 11, 20)) is False
        assert builds.is_supported(19045, date(2025, 10, 15)) is False

    def test_server_uses_server_lifecycle(self):
        assert builds.is_supported(17763, date(2024, 11, 25)) is False
        assert builds.is_supported(17763, date(2024, 11, 25), server=True) is True
        assert builds.is_supported(14393, date(2027, 1, 13), server=True) is False
        assert builds.end_of_servicing(17763, server=True) == date(2029, 1, 9)

    def test_server_only_build(self):
        assert builds.is_supported(20348, date(2024, 11, 20)) is True

    def test_unknown_build(self):
        assert builds.is_supported(None, date(2024, 11, 20)) is None
        assert builds.is_supported(99999, date(2024, 11, 20)) is None
        assert builds.is_supported(22631, date(2024, 11, 20), server=True) is None


class TestNormalizeKb:
    def test_accepted_forms(self):
        assert known_kbs.normalize_kb("KB5046633") == "KB5046633"
        assert known_kbs.normalize_kb("kb5046633") == "KB5046633"
        assert known_kbs.normalize_kb("5046633") == "KB5046633"
        assert known_kbs.normalize_kb("  KB 5046633 ") == "KB5046633"

    def test_rejected_forms(self):
        assert known_kbs.normalize_kb("") is None
        assert known_kbs.normalize_kb("File 1") is None
        assert known_kbs.normalize_kb("KB12") is None


class TestKnownKbTable:
    def test_table_loads(self):
        table = known_kbs.load_known_kbs()
        assert len(table) >= 20
        assert all(kb.startswith("KB") for kb in table)

    def test_security_release(self):
        release = known_kbs.lookup("kb5046633")
        assert release is not None
        assert release.released == date(2024, 11, 12)
        assert release.release_type == ReleaseType.SECURITY
        assert "22631.4460" in release.builds

    def test_preview_release(self):
        release = known_kbs.lookup("KB5034204")
        assert release is not None
        assert release.release_type == ReleaseType.PREVIEW

    def test_unknown_kb(self):
        assert known_kbs.lookup("KB1234567") is None
        assert known_kbs.lookup("not a kb") is None

    def test_pinned_type_overrides_date(self):
        table = known_kbs.parse_table({
            "kbs": [
                {"kb": "KB5000001", "released": "2024-11-12", "type": "Out-of-Band"},
                {"kb": "KB5000002", "released": "2024-11-26"},
                {"kb": "bogus", "released": "2024-11-26"},
            ],
        })
        assert table["KB5000001"].release_type == ReleaseType.OUT_OF_BAND
        assert table["KB5000002"].release_type == ReleaseType.PREVIEW
        assert len(table) == 2

    def test_newest_known_ubr(self):
        assert known_kbs.newest_known_ubr(22631) == 4602
        assert known_kbs.newest_known_ubr(17763) is None
        assert known_kbs.newest_known_ubr(None) is None
