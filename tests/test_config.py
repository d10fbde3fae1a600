"""Tests for YAML configuration loading and CLI overrides."""

from __future__ import annotations

from patchprobe.config import Config
from patchprobe.models import Severity


class TestConfigDefaults:
    def test_from_defaults(self):
        config = Config.from_defaults()
        assert config.enabled_categories == ["all"]
        assert config.minimum_severity == Severity.INFO
        assert config.output_formats == ["text"]
        assert config.disabled_checks == []

    def test_default_check_sections(self):
        config = Config.from_defaults()
        assert config.get_check_config("WU-001")["stale_days"] == 35
        assert config.get_check_config("WU-001")["services"]["CryptSvc"] == "running"
        assert config.get_check_config("MGMT-001")["gpresult"] is True
        assert config.get_check_config("PATCH-001") == {
            "grace_days": 7,
            "web_lookup": False,
            "request_timeout": 15,
        }

    def test_missing_check_config(self):
        assert Config().get_check_config("NONEXISTENT-001") == {}


class TestConfigYaml:
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "probe.yaml"
        path.write_text(
            "categories:\n"
            "  enabled: [Patch Compliance]\n"
            "severity:\n"
            "  minimum: high\n"
            "output:\n"
            "  formats: [json]\n"
            "  directory: /var/lib/patchprobe\n"
            "checks:\n"
            "  disabled: [MGMT-001]\n"
            "  PATCH-001:\n"
            "    grace_days: 3\n"
            "  WU-001: not-a-mapping\n",
            encoding="utf-8",
        )
        config = Config.from_yaml(path)
        assert config.enabled_categories == ["Patch Compliance"]
        assert config.minimum_severity == Severity.HIGH
        assert config.output_formats == ["json"]
        assert config.output_directory == "/var/lib/patchprobe"
        assert config.is_check_disabled("MGMT-001")
        assert config.get_check_config("PATCH-001") == {"grace_days": 3}
        assert config.get_check_config("WU-001") == {}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        config = Config.from_yaml(path)
        assert config.enabled_categories == ["all"]

    def test_bad_severity_falls_back(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("severity:\n  minimum: loud\n", encoding="utf-8")
        assert Config.from_yaml(path).minimum_severity == Severity.INFO


class TestConfigOverrides:
    def test_apply_overrides(self):
        config = Config()
        config.apply_overrides(
            categories="Update Health, Management",
            severity="high",
            output_dir="/tmp/test",
            formats="json,console",
            skip_admin=True,
            verbose=True,
        )
        assert config.enabled_categories == ["Update Health", "Management"]
        assert config.minimum_severity == Severity.HIGH
        assert config.output_directory == "/tmp/test"
        assert config.output_formats == ["json", "console"]
        assert config.skip_admin_checks is True
        assert config.verbose is True

    def test_web_lookup_override(self):
        config = Config.from_defaults()
        config.apply_overrides(web_lookup=True)
        assert config.get_check_config("PATCH-001")["web_lookup"] is True
        assert config.get_check_config("PATCH-001")["grace_days"] == 7

    def test_invalid_severity_keeps_existing(self):
        config = Config(minimum_severity=Severity.LOW)
        config.apply_overrides(severity="loud")
        assert config.minimum_severity == Severity.LOW

    def test_category_filter(self):
        config = Config(enabled_categories=["Management"])
        assert config.is_category_enabled("Management")
        assert not config.is_category_enabled("Patch Compliance")
