"""
Tests for settings.
"""

from pathlib import Path

from labcert.config import Settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, tmp_path):
        settings = Settings(data_dir=tmp_path)
        assert settings.concentration_precision == 4
        assert settings.lead_exposure_limit_mg_m3 == 0.05

    def test_certificate_url_alias(self, monkeypatch):
        monkeypatch.setenv("LAB_API_BASE_URL", "https://lab.example.com")
        monkeypatch.delenv("CERTIFICATE_BASE_URL", raising=False)
        assert Settings().certificate_base_url == "https://lab.example.com"

    def test_address_lines(self, monkeypatch):
        monkeypatch.setenv("COMPANY_ADDRESS_LINES", "Level 1 | 2 Example Street || Canberra ACT")
        assert Settings().address_lines() == ["Level 1", "2 Example Street", "Canberra ACT"]

    def test_cached_settings_create_data_dir(self, isolated_settings, tmp_path):
        assert isolated_settings.data_dir == Path(tmp_path)
        assert (tmp_path / "shifts").is_dir()
