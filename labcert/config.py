from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'labcert certificate pipeline'

    data_dir: Path = Field(default=Path('./data'))

    # Lab certificate storage / fetch
    certificate_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices('CERTIFICATE_BASE_URL', 'LAB_API_BASE_URL'),
    )
    certificate_api_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices('CERTIFICATE_API_TOKEN', 'LAB_API_TOKEN'),
    )
    # Must include {shift_id}
    certificate_endpoint_template: str = '/air-monitoring-shifts/{shift_id}/analysis-report'
    certificate_timeout_seconds: int = 60
    max_certificate_bytes: int = 50 * 1024 * 1024

    # Calculations
    concentration_precision: int = 4
    lead_exposure_limit_mg_m3: float = 0.05

    # Letterhead
    company_name: str = 'Lancaster & Dickenson Consulting Pty Ltd'
    company_short_name: str = 'L&D'
    company_address_lines: str = '4/6 Dacre Street, Mitchell ACT 2911'
    company_website: str = 'www.landd.com.au'
    company_logo_path: Path | None = None

    # PDF layout
    pdf_font_name: str = 'Helvetica'
    pdf_body_font_size: float = 10
    pdf_page_margin_mm: float = 14
    pdf_header_height_mm: float = 37
    pdf_footer_height_mm: float = 20

    def address_lines(self) -> list[str]:
        lines: list[str] = []
        for item in self.company_address_lines.split('|'):
            normalized = item.strip()
            if not normalized:
                continue
            lines.append(normalized)
        return lines


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / 'shifts').mkdir(parents=True, exist_ok=True)
    return settings
