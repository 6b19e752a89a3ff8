from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from labcert.config import Settings
from labcert.errors import CertificateNotFound, CorruptAttachment
from labcert.storage import certificate_path, safe_shift_id, write_bytes_atomic


logger = logging.getLogger(__name__)

_PDF_MAGIC = b'%PDF-'


class FileCertificateStore:
    """Lab certificates kept on disk as ``<root>/shifts/<shift_id>/analysis-report.pdf``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, shift_id: str) -> Path:
        return certificate_path(shift_id, self.root)

    def exists(self, shift_id: str) -> bool:
        return self.path_for(shift_id).is_file()

    def fetch(self, shift_id: str) -> bytes:
        path = self.path_for(shift_id)
        if not path.is_file():
            raise CertificateNotFound(str(path))
        content = path.read_bytes()
        logger.info('Loaded certificate for shift %s (%s bytes)', shift_id, len(content))
        return content

    def save(self, shift_id: str, content: bytes) -> Path:
        if not content:
            raise CorruptAttachment('The certificate file is empty.')
        path = self.path_for(shift_id)
        write_bytes_atomic(path, content)
        logger.info('Stored certificate for shift %s at %s', shift_id, path)
        return path


@dataclass
class HttpCertificateConfig:
    base_url: str | None
    api_token: str | None
    endpoint_template: str
    timeout_seconds: int
    max_bytes: int

    @classmethod
    def from_settings(cls, settings: Settings) -> 'HttpCertificateConfig':
        return cls(
            base_url=settings.certificate_base_url,
            api_token=settings.certificate_api_token,
            endpoint_template=settings.certificate_endpoint_template,
            timeout_seconds=settings.certificate_timeout_seconds,
            max_bytes=settings.max_certificate_bytes,
        )


class HttpCertificateFetcher:
    def __init__(self, cfg: HttpCertificateConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cfg.base_url)

    def url_for(self, shift_id: str) -> str:
        if not self.cfg.base_url:
            raise RuntimeError('Certificate service is not configured (set CERTIFICATE_BASE_URL)')
        endpoint = self.cfg.endpoint_template.format(shift_id=safe_shift_id(shift_id))
        return f"{self.cfg.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def fetch(self, shift_id: str) -> bytes:
        if not self.configured:
            raise RuntimeError('Certificate service is not configured (set CERTIFICATE_BASE_URL)')

        url = self.url_for(shift_id)
        headers = {'Accept': 'application/pdf'}
        token = str(self.cfg.api_token or '').strip()
        if token:
            headers['Authorization'] = f'Bearer {token}'

        async with httpx.AsyncClient(
            timeout=max(5, int(self.cfg.timeout_seconds)),
            transport=self.transport,
        ) as client:
            response = await client.get(url, headers=headers)

        if response.status_code == 404:
            raise CertificateNotFound(url)
        response.raise_for_status()

        content = response.content
        if len(content) > self.cfg.max_bytes:
            raise CorruptAttachment(
                f'The certificate is {len(content)} bytes, larger than the {self.cfg.max_bytes} byte limit.'
            )
        if not content.startswith(_PDF_MAGIC):
            logger.warning('Certificate for shift %s does not start with a PDF header', shift_id)
        logger.info('Fetched certificate for shift %s (%s bytes)', shift_id, len(content))
        return content
