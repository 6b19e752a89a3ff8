from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .config import get_settings


CERTIFICATE_FILENAME = 'analysis-report.pdf'

_SAFE_KEY = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


def shifts_root(data_dir: Path | None = None) -> Path:
    root = (data_dir or get_settings().data_dir) / 'shifts'
    root.mkdir(parents=True, exist_ok=True)
    return root


def safe_shift_id(shift_id: str) -> str:
    token = str(shift_id or '').strip()
    if not token:
        raise ValueError('shift_id is required')
    if not _SAFE_KEY.match(token) or '..' in token:
        raise ValueError(f'invalid shift_id: {shift_id}')
    return token


def shift_dir(shift_id: str, data_dir: Path | None = None) -> Path:
    return shifts_root(data_dir) / safe_shift_id(shift_id)


def certificate_path(shift_id: str, data_dir: Path | None = None) -> Path:
    return shift_dir(shift_id, data_dir) / CERTIFICATE_FILENAME


def reports_dir(data_dir: Path | None = None) -> Path:
    path = (data_dir or get_settings().data_dir) / 'reports'
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)


def read_json(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding='utf-8'))
