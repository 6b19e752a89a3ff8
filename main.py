from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

import httpx
from pydantic import ValidationError

from labcert.adapters.certificates import FileCertificateStore, HttpCertificateConfig, HttpCertificateFetcher
from labcert.analysis.censored import format_censored
from labcert.analysis.concentration import compute_concentration, duration_minutes
from labcert.analysis.fibre_id import classify
from labcert.config import get_settings
from labcert.errors import AttachmentError, LabCertError
from labcert.report.assembly import GeneratedReport
from labcert.report.fibre_report import generate_fibre_report
from labcert.report.shift_report import generate_shift_report
from labcert.storage import read_json, reports_dir, write_bytes_atomic
from labcert.types import FibreReportInput, ShiftReportInput


logger = logging.getLogger('labcert')


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(message: str) -> int:
    _print_json({'status': 'error', 'message': message})
    return 2


def _read_certificate(path_arg: str) -> bytes:
    path = Path(path_arg).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(f'Certificate not found: {path}')
    return path.read_bytes()


def _write_report(report: GeneratedReport, output_dir: str | None) -> Path:
    target_dir = Path(output_dir).expanduser().resolve() if output_dir else reports_dir()
    target = target_dir / report.filename
    write_bytes_atomic(target, report.pdf_bytes)
    return target


def _report_response(report: GeneratedReport, path: Path) -> dict:
    return {
        'status': 'ok',
        'filename': report.filename,
        'path': str(path),
        'main_page_count': report.main_page_count,
        'page_count': report.page_count,
    }


def cmd_concentration(args: argparse.Namespace) -> int:
    settings = get_settings()
    minutes = duration_minutes(args.start, args.end)
    try:
        value = compute_concentration(args.content, args.flowrate, minutes)
    except LabCertError as exc:
        return _error(str(exc))
    _print_json(
        {
            'content': args.content,
            'flowrate_lpm': args.flowrate,
            'duration_minutes': minutes,
            'concentration_mg_m3': format_censored(value, settings.concentration_precision),
        }
    )
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    result = classify(args.morphology, args.disintegrates)
    _print_json(
        {
            'morphology': args.morphology,
            'disintegrates': args.disintegrates,
            'result': result,
            'manual_selection_required': result is None,
        }
    )
    return 0


def _shift_certificate(args: argparse.Namespace, data: ShiftReportInput) -> bytes:
    settings = get_settings()
    if args.certificate:
        return _read_certificate(args.certificate)
    if args.fetch:
        fetcher = HttpCertificateFetcher(HttpCertificateConfig.from_settings(settings))
        return asyncio.run(fetcher.fetch(data.shift.shift_id))
    return FileCertificateStore(settings.data_dir).fetch(data.shift.shift_id)


def cmd_shift_report(args: argparse.Namespace) -> int:
    try:
        data = ShiftReportInput.model_validate(read_json(Path(args.input)))
    except (OSError, ValueError, ValidationError) as exc:
        return _error(f'Invalid shift input: {exc}')

    try:
        certificate = _shift_certificate(args, data)
        report = generate_shift_report(data, certificate)
    except AttachmentError as exc:
        return _error(str(exc))
    except (LabCertError, OSError, RuntimeError, ValueError, httpx.HTTPError) as exc:
        logger.exception('Shift report failed for %s', data.shift.shift_id)
        return _error(f'{type(exc).__name__}: {exc}')

    path = _write_report(report, args.output_dir)
    _print_json(_report_response(report, path))
    return 0


def cmd_fibre_report(args: argparse.Namespace) -> int:
    try:
        data = FibreReportInput.model_validate(read_json(Path(args.input)))
    except (OSError, ValueError, ValidationError) as exc:
        return _error(f'Invalid analysis input: {exc}')

    try:
        certificate = _read_certificate(args.certificate)
        report = generate_fibre_report(data, certificate)
    except AttachmentError as exc:
        return _error(str(exc))
    except (LabCertError, OSError) as exc:
        logger.exception('Fibre ID report failed for %s', data.reference)
        return _error(f'{type(exc).__name__}: {exc}')

    path = _write_report(report, args.output_dir)
    _print_json(_report_response(report, path))
    return 0


def cmd_attach_certificate(args: argparse.Namespace) -> int:
    store = FileCertificateStore(get_settings().data_dir)
    try:
        path = store.save(args.shift_id, _read_certificate(args.certificate))
    except (AttachmentError, OSError, ValueError) as exc:
        return _error(str(exc))
    _print_json({'status': 'ok', 'shift_id': args.shift_id, 'path': str(path)})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Lab certificate report pipeline CLI')
    parser.add_argument('--log-level', default='WARNING', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    sub = parser.add_subparsers(dest='command', required=True)

    concentration = sub.add_parser('concentration', help='Compute an airborne lead concentration')
    concentration.add_argument('--content', required=True, help='Lab lead content in µg, e.g. "<0.5" or "12.3"')
    concentration.add_argument('--flowrate', required=True, help='Average pump flow rate in L/min')
    concentration.add_argument('--start', required=True, help='Start time HH:MM')
    concentration.add_argument('--end', required=True, help='End time HH:MM')
    concentration.set_defaults(func=cmd_concentration)

    classify_cmd = sub.add_parser('classify', help='Auto-classify a fibre observation')
    classify_cmd.add_argument('--morphology', default='', help='curly or straight')
    classify_cmd.add_argument('--disintegrates', default='', help='yes or no')
    classify_cmd.set_defaults(func=cmd_classify)

    shift = sub.add_parser('shift-report', help='Build a lead air monitoring report with its certificate')
    shift.add_argument('--input', required=True, help='Shift JSON file')
    source = shift.add_mutually_exclusive_group()
    source.add_argument('--certificate', required=False, help='Lab certificate PDF')
    source.add_argument('--fetch', action='store_true', help='Download the certificate from the lab service')
    shift.add_argument('--output-dir', required=False)
    shift.set_defaults(func=cmd_shift_report)

    fibre = sub.add_parser('fibre-report', help='Build a fibre ID report with its certificate')
    fibre.add_argument('--input', required=True, help='Fibre analysis JSON file')
    fibre.add_argument('--certificate', required=True, help='Lab certificate PDF')
    fibre.add_argument('--output-dir', required=False)
    fibre.set_defaults(func=cmd_fibre_report)

    attach = sub.add_parser('attach-certificate', help='Store a lab certificate for a shift')
    attach.add_argument('--shift-id', required=True)
    attach.add_argument('--certificate', required=True, help='Lab certificate PDF')
    attach.set_defaults(func=cmd_attach_certificate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
