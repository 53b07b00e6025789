from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from surveyreport.config import get_settings
from surveyreport.errors import NotFoundError, RenderError
from surveyreport.report.layout import plan_survey_layout
from surveyreport.report.survey_report_pdf import build_survey_report_pdf, report_filename
from surveyreport.server import run_server
from surveyreport.state import create_survey, get_survey_or_raise, list_surveys
from surveyreport.types import Survey


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _read_payload(path: str) -> dict:
    json_path = Path(path).expanduser().resolve()
    return json.loads(json_path.read_text(encoding='utf-8'))


def _resolve_survey(args: argparse.Namespace) -> Survey:
    if getattr(args, 'json', None):
        return Survey.model_validate(_read_payload(args.json))
    return get_survey_or_raise(args.survey_id)


def cmd_import(args: argparse.Namespace) -> int:
    try:
        survey = create_survey(_read_payload(args.json))
    except (OSError, ValueError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2
    _print_json({'status': 'created', 'survey_id': str(survey.id)})
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    _print_json([row.model_dump(mode='json', by_alias=True) for row in list_surveys()])
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    try:
        survey = get_survey_or_raise(args.survey_id)
    except NotFoundError:
        _print_json({'status': 'error', 'message': f'Survey not found: {args.survey_id}'})
        return 2
    _print_json(survey.wire())
    return 0


def cmd_layout(args: argparse.Namespace) -> int:
    try:
        survey = _resolve_survey(args)
    except NotFoundError:
        _print_json({'status': 'error', 'message': f'Survey not found: {args.survey_id}'})
        return 2
    except (OSError, ValueError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2
    _print_json(plan_survey_layout(survey).to_dict())
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    try:
        survey = _resolve_survey(args)
    except NotFoundError:
        _print_json({'status': 'error', 'message': f'Survey not found: {args.survey_id}'})
        return 2
    except (OSError, ValueError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    out_path = Path(args.out).expanduser() if args.out else Path(report_filename(survey))
    if out_path.is_dir():
        out_path = out_path / report_filename(survey)

    try:
        pdf_bytes = build_survey_report_pdf(survey)
    except RenderError as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 1

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(pdf_bytes)
    _print_json({'status': 'rendered', 'survey_id': str(survey.id), 'path': str(out_path), 'bytes': len(pdf_bytes)})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    run_server(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Property condition survey backend CLI')
    sub = parser.add_subparsers(dest='command', required=True)

    imp = sub.add_parser('import', help='Store a survey from a JSON file')
    imp.add_argument('--json', required=True, help='Path to survey JSON')
    imp.set_defaults(func=cmd_import)

    lst = sub.add_parser('list', help='List stored surveys, newest first')
    lst.set_defaults(func=cmd_list)

    show = sub.add_parser('show', help='Print a stored survey')
    show.add_argument('--survey-id', required=True, help='Survey ID')
    show.set_defaults(func=cmd_show)

    for name, func, help_text in (
        ('render', cmd_render, 'Render a survey report PDF'),
        ('layout', cmd_layout, 'Print the paginated layout plan of a survey'),
    ):
        command = sub.add_parser(name, help=help_text)
        source = command.add_mutually_exclusive_group(required=True)
        source.add_argument('--survey-id', help='Stored survey ID')
        source.add_argument('--json', help='Path to survey JSON (not stored)')
        if name == 'render':
            command.add_argument('--out', required=False, help='Output PDF path or directory')
        command.set_defaults(func=func)

    serve = sub.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', required=False)
    serve.add_argument('--port', type=int, required=False)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command != 'serve':
        logging.basicConfig(
            level=getattr(logging, str(get_settings().log_level).upper(), logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
