"""Command line entry points for the customer LTV toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from customer_ltv.config import DEFAULT_ANCHOR_DATE, AnalysisConfig
from customer_ltv.formatters.markdown_tables import format_report
from customer_ltv.foundation.store import JsonRecordStore
from customer_ltv.ingestion.csv_reader import read_csv_rows
from customer_ltv.pandas.exports import export_report_csv
from customer_ltv.pipeline import AnalysisSession, LTVReport, analyze_rows

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "no data"


def _anchor_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Anchor date must be YYYY-MM-DD: {value!r}"
        ) from None


def _resolve_within_cwd(path: Path) -> Path:
    resolved = path.resolve()
    cwd = Path.cwd().resolve()
    try:
        resolved.relative_to(cwd)
    except ValueError:
        raise ValueError(
            f"Output path {resolved} must reside within the current working directory"
        )
    return resolved


def _render(report: LTVReport, fmt: str) -> str:
    if fmt == "markdown":
        return format_report(report)
    return json.dumps(report.as_dict(), indent=2, sort_keys=True, ensure_ascii=False)


def _emit(
    parser: argparse.ArgumentParser, args: argparse.Namespace, report: LTVReport
) -> int:
    if report.is_empty:
        print(NO_DATA_MESSAGE)
        return 1

    try:
        output_path = _resolve_within_cwd(args.output) if args.output else None
        csv_dir = _resolve_within_cwd(args.csv_dir) if args.csv_dir else None
    except ValueError as exc:
        parser.error(str(exc))

    rendered = _render(report, args.format)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            fh.write(rendered)
            fh.write("\n")
        logger.info("Report written to %s", output_path)
    else:  # stdout fallback enables piping in shell usage.
        print(rendered)

    if csv_dir:
        export_report_csv(report, csv_dir)
    return 0


def _config_from(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> AnalysisConfig:
    try:
        return AnalysisConfig(
            anchor_date=args.anchor_date,
            max_route_steps=args.route_steps,
            top_routes=args.top_routes,
        )
    except ValueError as exc:
        parser.error(str(exc))


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["json", "markdown"],
        default="json",
        help="Report format (default: json)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for writing the report; defaults to stdout.",
    )
    parser.add_argument(
        "--csv-dir",
        type=Path,
        help="Optional directory for CSV exports of the report tables.",
    )
    parser.add_argument(
        "--anchor-date",
        type=_anchor_date,
        default=DEFAULT_ANCHOR_DATE,
        help=f"Reference date for recency (default: {DEFAULT_ANCHOR_DATE.isoformat()})",
    )
    parser.add_argument(
        "--route-steps",
        type=int,
        default=10,
        help="Orders per customer used for golden routes (default: 10)",
    )
    parser.add_argument(
        "--top-routes",
        type=int,
        default=15,
        help="Number of golden routes reported (default: 15)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="customer-ltv",
        description="Customer lifetime value analysis from order CSV exports",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser(
        "analyze", help="Analyse a CSV file and print the report"
    )
    analyze.add_argument("input", type=Path, help="Path to the order CSV file")
    analyze.add_argument(
        "--encoding", default="utf-8", help="CSV file encoding (default: utf-8)"
    )
    analyze.add_argument(
        "--line-items",
        action="store_true",
        help="Treat each row as one purchased item (enables golden routes).",
    )
    _add_output_arguments(analyze)

    import_cmd = subparsers.add_parser(
        "import", help="Import line-item rows from a CSV file into a store"
    )
    import_cmd.add_argument("input", type=Path, help="Path to the line-item CSV file")
    import_cmd.add_argument("--store", type=Path, required=True, help="JSON store path")
    import_cmd.add_argument(
        "--encoding", default="utf-8", help="CSV file encoding (default: utf-8)"
    )

    rename = subparsers.add_parser(
        "rename-item", help="Set the display name of an item code"
    )
    rename.add_argument("item_code", help="Item code to rename")
    rename.add_argument("display_name", help="New display name")
    rename.add_argument("--store", type=Path, required=True, help="JSON store path")

    report = subparsers.add_parser("report", help="Report on the contents of a store")
    report.add_argument("--store", type=Path, required=True, help="JSON store path")
    _add_output_arguments(report)

    reset = subparsers.add_parser("reset", help="Delete every record in a store")
    reset.add_argument("--store", type=Path, required=True, help="JSON store path")

    return parser


def run(argv: list[str] | None = None) -> int:
    """Parse ``argv`` and run one subcommand.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when there is no data to report.
        Argument errors exit with code 2 via argparse.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "analyze":
        config = _config_from(parser, args)
        rows = read_csv_rows(args.input, encoding=args.encoding)
        report = analyze_rows(rows, config, line_items=args.line_items)
        return _emit(parser, args, report)

    if args.command == "report":
        config = _config_from(parser, args)
        session = AnalysisSession(JsonRecordStore(args.store), config)
        return _emit(parser, args, session.report())

    session = AnalysisSession(JsonRecordStore(args.store))
    if args.command == "import":
        rows = read_csv_rows(args.input, encoding=args.encoding)
        result = session.import_rows(rows)
        print(f"imported {result.admitted} line items ({result.rejected} rejected)")
        return 0 if result.admitted else 1
    if args.command == "rename-item":
        try:
            session.update_item_name(args.item_code, args.display_name)
        except ValueError as exc:
            parser.error(str(exc))
        print(f"{args.item_code} → {args.display_name}")
        return 0

    session.reset()
    print(f"store {args.store} cleared")
    return 0


def main() -> None:
    raise SystemExit(run(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover
    main()
