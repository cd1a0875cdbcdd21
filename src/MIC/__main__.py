"""
Command-line interface for the MIC toolkit.
Normalizes single values, lists the canonical table, and cleans the MIC
columns of CSV/TSV files and Excel workbooks.
"""

import json
import logging
import os
import pathlib
import re
import sys
import typing
from collections import namedtuple
from datetime import datetime

import click
import pandas as pd
from stairval.notepad import create_notepad

from .display import format_mic
from .dtype import MICDtype
from .frame import MICTableConverter, find_mic_columns, summarize_mic_columns
from .levels import VALID_MIC_LEVELS, levels_for_operator
from .loader import load_tables
from .validation import validate_mic, report_diagnostic

logger = logging.getLogger(__name__)

AuditEntry = namedtuple("AuditEntry", ["step", "sheet", "message", "level"])

OUTPUT_ROOT_VARIABLE = "MIC_OUTPUT_ROOT"

# Headers such as "mic", "mic_amx" or "amx_mic"
_MIC_COLUMN_NAME = re.compile(r"(^|_)mic($|_)")

# "=" selects the values without a comparator
OPERATOR_CHOICES = {"<": "<", "<=": "<=", "=": "", ">=": ">=", ">": ">"}


@click.group()
def main():
    """MIC: clean up and validate minimum inhibitory concentrations."""
    pass


@main.command(name="normalize")
@click.argument("values", nargs=-1, required=True)
@click.option("--na-rm", is_flag=True, help="Drop blank values instead of reporting them as missing")
def normalize(values: tuple[str, ...], na_rm: bool):
    """
    Print the canonical form of every VALUE ("NA" when it is not a valid MIC).
    """
    array, diagnostic = validate_mic(list(values), na_rm=na_rm)
    kept = [value for value in values if value.strip()] if na_rm else list(values)
    for raw, canonical in zip(kept, format_mic(array)):
        click.echo(f"{raw}\t{canonical}")

    notepad = create_notepad("mic")
    report_diagnostic(diagnostic, notepad)
    _report_issues(notepad)


@main.command(name="levels")
@click.option(
    "--operator",
    type=click.Choice(list(OPERATOR_CHOICES)),
    default=None,
    help="only list values with this comparator ('=' for exact values)",
)
def levels(operator: typing.Optional[str]):
    """Print the canonical MIC table, smallest value first."""
    selected = VALID_MIC_LEVELS if operator is None else levels_for_operator(OPERATOR_CHOICES[operator])
    for level in selected:
        click.echo(level)


@main.command(name="parse-table")
@click.option(
    "-i",
    "--input-path",
    "input_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to a CSV/TSV file or an Excel workbook",
)
@click.option(
    "-c",
    "--column",
    "columns",
    multiple=True,
    help="MIC column to convert (repeatable; default: detect MIC columns)",
)
@click.option(
    "-o",
    "--output-dir",
    "output_dir",
    type=click.Path(file_okay=False),
    default=None,
    help=f"where to write the cleaned tables (default: timestamped folder under ${OUTPUT_ROOT_VARIABLE} or the working directory)",
)
@click.option("--verbose", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def parse_table(
    input_path: str,
    columns: tuple[str, ...],
    output_dir: typing.Optional[str],
    verbose: bool,
    log_file_path: typing.Optional[str],
):
    """
    Read each sheet, convert its MIC columns, report invalid values, and
    write one cleaned CSV per sheet.
    """
    # 1) Logging
    _configure_logging(verbose, log_file_path)
    logging.info(f"Beginning parse of '{input_path}'")

    # 2) Read all sheets into DataFrames
    try:
        tables = load_tables(input_path)
    except (OSError, ValueError) as e:
        logging.error(f"Failed to read '{input_path}': {e}")
        click.echo(f"Error: could not read {input_path}: {e}", err=True)
        sys.exit(1)

    # 3) Convert and collect issues
    notepad = create_notepad("mic")
    converter = MICTableConverter(columns or None)
    converted = converter.apply_conversion(tables, notepad)

    # 4) Report any errors or warnings
    _report_issues(notepad)

    # 5) Write one CSV per sheet
    out_dir = pathlib.Path(output_dir) if output_dir else _prepare_output_dir()
    out_dir.mkdir(parents=True, exist_ok=True)
    for sheet_name, df in converted.items():
        _export_frame(df, out_dir / f"{_safe_file_name(sheet_name)}.csv")

    # 6) Final summary
    for sheet_name, df in converted.items():
        summary = summarize_mic_columns(df)
        for column, row in summary.iterrows():
            click.echo(
                f"Sheet {sheet_name!r}, column {column!r}: {int(row['n'] - row['missing'])} valid, "
                f"{int(row['missing'])} missing, median {row['median']:g}"
            )
    click.echo(f"Wrote {len(converted)} table(s) to {out_dir}")

    if notepad.has_errors(include_subsections=True):
        sys.exit(1)


@main.command(name="audit-table")
@click.option(
    "-i",
    "--input-path",
    "input_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to a CSV/TSV file or an Excel workbook",
)
@click.option("-r", "--raw", "as_json", is_flag=True, help="print the audit entries as JSON")
def audit_table(input_path: str, as_json: bool):
    """
    Show what parse-table would do: headers, detected MIC columns and the
    number of invalid values per column.
    """
    try:
        tables = load_tables(input_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: could not read {input_path}: {e}", err=True)
        sys.exit(1)

    entries = preprocess(tables)
    if as_json:
        click.echo(json.dumps([entry._asdict() for entry in entries], indent=2))
        return

    click.echo(f"{'SHEET':20}  {'STEP':20}  {'LEVEL':7}  MESSAGE")
    for entry in entries:
        line = f"{entry.sheet:20}  {entry.step:20}  {entry.level:7}  {entry.message}"
        if entry.level == "error":
            click.echo(click.style(line, fg="red"))
        elif entry.level in ("warn", "warning"):
            click.echo(click.style(line, fg="yellow"))
        else:
            click.echo(line)


def _configure_logging(verbose: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
            force=True,
        )


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in conversion:")
        for err in notepad.errors():
            click.echo(f"- {err.message}")
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in conversion:")
        for w in notepad.warnings():
            click.echo(f"- {w.message}")


def _prepare_output_dir() -> pathlib.Path:
    # use YYYY-MM-DD_HH-MM-SS for human-readable timestamps
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    root = pathlib.Path(os.environ.get(OUTPUT_ROOT_VARIABLE) or pathlib.Path.cwd())
    output_dir = root / "mic_from_table" / timestamp
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _safe_file_name(sheet_name: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in str(sheet_name))


def _export_frame(df: pd.DataFrame, path: pathlib.Path) -> None:
    """Write `df` as CSV; MIC columns are written in canonical form, missing values left empty."""
    exported = df.copy()
    for column in exported.columns:
        if isinstance(exported[column].dtype, MICDtype):
            exported[column] = format_mic(exported[column], na_rep="")
    exported.to_csv(path, index=False)
    logger.debug("Wrote %d rows to %s", len(exported), path)


def preprocess(tables: dict[str, pd.DataFrame]) -> list[AuditEntry]:
    """
    Run lightweight audits on each sheet:
      - header normalization
      - MIC column detection
      - invalid values per MIC column
    """
    entries: list[AuditEntry] = []

    # Step 1: header counts
    for name, df in tables.items():
        entries.append(AuditEntry(
            step="normalize-headers",
            sheet=name,
            message=f"{len(df.columns)} cols",
            level="info",
        ))

    # Step 2: detect MIC columns
    detected: dict[str, list] = {}
    for name, df in tables.items():
        detected[name] = find_mic_columns(df)
        entries.append(AuditEntry(
            step="detect-columns",
            sheet=name,
            message=", ".join(map(str, detected[name])) or "no MIC columns",
            level="info" if detected[name] else "warning",
        ))

    # Step 3: columns named like MIC data that do not fully validate
    for name, df in tables.items():
        for column in df.columns:
            if column in detected[name] or not _MIC_COLUMN_NAME.search(str(column).lower()):
                continue
            try:
                _, diagnostic = validate_mic(df[column], column=str(column))
            except TypeError as e:
                entries.append(AuditEntry(step="validate-column", sheet=name, message=str(e), level="error"))
                continue
            if diagnostic:
                entries.append(AuditEntry(
                    step="validate-column",
                    sheet=name,
                    message=diagnostic.message,
                    level="warning",
                ))
    return entries


if __name__ == "__main__":
    main()
