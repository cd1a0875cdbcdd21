import logging
import pathlib

import pandas as pd

logger = logging.getLogger(__name__)

# Common header spellings → canonical column names
RENAME_MAP = {
    "organism": "microorganism",
    "mo": "microorganism",
    "bacteria": "microorganism",
    "isolate": "isolate_id",
    "sample": "sample_id",
    "specimen": "sample_id",
    "drug": "antimicrobial",
    "antibiotic": "antimicrobial",
    "ab": "antimicrobial",
    "date": "date_of_isolation",
}

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
DELIMITED_SUFFIXES = {".csv": ",", ".tsv": "\t", ".txt": "\t"}


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize all headers to snake_case lowercase and apply RENAME_MAP:
    "MIC (mg/L)" -> "mic", "Organism:" -> "microorganism".
    """
    df = df.copy()
    df.columns = (
        df.columns.astype(str)
        .str.strip()
        .str.replace(r"\s*\(.*?\)", "", regex=True)  # drop any "(…)"
        .str.replace(r"\s+", "_", regex=True)  # spaces → underscore
        .str.replace(":", "", regex=False)  # drop colons
        .str.lower()
    )
    return df.rename(
        columns={
            orig: target
            for orig, target in RENAME_MAP.items()
            if orig in df.columns
        }
    )


def load_tables(path: str | pathlib.Path, index_col: int | None = None) -> dict[str, pd.DataFrame]:
    """
    Read a table file into DataFrames keyed by sheet name:
      - Excel workbooks (openpyxl): one entry per worksheet
      - CSV / TSV: a single entry named after the file stem; cells are read as text
      - first row = header, headers normalized (see `normalize_headers`)

    Raises ValueError for unsupported file types.
    """
    path = pathlib.Path(path)
    suffix = path.suffix.lower()
    tables: dict[str, pd.DataFrame] = {}

    if suffix in EXCEL_SUFFIXES:
        excel = pd.ExcelFile(path, engine="openpyxl")
        for sheet_name in excel.sheet_names:
            df = pd.read_excel(excel, sheet_name=sheet_name, header=0, index_col=index_col, engine="openpyxl")
            tables[sheet_name] = normalize_headers(df)
    elif suffix in DELIMITED_SUFFIXES:
        df = pd.read_csv(path, sep=DELIMITED_SUFFIXES[suffix], header=0, index_col=index_col, dtype=str)
        tables[path.stem] = normalize_headers(df)
    else:
        raise ValueError(f"Unsupported table format {suffix!r}: expected one of "
                         f"{sorted(EXCEL_SUFFIXES | set(DELIMITED_SUFFIXES))}")

    logger.debug("Loaded %d table(s) from %s: %s", len(tables), path, list(tables))
    return tables
