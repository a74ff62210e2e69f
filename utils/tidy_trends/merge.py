"""Merge yearly Google Trends exports into one tidy dataset.

Each export holds one year of regional interest for a procedure family, with
one value column per search term. The merge keeps the column for a single
procedure, resolves every country name to a region code and stacks the years
into ``country, region, year, procedure, interest`` rows.

Bad rows and bad files are skipped and reported; the run only fails when it
has nothing to write.
"""

import io
import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

import pandas as pd
from tqdm import tqdm

from tidy_trends.countries import RegionResolver
from tidy_trends.countries import default_resolver
from tidy_trends.validation import TIDY_COLUMNS
from tidy_trends.validation import MergeError
from tidy_trends.validation import MergeReport
from tidy_trends.validation import ValidationError
from tidy_trends.validation import validate_tidy_frame

logger = logging.getLogger(__name__)

# Constants
HEADER_ANCHOR = re.compile(r"^Country,", re.MULTILINE)
COUNTRY_COLUMNS = ("Country", "country")
YEAR_PATTERN = re.compile(r"(\d{4})")
BELOW_THRESHOLD_PREFIX = "<"
_NUMBER = re.compile(r"[\d.]+")
_DIGIT_RUNS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class TrendSource:
    """One yearly export file."""

    name: str
    year: int | None
    text: str


@dataclass(frozen=True)
class TrendRecord:
    """One row of the tidy dataset. ``region`` is None for unresolved names."""

    country: str
    region: str | None
    year: int
    procedure: str
    interest: float


@dataclass
class MergeResult:
    """Rows produced by a merge run together with its report."""

    rows: list = field(default_factory=list)
    report: MergeReport = field(default_factory=MergeReport)

    @property
    def unresolved(self) -> frozenset:
        """Distinct raw country names that did not resolve."""
        return frozenset(self.report.unresolved_names)

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.rows)


def records_to_frame(rows) -> pd.DataFrame:
    """Turn TrendRecords into a DataFrame with the tidy columns in order."""
    return pd.DataFrame([asdict(row) for row in rows], columns=TIDY_COLUMNS)


def parse_interest(value) -> float | None:
    """Parse an interest cell.

    Returns None for empty cells, below-threshold readings such as "<1" and
    cells without a number. "<1" is not the same as 0, so it is never coerced.

    Examples
    --------
        "45"    -> 45.0
        " 7 "   -> 7.0
        "<1"    -> None
        ""      -> None
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text or text.startswith(BELOW_THRESHOLD_PREFIX):
        return None

    match = _NUMBER.search(text)
    if match is None:
        return None

    try:
        number = float(match.group())
    except ValueError:
        # A run of dots only, or more than one decimal point
        return None

    return number if math.isfinite(number) else None


def strip_preface(text: str) -> str:
    """Drop anything above the ``Country,`` header line.

    Google Trends prefixes some exports with lines such as
    ``Category: All categories``. Text without the anchor is returned as is.
    """
    text = text.lstrip("\ufeff")
    match = HEADER_ANCHOR.search(text)
    if match is None:
        return text
    return text[match.start() :]


def read_trends_frame(text: str, bad_lines: list | None = None) -> pd.DataFrame:
    """Parse an export into a DataFrame of strings, preface removed.

    Rows with more fields than the header are left out. When ``bad_lines`` is
    given, their fields are appended to it so the caller can count them.
    """
    if bad_lines is None:
        bad_lines = []

    def _skip_bad_line(fields):
        bad_lines.append(fields)
        return None

    return pd.read_csv(
        io.StringIO(strip_preface(text)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines=_skip_bad_line,
    )


def find_country_column(columns) -> str | None:
    """Return the country name column, accepting either header spelling."""
    for name in COUNTRY_COLUMNS:
        if name in columns:
            return name
    return None


def find_interest_column(columns, procedure: str, exclude=()) -> str | None:
    """Return the first column whose header contains ``procedure``, ignoring case.

    Headers look like ``botox: (2015)``.
    """
    needle = procedure.lower()
    for column in columns:
        if column in exclude:
            continue
        if needle in str(column).lower():
            return column
    return None


def _coerce_year(year) -> int | None:
    if year is None:
        return None
    try:
        return int(year)
    except (TypeError, ValueError):
        return None


def _as_source(item, position: int) -> TrendSource:
    if isinstance(item, TrendSource):
        return item
    year, text = item
    return TrendSource(name=f"source #{position + 1}", year=year, text=text)


def merge_source(procedure: str, source: TrendSource, resolver: RegionResolver) -> tuple[list, MergeReport]:
    """Merge a single export file.

    Parameters
    ----------
    procedure : str
        Normalized procedure tag, used to find the value column.
    source : TrendSource
        The export to read.
    resolver : RegionResolver
        Resolver for the country names.

    Returns
    -------
    tuple[list, MergeReport]
        Records in row order and a report local to this file.
    """
    report = MergeReport(procedure=procedure, files_seen=1)
    rows = []

    year = _coerce_year(source.year)
    if year is None:
        report.skip_file(source.name, "no_year", f"Skipping {source.name} (no 4-digit year in file name).")
        return rows, report

    bad_lines = []
    try:
        df = read_trends_frame(source.text, bad_lines)
    except pd.errors.EmptyDataError:
        report.skip_file(source.name, "empty", f"Skipping {source.name} (file is empty).")
        return rows, report
    except pd.errors.ParserError as e:
        report.skip_file(source.name, "unreadable", f"Skipping {source.name} (could not parse CSV: {e}).")
        return rows, report

    if bad_lines:
        report.rows_read += len(bad_lines)
        report.rows_malformed += len(bad_lines)
        report.add_warning(f"{source.name}: dropped {len(bad_lines)} rows with more fields than the header")

    columns = df.columns.tolist()
    if df.empty:
        report.skip_file(source.name, "empty", f"Skipping {source.name} (no data rows).", columns)
        return rows, report

    country_column = find_country_column(columns)
    if country_column is None:
        report.skip_file(
            source.name,
            "no_country_column",
            f"No country column in {source.name}; columns: {', '.join(map(str, columns))}",
            columns,
        )
        return rows, report

    interest_column = find_interest_column(columns, procedure, exclude=COUNTRY_COLUMNS)
    if interest_column is None:
        report.skip_file(
            source.name,
            "no_value_column",
            f'No interest column containing "{procedure}" in {source.name}; columns: {", ".join(map(str, columns))}',
            columns,
        )
        return rows, report

    logger.debug(f"{source.name}: reading {len(df)} rows from column {interest_column!r}")

    for raw_country, raw_value in zip(df[country_column], df[interest_column]):
        report.rows_read += 1

        # Short rows leave NaN in the missing fields
        country = "" if pd.isna(raw_country) else str(raw_country).strip()
        if not country:
            report.rows_empty_name += 1
            continue

        interest = parse_interest(raw_value)
        if interest is None:
            report.rows_no_value += 1
            logger.debug(f"{source.name}: dropping {country!r}, no usable value in {raw_value!r}")
            continue

        region = resolver.resolve(country)
        if region is None:
            report.unresolved_names.add(country)
            report.rows_unresolved += 1

        rows.append(TrendRecord(country=country, region=region, year=year, procedure=procedure, interest=interest))

    report.files_merged = 1
    report.rows_emitted = len(rows)
    return rows, report


def merge_trends(procedure: str, sources, resolver: RegionResolver | None = None, max_workers: int = 1) -> MergeResult:
    """Merge yearly exports for one procedure into tidy records.

    Parameters
    ----------
    procedure : str
        Procedure tag, e.g. "botox". Matched case-insensitively against the
        value column headers and written lower-cased to every record.
    sources : sequence of TrendSource or (year, text) pairs
        Exports in the order their rows should appear in the output.
    resolver : RegionResolver, optional
        Defaults to the shared Google Trends resolver.
    max_workers : int
        Files to process at once. Output order does not depend on it.

    Returns
    -------
    MergeResult
        Records, unresolved names and the run report.

    Raises
    ------
    ValidationError
        If the procedure tag is empty.
    MergeError
        If there are no sources, or no rows could be produced from them.
    """
    procedure = (procedure or "").strip().lower()
    if not procedure:
        raise ValidationError("A procedure tag is required to pick the interest column")

    sources = [_as_source(item, i) for i, item in enumerate(sources)]
    if not sources:
        raise MergeError("No trend files to merge.")

    if resolver is None:
        resolver = default_resolver()

    logger.info(f"Merging {len(sources)} files for procedure '{procedure}'")

    def _merge(source):
        return merge_source(procedure, source, resolver)

    if max_workers > 1 and len(sources) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map() yields in submission order, so rows stay in file order
            results = list(tqdm(executor.map(_merge, sources), total=len(sources), desc=procedure, leave=False))
    else:
        results = [_merge(source) for source in tqdm(sources, desc=procedure, leave=False)]

    result = MergeResult(report=MergeReport(procedure=procedure))
    for rows, file_report in results:
        result.rows.extend(rows)
        result.report.absorb(file_report)

    if not result.rows:
        raise MergeError(
            f"No rows produced for '{procedure}' from {len(sources)} files.\n{result.report.summary()}",
        )

    logger.info(f"Merged {len(result.rows)} rows for '{procedure}' from {result.report.files_merged} files")
    return result


def natural_sort_key(name: str) -> list:
    """Sort key that orders embedded numbers numerically ("x_2" before "x_10")."""
    return [int(part) if part.isdigit() else part.lower() for part in _DIGIT_RUNS.split(name)]


def discover_sources(input_dir: Path | str) -> list[TrendSource]:
    """Read every CSV export in ``input_dir``.

    Files are ordered by natural sort of their names. The year is the first
    4-digit run in the file name; files without one get ``year=None`` and are
    skipped by the merge with a warning.

    Raises
    ------
    MergeError
        If the directory does not exist.
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise MergeError(f"Input directory not found: {input_dir}")

    paths = sorted(
        (path for path in input_dir.iterdir() if path.is_file() and path.suffix.lower() == ".csv"),
        key=lambda path: natural_sort_key(path.name),
    )

    sources = []
    for path in paths:
        match = YEAR_PATTERN.search(path.name)
        year = int(match.group(1)) if match else None
        sources.append(TrendSource(name=path.name, year=year, text=path.read_text(encoding="utf-8-sig")))

    logger.debug(f"Found {len(sources)} CSV files in {input_dir}")
    return sources


def write_tidy_csv(data, path: Path | str) -> Path:
    """Write tidy records or a tidy DataFrame to CSV.

    Columns are written in the tidy order, a missing region as an empty
    field and whole-number interest without a trailing ".0".
    """
    df = data if isinstance(data, pd.DataFrame) else records_to_frame(data)
    df = validate_tidy_frame(df).copy()

    df["region"] = df["region"].astype(object).where(df["region"].notna(), "")
    df["year"] = df["year"].astype(int)
    df["interest"] = df["interest"].astype(float)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, float_format="%.10g")
    return path
