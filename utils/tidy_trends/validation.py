"""Validation and merge tracking for the trends merge pipeline.

This module provides:
1. The error types raised by the pipeline
2. Alias table validation against the region vocabulary
3. MergeReport for tracking what happened to every file and row
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

import pandas as pd

from tidy_trends.normalize import normalize_name

logger = logging.getLogger(__name__)

# Column order of the tidy dataset
TIDY_COLUMNS = ["country", "region", "year", "procedure", "interest"]


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


class MergeError(Exception):
    """Raised when a merge run cannot produce a usable tidy dataset."""

    pass


@dataclass
class SkippedFile:
    """Record of a source file left out of the merge."""

    name: str
    reason: str  # "no_year", "empty", "no_value_column", "no_country_column"
    columns: list = field(default_factory=list)


@dataclass
class MergeReport:
    """Report of a merge run.

    Every row read is accounted for: it is either emitted or counted under
    one of the drop reasons.
    """

    procedure: str = ""
    files_seen: int = 0
    files_merged: int = 0
    rows_read: int = 0
    rows_empty_name: int = 0
    rows_no_value: int = 0
    rows_malformed: int = 0
    rows_emitted: int = 0
    rows_unresolved: int = 0
    skipped_files: list = field(default_factory=list)
    unresolved_names: set = field(default_factory=set)
    warnings: list = field(default_factory=list)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning(message)

    def skip_file(self, name: str, reason: str, message: str, columns=None) -> None:
        """Record a skipped source file and warn about it."""
        self.skipped_files.append(SkippedFile(name=name, reason=reason, columns=list(columns or [])))
        self.add_warning(message)

    def absorb(self, other: "MergeReport") -> None:
        """Fold a per-file report into this one."""
        self.files_seen += other.files_seen
        self.files_merged += other.files_merged
        self.rows_read += other.rows_read
        self.rows_empty_name += other.rows_empty_name
        self.rows_no_value += other.rows_no_value
        self.rows_malformed += other.rows_malformed
        self.rows_emitted += other.rows_emitted
        self.rows_unresolved += other.rows_unresolved
        self.skipped_files.extend(other.skipped_files)
        self.unresolved_names |= other.unresolved_names
        # Warnings were already logged by the per-file report
        self.warnings.extend(other.warnings)

    @property
    def rows_dropped(self) -> int:
        return self.rows_empty_name + self.rows_no_value + self.rows_malformed

    def summary(self) -> str:
        """Generate a summary of the merge run."""
        lines = [
            "=" * 60,
            f"TRENDS MERGE SUMMARY ({self.procedure})",
            "=" * 60,
            f"Files seen:                {self.files_seen}",
            f"Files merged:              {self.files_merged}",
            f"Files skipped:             {len(self.skipped_files)}",
            "-" * 60,
            f"Rows read:                 {self.rows_read}",
            f"Dropped (empty name):      {self.rows_empty_name}",
            f"Dropped (no value):        {self.rows_no_value}",
            f"Dropped (malformed):       {self.rows_malformed}",
            f"Rows written:              {self.rows_emitted}",
            f"Rows without region:       {self.rows_unresolved}",
            f"Unresolved names:          {len(self.unresolved_names)}",
            "=" * 60,
        ]

        if self.skipped_files:
            lines.append("\nSKIPPED FILES:")
            for skipped in self.skipped_files:
                lines.append(f"  - {skipped.name} ({skipped.reason})")

        if self.warnings:
            lines.append("\nWARNINGS:")
            for warning in self.warnings[:10]:  # Show first 10
                lines.append(f"  - {warning}")
            if len(self.warnings) > 10:
                lines.append(f"  ... and {len(self.warnings) - 10} more warnings")

        return "\n".join(lines)


def validate_aliases(aliases, vocabulary: Mapping[str, str]) -> list[str]:
    """Check an alias table against the normalization and vocabulary rules.

    Parameters
    ----------
    aliases : Mapping[str, str] or iterable of (key, code) pairs
        Alias entries, normalized name key to region code. Pairs are accepted
        so that the same key given twice can be detected.
    vocabulary : Mapping[str, str]
        Valid region codes to display names.

    Returns
    -------
    list[str]
        One message per problem; empty when the table is clean.
    """
    if isinstance(aliases, Mapping):
        entries = list(aliases.items())
    else:
        entries = list(aliases)

    problems = []
    seen = {}
    for key, code in entries:
        if not isinstance(key, str) or not key:
            problems.append(f"Alias key {key!r} is empty or not a string")
            continue
        if normalize_name(key) != key:
            problems.append(f"Alias key {key!r} is not normalized (expected {normalize_name(key)!r})")
        if code not in vocabulary:
            problems.append(f"Alias {key!r} points to {code!r}, which is not a current region code")
        if key in seen and seen[key] != code:
            problems.append(f"Alias {key!r} maps to both {seen[key]!r} and {code!r}")
        seen.setdefault(key, code)

    return problems


def validate_tidy_frame(df: pd.DataFrame, source_name: str = "tidy dataset") -> pd.DataFrame:
    """Make sure a DataFrame has the tidy columns and return them in order.

    Raises
    ------
    ValidationError
        If any of the tidy columns is missing.
    """
    if df is None:
        raise ValidationError(f"{source_name}: DataFrame is None")

    missing_columns = [col for col in TIDY_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValidationError(
            f"{source_name}: Missing required columns: {missing_columns}. "
            f"Available columns: {df.columns.tolist()}",
        )

    return df[TIDY_COLUMNS]
