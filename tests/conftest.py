"""Pytest configuration and fixtures for the trends merge tests."""

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).parent.parent / "utils"))


def make_export(procedure_header, rows, preface=True, country_header="Country"):
    """Build the text of a Google Trends regional export.

    Args:
        procedure_header: Header of the value column, e.g. "botox: (2015)"
        rows: (country, value) pairs
        preface: Whether to add the "Category" lines Google Trends puts on top
        country_header: Header of the country column
    """
    lines = []
    if preface:
        lines += ["Category: All categories", ""]
    lines.append(f"{country_header},{procedure_header}")
    for country, value in rows:
        if "," in country:
            country = f'"{country}"'
        lines.append(f"{country},{value}")
    return "\n".join(lines) + "\n"


@pytest.fixture()
def export_text():
    """Factory for export file text."""
    return make_export


@pytest.fixture()
def botox_2015():
    """An export with one row for each kind of outcome."""
    return make_export(
        "botox: (2015)",
        [
            ("U.S.A.", "45"),
            ("Congo - Kinshasa", "12"),
            ("Atlantis", "30"),
            ("Canada", "<1"),
            ("", "20"),
            ("Germany", ""),
        ],
    )


@pytest.fixture()
def trends_dir(tmp_path):
    """A directory of yearly botox exports, plus files the merge should ignore or skip."""
    directory = tmp_path / "botox"
    directory.mkdir()

    (directory / "botox_2015.csv").write_text(
        make_export("botox: (2015)", [("U.S.A.", "45"), ("Atlantis", "30")]),
        encoding="utf-8",
    )
    (directory / "botox_2010.csv").write_text(
        make_export("botox: (2010)", [("Côte d'Ivoire", "7"), ("France", "50")], preface=False),
        encoding="utf-8",
    )
    (directory / "botox_notes.csv").write_text(
        make_export("botox: (????)", [("France", "1")]),
        encoding="utf-8",
    )
    (directory / "readme.txt").write_text("not an export", encoding="utf-8")
    return directory


@pytest.fixture()
def small_vocabulary():
    """A hand-sized vocabulary for resolver tests that do not depend on ISO data."""
    return {
        "KR": "Korea, Republic of",
        "KP": "Korea, Democratic People's Republic of",
        "CN": "China",
        "MD": "Moldova, Republic of",
        "NL": "Netherlands",
        "AW": "Aruba",
        "VG": "Virgin Islands, British",
        "VI": "Virgin Islands, U.S.",
        "TR": "Türkiye",
    }
