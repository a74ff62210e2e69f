"""Tests for reading export directories and writing the tidy CSV."""

import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).parent.parent / "utils"))

from tidy_trends.merge import TrendRecord
from tidy_trends.merge import discover_sources
from tidy_trends.merge import merge_trends
from tidy_trends.merge import natural_sort_key
from tidy_trends.merge import write_tidy_csv
from tidy_trends.validation import MergeError
from tidy_trends.validation import ValidationError


class TestDiscoverSources:
    """Test discovery of yearly export files."""

    def test_only_csv_files(self, trends_dir):
        names = [source.name for source in discover_sources(trends_dir)]
        assert "readme.txt" not in names
        assert len(names) == 3

    def test_sorted_by_name(self, trends_dir):
        names = [source.name for source in discover_sources(trends_dir)]
        assert names == ["botox_2010.csv", "botox_2015.csv", "botox_notes.csv"]

    def test_year_from_file_name(self, trends_dir):
        years = [source.year for source in discover_sources(trends_dir)]
        assert years == [2010, 2015, None]

    def test_upper_case_suffix(self, tmp_path):
        (tmp_path / "BOTOX_2012.CSV").write_text("Country,botox\nFrance,1\n", encoding="utf-8")
        sources = discover_sources(tmp_path)
        assert [source.year for source in sources] == [2012]

    def test_byte_order_mark_stripped(self, tmp_path):
        (tmp_path / "botox_2013.csv").write_text("\ufeffCountry,botox\nFrance,1\n", encoding="utf-8")
        assert discover_sources(tmp_path)[0].text.startswith("Country,")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MergeError):
            discover_sources(tmp_path / "missing")

    def test_empty_directory(self, tmp_path):
        assert discover_sources(tmp_path) == []

    def test_natural_sort(self):
        names = ["part_10.csv", "part_2.csv", "part_1.csv"]
        assert sorted(names, key=natural_sort_key) == ["part_1.csv", "part_2.csv", "part_10.csv"]


class TestDirectoryMerge:
    """Merge straight from a discovered directory."""

    def test_merge_discovered_sources(self, trends_dir):
        result = merge_trends("botox", discover_sources(trends_dir))

        assert [(row.country, row.region, row.year) for row in result.rows] == [
            ("Côte d'Ivoire", "CI", 2010),
            ("France", "FR", 2010),
            ("U.S.A.", "US", 2015),
            ("Atlantis", None, 2015),
        ]
        assert result.unresolved == frozenset({"Atlantis"})
        assert [skipped.name for skipped in result.report.skipped_files] == ["botox_notes.csv"]


class TestWriteTidyCSV:
    """Test the tidy CSV output."""

    @pytest.fixture()
    def rows(self):
        return [
            TrendRecord(country="U.S.A.", region="US", year=2015, procedure="botox", interest=45.0),
            TrendRecord(country="Atlantis", region=None, year=2015, procedure="botox", interest=30.0),
            TrendRecord(country="Namibia", region="NA", year=2016, procedure="botox", interest=12.5),
        ]

    def test_exact_output(self, rows, tmp_path):
        path = write_tidy_csv(rows, tmp_path / "out" / "botox.csv")

        assert path.read_text(encoding="utf-8").splitlines() == [
            "country,region,year,procedure,interest",
            "U.S.A.,US,2015,botox,45",
            "Atlantis,,2015,botox,30",
            "Namibia,NA,2016,botox,12.5",
        ]

    def test_accepts_dataframe(self, rows, tmp_path):
        df = pd.DataFrame([row.__dict__ for row in rows])[["interest", "year", "procedure", "region", "country"]]
        path = write_tidy_csv(df, tmp_path / "botox.csv")

        header = path.read_text(encoding="utf-8").splitlines()[0]
        assert header == "country,region,year,procedure,interest"

    def test_rejects_frame_without_tidy_columns(self, tmp_path):
        with pytest.raises(ValidationError):
            write_tidy_csv(pd.DataFrame({"country": ["France"]}), tmp_path / "bad.csv")

    def test_quotes_names_with_commas(self, tmp_path):
        rows = [TrendRecord(country="Korea, Republic of", region="KR", year=2015, procedure="botox", interest=80.0)]
        path = write_tidy_csv(rows, tmp_path / "botox.csv")

        assert '"Korea, Republic of",KR,2015,botox,80' in path.read_text(encoding="utf-8")
