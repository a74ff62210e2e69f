from tidy_trends.countries import RegionResolver
from tidy_trends.countries import default_resolver
from tidy_trends.countries import resolve_region
from tidy_trends.merge import TrendRecord
from tidy_trends.merge import TrendSource
from tidy_trends.merge import discover_sources
from tidy_trends.merge import merge_trends
from tidy_trends.merge import write_tidy_csv
from tidy_trends.normalize import normalize_name
from tidy_trends.validation import MergeError
from tidy_trends.validation import ValidationError

__all__ = [
    "MergeError",
    "RegionResolver",
    "TrendRecord",
    "TrendSource",
    "ValidationError",
    "default_resolver",
    "discover_sources",
    "merge_trends",
    "normalize_name",
    "resolve_region",
    "write_tidy_csv",
]
