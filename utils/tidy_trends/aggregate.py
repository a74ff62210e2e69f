"""Reading the tidy dataset the way the map and charts consume it.

The merge keeps rows whose country did not resolve, so maintainers can see
them. Everything that aggregates goes through :func:`usable_rows`, which is
where those rows are left out.

Boundary features are matched with the same normalization and resolver class
as the export names, only with the feature alias table.
"""

import functools
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from tidy_trends.countries import DATA_DIR
from tidy_trends.countries import REGION_NAMES
from tidy_trends.countries import REGION_VOCABULARY
from tidy_trends.countries import RegionResolver
from tidy_trends.countries import load_alias_table
from tidy_trends.validation import validate_tidy_frame

logger = logging.getLogger(__name__)

FEATURE_ALIASES_FILE = DATA_DIR / "feature_aliases.yml"


def load_tidy_csv(path: Path | str) -> pd.DataFrame:
    """Load a tidy CSV written by the merge.

    ``region`` is read as text so Namibia ("NA") survives, and an empty region
    comes back as None.
    """
    df = pd.read_csv(
        path,
        dtype={"country": str, "region": str, "procedure": str},
        keep_default_na=False,
    )
    df = validate_tidy_frame(df, source_name=str(path)).copy()
    df["region"] = df["region"].map(lambda code: code.strip() or None)
    df["interest"] = pd.to_numeric(df["interest"], errors="coerce")
    df["year"] = pd.to_numeric(df["year"], errors="coerce").astype("Int64")
    return df


def usable_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with a region and a finite interest value."""
    df = validate_tidy_frame(df)
    region = df["region"].fillna("").astype(str).str.strip()
    interest = pd.to_numeric(df["interest"], errors="coerce").astype(float)
    mask = (region != "") & np.isfinite(interest)
    dropped = len(df) - int(mask.sum())
    if dropped:
        logger.debug(f"Leaving out {dropped} rows without a region or interest value")
    return df[mask]


def mean_interest_by_region(df: pd.DataFrame, procedure: str, year: int) -> pd.DataFrame:
    """Mean interest per region for one procedure and year.

    Returns
    -------
    pd.DataFrame
        Columns ``region`` and ``interest``, sorted by region. Empty when the
        selection has no usable rows.
    """
    df = usable_rows(df)
    selection = df[(df["procedure"].str.lower() == procedure.strip().lower()) & (df["year"] == year)]
    if selection.empty:
        return pd.DataFrame({"region": pd.Series(dtype=str), "interest": pd.Series(dtype=float)})

    return (
        selection.assign(interest=selection["interest"].astype(float))
        .groupby("region", sort=True)["interest"]
        .mean()
        .reset_index()
    )


@functools.lru_cache(maxsize=None)
def feature_resolver() -> RegionResolver:
    """Shared resolver for country feature names in the boundary dataset."""
    return RegionResolver(REGION_VOCABULARY, load_alias_table(FEATURE_ALIASES_FILE), REGION_NAMES)


def resolve_features(names, resolver: RegionResolver | None = None) -> tuple[dict, list]:
    """Map boundary feature names to region codes.

    Returns
    -------
    tuple[dict, list]
        Feature name -> code for the names that resolved, and the sorted
        names that did not.
    """
    if resolver is None:
        resolver = feature_resolver()

    mapping = {}
    unresolved = set()
    for name in names:
        code = resolver.resolve(name)
        if code is None:
            unresolved.add(name)
        else:
            mapping[name] = code

    if unresolved:
        logger.warning(f"Boundary features without a region: {', '.join(sorted(unresolved))}")

    return mapping, sorted(unresolved)


def interest_by_feature(df: pd.DataFrame, procedure: str, year: int, feature_names, resolver=None) -> pd.DataFrame:
    """Attach the mean interest of each feature's region to the feature names.

    Features whose region has no data, or that do not resolve, get NaN so the
    renderer can draw them as "no data".
    """
    feature_names = list(feature_names)
    mapping, _ = resolve_features(feature_names, resolver)
    means = mean_interest_by_region(df, procedure, year).set_index("region")["interest"]

    features = pd.DataFrame({"feature": list(feature_names)})
    features["region"] = features["feature"].map(mapping)
    features["interest"] = features["region"].map(means)
    return features
