"""Region vocabulary and country name resolution.

This module is the single source of truth for turning a country name into a
region code. Both the merge pipeline and the map boundary use the resolver
defined here; they differ only in the alias table they load.

Design decisions:
- Region codes are ISO 3166-1 alpha-2 codes from the ``iso3166`` package
- Codes that ISO has withdrawn (SU, YU, ZR, ...) are never part of the
  vocabulary, so a stale alias cannot resurrect them
- Curated aliases always win over names derived from the ISO table
- Nothing is guessed: a name that does not hit a table resolves to None
"""

import functools
import logging
from collections.abc import Iterable
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import iso3166
import yaml

from tidy_trends.normalize import normalize_name
from tidy_trends.normalize import soften_name
from tidy_trends.validation import ValidationError
from tidy_trends.validation import validate_aliases

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
ALIASES_FILE = DATA_DIR / "aliases.yml"

# =============================================================================
# DEPRECATED CODES
# =============================================================================
# ISO 3166-3 codes of dissolved or renamed states. Some of these overlap with
# territory that later received a new code, so they are excluded outright.

DEPRECATED_CODES = frozenset(
    {
        "AN",  # Netherlands Antilles
        "BU",  # Burma
        "CS",  # Serbia and Montenegro / Czechoslovakia
        "CT",  # Canton and Enderbury Islands
        "DD",  # German Democratic Republic
        "DY",  # Dahomey
        "FQ",  # French Southern and Antarctic Territories
        "FX",  # France, Metropolitan
        "HV",  # Upper Volta
        "JT",  # Johnston Island
        "MI",  # Midway Islands
        "NH",  # New Hebrides
        "NQ",  # Dronning Maud Land
        "NT",  # Neutral Zone
        "PC",  # Pacific Islands (Trust Territory)
        "PU",  # US Miscellaneous Pacific Islands
        "PZ",  # Panama Canal Zone
        "RH",  # Southern Rhodesia
        "SK",  # Sikkim
        "SU",  # USSR
        "TP",  # East Timor
        "VD",  # Viet-Nam, Democratic Republic of
        "WK",  # Wake Island
        "YD",  # Yemen, Democratic
        "YU",  # Yugoslavia
        "ZR",  # Zaire
    },
)


# =============================================================================
# VOCABULARY
# =============================================================================


def _build_vocabulary() -> tuple[Mapping[str, str], Mapping[str, tuple[str, ...]]]:
    """Read the current ISO 3166-1 table.

    Returns
    -------
    tuple
        Read-only code -> display name, and code -> every name the ISO table
        knows for it (official name first, then the apolitical name).
    """
    vocabulary = {}
    names = {}
    for country in iso3166.countries:
        code = country.alpha2
        if code in DEPRECATED_CODES:
            continue
        vocabulary[code] = country.name
        known = [country.name]
        apolitical = getattr(country, "apolitical_name", None)
        if apolitical and apolitical != country.name:
            known.append(apolitical)
        names[code] = tuple(known)
    return MappingProxyType(vocabulary), MappingProxyType(names)


REGION_VOCABULARY, REGION_NAMES = _build_vocabulary()


def _derived_names(name: str) -> list[str]:
    """Short and reordered forms of an official ISO name.

    "Korea, Republic of" -> "Korea", "Republic of Korea"
    "Virgin Islands, British" -> "Virgin Islands", "British Virgin Islands"
    """
    if name.count(",") != 1:
        return []
    head, tail = (part.strip() for part in name.split(","))
    derived = [head]
    tail_lower = tail.lower()
    if tail_lower.endswith((" of", " of the")) or " " not in tail:
        derived.append(f"{tail} {head}")
    return derived


def build_display_index(
    vocabulary: Mapping[str, str],
    names: Mapping[str, Iterable[str]] | None = None,
) -> Mapping[str, str]:
    """Build the normalized display name -> code index.

    Names given for a code are indexed as-is. Forms derived from them (the
    part before a comma, the comma-inverted name) are added only where they
    are unambiguous and do not shadow a given name.

    Parameters
    ----------
    vocabulary : Mapping[str, str]
        Region code to display name.
    names : Mapping[str, Iterable[str]], optional
        Further names per code; the display name is always included.

    Returns
    -------
    Mapping[str, str]
        Read-only index.
    """
    index = {}
    derived = {}
    for code, display in vocabulary.items():
        all_names = [display, *(names.get(code, ()) if names else ())]
        for name in all_names:
            key = normalize_name(name)
            if key and key not in index:
                index[key] = code
            for short in _derived_names(name):
                derived.setdefault(normalize_name(short), set()).add(code)

    for key, codes in derived.items():
        if not key or key in index:
            continue
        if len(codes) > 1:
            logger.debug(f"Leaving ambiguous name {key!r} out of the index ({sorted(codes)})")
            continue
        index[key] = next(iter(codes))

    return MappingProxyType(index)


# =============================================================================
# ALIAS TABLES
# =============================================================================


def load_alias_table(path: Path | str = ALIASES_FILE, vocabulary: Mapping[str, str] = REGION_VOCABULARY) -> Mapping[str, str]:
    """Load an alias table from YAML.

    The file groups normalized names under the region code they resolve to::

        aliases:
          US:
            - usa
            - puerto rico

    Entries that are not normalized, that point outside the vocabulary, or
    that claim the same name for two codes are dropped with a warning.

    Returns
    -------
    Mapping[str, str]
        Read-only normalized name -> code table.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as file:
        data = yaml.safe_load(file) or {}

    grouped = data.get("aliases") or {}
    if not isinstance(grouped, Mapping):
        raise ValidationError(f"{path}: 'aliases' must be a mapping of region code to names")

    pairs = [(key, str(code)) for code, keys in grouped.items() for key in (keys or [])]

    problems = validate_aliases(pairs, vocabulary)
    for problem in problems:
        logger.warning(f"{path.name}: {problem}; entry ignored")

    counts = {}
    for key, code in pairs:
        counts.setdefault(key, set()).add(code)

    table = {}
    for key, code in pairs:
        if not isinstance(key, str) or normalize_name(key) != key or not key:
            continue
        if code not in vocabulary or len(counts[key]) > 1:
            continue
        table[key] = code

    logger.debug(f"Loaded {len(table)} aliases from {path.name}")
    return MappingProxyType(table)


# =============================================================================
# RESOLVER
# =============================================================================


class RegionResolver:
    """Resolve free-text country names to region codes.

    Lookup order for a name, first hit wins:

    1. alias table on the normalized key
    2. display index on the normalized key
    3. both again on the key with "republic of"-style qualifiers removed

    Results are memoized per normalized key with ``functools.lru_cache``, so
    one resolver can be shared by the merge worker threads.

    Parameters
    ----------
    vocabulary : Mapping[str, str]
        Valid region codes to display names.
    aliases : Mapping[str, str], optional
        Normalized name to region code overrides.
    names : Mapping[str, Iterable[str]], optional
        Further names per code for the display index.
    """

    def __init__(
        self,
        vocabulary: Mapping[str, str],
        aliases: Mapping[str, str] | None = None,
        names: Mapping[str, Iterable[str]] | None = None,
    ):
        self.vocabulary = MappingProxyType(dict(vocabulary))
        # Keep only aliases that land inside the vocabulary
        self.aliases = MappingProxyType(
            {key: code for key, code in (aliases or {}).items() if code in self.vocabulary},
        )
        self.display_index = build_display_index(self.vocabulary, names)
        # Per-instance, thread-safe memo of normalized key -> code
        self._resolve_key = functools.lru_cache(maxsize=None)(self._resolve_uncached)

    def _lookup(self, key: str) -> str | None:
        if not key:
            return None
        if key in self.aliases:
            return self.aliases[key]
        return self.display_index.get(key)

    def _resolve_uncached(self, key: str) -> str | None:
        code = self._lookup(key)
        if code is None:
            code = self._lookup(soften_name(key))
        return code

    def resolve(self, raw_name) -> str | None:
        """Return the region code for ``raw_name``, or None if it is unknown."""
        return self._resolve_key(normalize_name(raw_name))

    def display_name(self, code: str) -> str | None:
        """Display name for a region code."""
        return self.vocabulary.get(code)

    def __contains__(self, raw_name) -> bool:
        return self.resolve(raw_name) is not None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(codes={len(self.vocabulary)}, "
            f"aliases={len(self.aliases)}, index={len(self.display_index)})"
        )


@functools.lru_cache(maxsize=None)
def default_resolver() -> RegionResolver:
    """Shared resolver for names found in Google Trends exports."""
    return RegionResolver(REGION_VOCABULARY, load_alias_table(ALIASES_FILE), REGION_NAMES)


def resolve_region(raw_name) -> str | None:
    """Resolve a Google Trends country name with the shared resolver.

    Examples
    --------
        "U.S.A."           -> "US"
        "Congo - Kinshasa" -> "CD"
        "Atlantis"         -> None
    """
    return default_resolver().resolve(raw_name)
