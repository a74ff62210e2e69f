"""Comparison keys for country names.

Every lookup in the resolver goes through :func:`normalize_name`, so two
spellings that differ only in accents, case, punctuation or a leading article
end up on the same key. Word order is never changed: some aliases depend on it
("congo - kinshasa" vs "republic of the congo").
"""

import re
import unicodedata

# Characters dropped outright, after the ampersand has become a word
_STRIP_CHARS = re.compile(r"[().,'‘’]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = "the "

# Qualifier phrases removed by the soft strip, in priority order.
# Patterns are written against normalized text (apostrophes already gone).
SOFT_STRIP_RULES = (
    ("people's republic of", re.compile(r"\bpeoples republic of\b")),
    ("republic of", re.compile(r"\brepublic of\b")),
    ("state of", re.compile(r"\bstate of\b")),
)


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def strip_accents(text: str) -> str:
    """Decompose ``text`` and drop the combining marks ("Côte" -> "Cote")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_name(raw) -> str:
    """Reduce a raw country name to its comparison key.

    Parameters
    ----------
    raw : str or None
        Name as found in an export file, an alias table or a boundary dataset.

    Returns
    -------
    str
        Lower-case, accent-free key without punctuation or a leading "the".
        Never raises; ``None`` gives the empty string.

    Examples
    --------
        "Côte d'Ivoire" -> "cote divoire"
        "The Bahamas"   -> "bahamas"
        "St. Kitts & Nevis" -> "st kitts and nevis"
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)

    key = strip_accents(raw).lower()
    key = key.replace("&", " and ")
    key = _STRIP_CHARS.sub("", key)
    key = _collapse(key)

    # "the the gambia" must still reach a fixed point
    while key.startswith(_LEADING_ARTICLE):
        key = key[len(_LEADING_ARTICLE) :].lstrip()

    return key


def soften_name(key: str) -> str:
    """Apply the qualifier strip to an already normalized key.

    "korea republic of" -> "korea", "state of palestine" -> "palestine".
    Each rule removes every occurrence of its phrase before the next rule runs.
    """
    for _, pattern in SOFT_STRIP_RULES:
        key = pattern.sub(" ", key)
    return _collapse(key)
