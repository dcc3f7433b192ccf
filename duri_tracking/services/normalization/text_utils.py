"""String helpers shared by the normalization components."""

import re
import unicodedata
from datetime import date, datetime
from typing import Optional

from duri_tracking.services.normalization.constants import DATE_FORMATS

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def strip_accents(value: str) -> str:
    """Remove combining marks: ``"IMPORTAÇÃO"`` -> ``"IMPORTACAO"``."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_key(value: str) -> str:
    """Field-name key: accents stripped, lowercase, non-alphanumerics to ``_``.

    Example:
        >>> normalize_key("Nº BL/AWB")
        'n_bl_awb'
    """
    return _NON_ALNUM.sub("_", strip_accents(value).lower()).strip("_")


def slugify(value: str, fallback: str = "") -> str:
    """URL slug: accents stripped, lowercase, non-alphanumerics to ``-``."""
    slug = _NON_ALNUM.sub("-", strip_accents(value).lower()).strip("-")
    return slug or fallback


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def parse_date(value: str) -> Optional[date]:
    """Parse a date written in any of ``DATE_FORMATS`` or ISO datetime form.

    Returns:
        date: Parsed calendar date, or None when the value is not a date
    """
    text = (value or "").strip()
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
