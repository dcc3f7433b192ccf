"""Company and sequence-reference extraction from free-text task titles.

Operational task titles follow a handful of loose conventions::

    122º WCB
    17º AMZ (IMPORTAÇÃO)
    45 - ACME
    EXPOFRUT (IMPORTAÇÃO DIRETA 01.2025)

``TitleParser`` tries an ordered list of patterns and takes the first one
that matches. The order is a policy choice and can be replaced per instance.
Titles are matched case-insensitively (``28º Agrivale`` works) and names come
back uppercased. Only the last-resort uppercase-run fallback is case-sensitive.
"""

import re
from typing import Iterable, Optional

from duri_tracking.schemas.tracking import ParsedTitle
from duri_tracking.services.normalization.constants import (
    TITLE_PATTERNS,
    TITLE_STOP_WORDS,
    UNKNOWN_COMPANY_SENTINELS,
)
from duri_tracking.services.normalization.text_utils import collapse_whitespace

_TRAILING_PUNCTUATION = re.compile(r"[.\-\s]+$")


class TitleParser:
    """Extracts ``(sequence_ref, company_name)`` from a task title.

    Each pattern must expose a ``name`` group and may expose a ``ref`` group.
    Matching stops at the first pattern that matches; when its captured name
    is rejected by post-processing the title is unattributed rather than
    retried against later patterns.
    """

    def __init__(
        self,
        patterns: Optional[Iterable[tuple[str, str]]] = None,
        stop_words: Iterable[str] = TITLE_STOP_WORDS,
    ):
        """Initialize the parser.

        Args:
            patterns: Ordered ``(regex, label)`` pairs. Defaults to ``TITLE_PATTERNS``.
            stop_words: Cleaned names that are never accepted as a company
        """
        self.patterns = [
            (re.compile(regex), label) for regex, label in (patterns or TITLE_PATTERNS)
        ]
        self.stop_words = frozenset(stop_words)

    def parse(self, title: Optional[str]) -> ParsedTitle:
        """Parse one title.

        Args:
            title: Raw task title; None and blank titles are allowed

        Returns:
            ParsedTitle: Both fields empty when nothing usable was found
        """
        text = (title or "").strip()
        if not text:
            return ParsedTitle()

        for pattern, _label in self.patterns:
            match = pattern.search(text)
            if match is None:
                continue

            groups = match.groupdict()
            company = self.clean_name(groups.get("name") or "")
            if not company:
                return ParsedTitle()
            return ParsedTitle(sequence_ref=groups.get("ref") or "", company_name=company)

        return ParsedTitle()

    def clean_name(self, raw: str) -> str:
        """Uppercase, collapse whitespace, trim trailing punctuation, apply stop-list.

        Returns:
            str: Cleaned name, or "" when rejected
        """
        name = _TRAILING_PUNCTUATION.sub("", collapse_whitespace(raw.upper()))
        if len(name) < 2 or name in self.stop_words:
            return ""
        return name


_default_parser = TitleParser()


def parse_title(title: Optional[str]) -> ParsedTitle:
    """Parse a title with the default pattern order."""
    return _default_parser.parse(title)


def is_attributable(company_name: str) -> bool:
    """Whether a company name may appear in company-scoped results."""
    name = company_name.strip().upper()
    return bool(name) and name not in UNKNOWN_COMPANY_SENTINELS
