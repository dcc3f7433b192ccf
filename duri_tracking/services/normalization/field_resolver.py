"""Canonical field resolution over heterogeneous key/value bags."""

import re
from collections.abc import Mapping
from typing import Optional

from duri_tracking.services.normalization.constants import ALIAS_TABLE, ARRAY_SEPARATORS
from duri_tracking.services.normalization.text_utils import normalize_key

_SEPARATORS = re.compile(ARRAY_SEPARATORS)


class FieldAliasResolver:
    """Resolves canonical fields (``exporter``, ``vessel``...) by alias.

    Keys in the input map may be raw custom-field names, normalized keys or
    note-derived keys; all are compared in normalized form. Resolution is:

    1. exact key match, walking the synonym list in order;
    2. containment: the first key that contains, or is contained by, a
       synonym (``exportadora`` resolves ``exporter``, ``bl`` resolves
       ``bill_of_lading`` through ``bl_awb``).

    Short synonyms make containment greedy, so the alias table avoids terms
    that are substrings of unrelated field names.

    The input map is never modified.
    """

    ALIAS_TABLE: dict[str, tuple[str, ...]] = ALIAS_TABLE

    def __init__(self, alias_table: Optional[Mapping[str, tuple[str, ...]]] = None):
        if alias_table is not None:
            self.ALIAS_TABLE = dict(alias_table)

    def synonyms(self, canonical: str) -> tuple[str, ...]:
        return self.ALIAS_TABLE.get(canonical) or (normalize_key(canonical),)

    def resolve(
        self, fields: Mapping[str, str], canonical: str, containment: bool = True
    ) -> str:
        """Resolve one canonical field.

        Args:
            fields: Key/value bag; values are expected to be strings
            canonical: Canonical field name from the alias table
            containment: Fall back to substring matching when no key is exact

        Returns:
            str: Trimmed value, or "" when no key matches
        """
        index = self._index(fields)
        synonyms = self.synonyms(canonical)

        for synonym in synonyms:
            value = index.get(synonym)
            if value:
                return value

        if not containment:
            return ""

        for synonym in synonyms:
            for key, value in index.items():
                if synonym in key or key in synonym:
                    return value

        return ""

    def resolve_array(self, fields: Mapping[str, str], canonical: str) -> list[str]:
        """Resolve a multi-valued field, split on ``, ; newline | /``.

        Returns:
            list[str]: Trimmed, non-empty, de-duplicated segments in input order
        """
        return split_values(self.resolve(fields, canonical))

    @staticmethod
    def _index(fields: Mapping[str, str]) -> dict[str, str]:
        # normalized key -> first non-blank value, in input order
        index: dict[str, str] = {}
        for key, value in fields.items():
            text = str(value).strip() if value is not None else ""
            normalized = normalize_key(str(key))
            if text and normalized and normalized not in index:
                index[normalized] = text
        return index


def split_values(value: str) -> list[str]:
    seen: dict[str, None] = {}
    for part in _SEPARATORS.split(value or ""):
        part = part.strip()
        if part:
            seen.setdefault(part, None)
    return list(seen)
