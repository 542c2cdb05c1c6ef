"""Ranked completion entries for Data Extensions, fields, and join predicates."""

from __future__ import annotations

import re
from typing import Collection, Iterable, Mapping, Sequence

from .catalog import SHARED_PREFIX, is_identity_field
from .metadata import DataExtension, DataExtensionField, normalize_table_name
from .models import Suggestion, SuggestionType, TableReference

MAX_SUGGESTIONS = 10

_SHARED_TERM = re.compile(rf"^{SHARED_PREFIX}\.", re.IGNORECASE)
_WORD_BOUNDARY = re.compile(r"(?=[A-Z])|_")

# Match tiers, best first.
_TIER_PREFIX = 0
_TIER_BOUNDARY = 1
_TIER_CONTAINS = 2
_TIER_FUZZY = 3

# Known join keys between system data views, keyed "left|right" on normalized names.
JOIN_OVERRIDES: Mapping[str, tuple[tuple[str, str], ...]] = {
    "_subscribers|_sent": (("SubscriberID", "SubscriberID"),),
    "_subscribers|_open": (("SubscriberID", "SubscriberID"),),
    "_subscribers|_click": (("SubscriberID", "SubscriberID"),),
    "_subscribers|_bounce": (("SubscriberID", "SubscriberID"),),
    "_subscribers|_unsubscribe": (("SubscriberID", "SubscriberID"),),
    "_subscribers|_listsubscribers": (("SubscriberKey", "SubscriberKey"),),
    "_sent|_open": (("JobID", "JobID"), ("SubscriberKey", "SubscriberKey")),
    "_sent|_click": (("JobID", "JobID"), ("SubscriberKey", "SubscriberKey")),
    "_sent|_bounce": (("JobID", "JobID"), ("SubscriberKey", "SubscriberKey")),
    "_sent|_job": (("JobID", "JobID"),),
    "_open|_job": (("JobID", "JobID"),),
    "_click|_job": (("JobID", "JobID"),),
    "_job|_journey": (("TriggererSendDefinitionObjectID", "JourneyActivityObjectID"),),
    "_journey|_journeyactivity": (("VersionID", "VersionID"),),
}


def fuzzy_match(term: str, candidate: str) -> bool:
    """Case-insensitive ordered-subsequence match; an empty term matches anything."""

    needle = _strip_shared(term).strip().lower()
    if not needle:
        return True
    position = 0
    for char in candidate.strip().lower():
        if char == needle[position]:
            position += 1
            if position == len(needle):
                return True
    return False


def match_tier(term: str, candidate: str) -> int:
    """Rank how well ``candidate`` matches ``term`` (lower is better)."""

    needle = _strip_shared(term).strip().lower()
    name = candidate.strip()
    if not needle or name.lower().startswith(needle):
        return _TIER_PREFIX
    parts = [part.lower() for part in _WORD_BOUNDARY.split(name) if part]
    if any(part.startswith(needle) for part in parts):
        return _TIER_BOUNDARY
    if needle in name.lower():
        return _TIER_CONTAINS
    return _TIER_FUZZY


def build_table_suggestions(
    tables: Iterable[DataExtension],
    shared_folder_ids: Collection[str],
    search_term: str = "",
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Filter and rank Data Extensions for the table completion list."""

    term = _strip_shared(search_term).strip()
    candidates = [
        table
        for table in tables
        if fuzzy_match(term, table.name) or fuzzy_match(term, table.customer_key)
    ]
    if term:
        candidates.sort(key=lambda table: (match_tier(term, table.name), len(table.name), table.name.lower()))
    else:
        candidates.sort(key=lambda table: table.name.lower())

    suggestions: list[Suggestion] = []
    for rank, table in enumerate(candidates[: max(limit, 0)]):
        shared = table.is_shared or (table.folder_id is not None and table.folder_id in shared_folder_ids)
        text = bracketed(table.name)
        if shared:
            text = f"{SHARED_PREFIX}.{text}"
        suggestions.append(
            Suggestion(
                label=text,
                type=SuggestionType.TABLE,
                insert_text=text,
                name=table.name,
                detail="Shared Data Extension" if shared else "Data Extension",
                customer_key=table.customer_key,
                is_shared=shared,
                score=float(-rank),
            )
        )
    return suggestions


def build_field_suggestions(
    fields: Iterable[DataExtensionField],
    *,
    prefix: str | None = None,
    owner: str | None = None,
    search_term: str = "",
) -> list[Suggestion]:
    """Field completions sorted by label; names with spaces are bracketed."""

    entries: list[Suggestion] = []
    for item in fields:
        if not fuzzy_match(search_term, item.name):
            continue
        base = bracketed(item.name) if " " in item.name else item.name
        entries.append(
            Suggestion(
                label=f"{item.name} - {item.type_label}",
                type=SuggestionType.FIELD,
                insert_text=f"{prefix}.{base}" if prefix else base,
                name=item.name,
                detail=f"Field • {owner}" if owner else "Field",
            )
        )
    entries.sort(key=lambda entry: entry.label.lower())
    return entries


def build_join_suggestions(
    left: TableReference,
    right: TableReference,
    left_fields: Sequence[DataExtensionField] = (),
    right_fields: Sequence[DataExtensionField] = (),
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Suggest ``ON`` predicates joining ``left`` to ``right``.

    Known system view pairs come from :data:`JOIN_OVERRIDES` (either
    direction); otherwise fields sharing a name are paired, subscriber
    identity columns first.
    """

    left_name = _reference_name(left)
    right_name = _reference_name(right)
    pairs = list(JOIN_OVERRIDES.get(f"{left_name}|{right_name}", ()))
    if not pairs:
        pairs = [(b, a) for a, b in JOIN_OVERRIDES.get(f"{right_name}|{left_name}", ())]
    if not pairs:
        right_by_name = {item.name.lower(): item for item in right_fields}
        shared = [item for item in left_fields if item.name.lower() in right_by_name]
        shared.sort(key=lambda item: (not is_identity_field(item.name), item.name.lower()))
        pairs = [(item.name, right_by_name[item.name.lower()].name) for item in shared]

    left_qualifier = _qualifier(left)
    right_qualifier = _qualifier(right)
    suggestions: list[Suggestion] = []
    for rank, (left_field, right_field) in enumerate(pairs[: max(limit, 0)]):
        predicate = f"{left_qualifier}.{left_field} = {right_qualifier}.{right_field}"
        suggestions.append(
            Suggestion(
                label=predicate,
                type=SuggestionType.JOIN,
                insert_text=predicate,
                name=left_field,
                detail="Join condition",
                score=float(-rank),
            )
        )
    return suggestions


def bracketed(name: str) -> str:
    value = name.strip()
    if value.startswith("[") and value.endswith("]"):
        return value
    return f"[{value}]"


def _strip_shared(term: str) -> str:
    return _SHARED_TERM.sub("", term.strip())


def _reference_name(reference: TableReference) -> str:
    return normalize_table_name(reference.qualified_name or reference.name)


def _qualifier(reference: TableReference) -> str:
    if reference.alias:
        return reference.alias
    if reference.is_shared:
        return reference.qualified_name
    return reference.name if " " not in reference.name else bracketed(reference.name)


__all__ = [
    "JOIN_OVERRIDES",
    "MAX_SUGGESTIONS",
    "bracketed",
    "build_field_suggestions",
    "build_join_suggestions",
    "build_table_suggestions",
    "fuzzy_match",
    "match_tier",
]
