"""
Query conditions over the fixed-width policy rule columns.

Builds Django ``Q`` objects used by the adapter to match or delete stored
rules:

- Partial conditions match a contiguous run of values starting at an arbitrary
  column (Casbin's ``field_index``). An empty value leaves its column
  unconstrained.
- Exact conditions match one fully specified row, empty values included.

All conditions are combined with AND, so building them is purely positional.
"""

from typing import Optional, Sequence

from django.db.models import Q

from authz_rulestore.engine.codec import FIELD_COUNT, FIELD_NAMES, PolicyRow


def is_valid_partial_spec(field_index: int, field_values: Sequence[str]) -> bool:
    """
    Check that ``field_values`` placed at ``field_index`` fit in the six columns.

    Args:
        field_index (int): Column where the first value is matched.
        field_values (Sequence[str]): Values to match, in column order.

    Returns:
        bool: True if the values fit, False otherwise (including no values at all).
    """
    return 0 <= field_index < FIELD_COUNT and 0 < len(field_values) <= FIELD_COUNT - field_index


def build_pattern_condition(pattern: Sequence[Optional[str]], field_index: int = 0) -> Q:
    """
    Build an AND condition over the columns covered by ``pattern``.

    Empty (or None) entries of the pattern are wildcards and add no constraint.
    Callers are responsible for keeping ``field_index + len(pattern)`` within
    the six columns.

    Args:
        pattern (Sequence[Optional[str]]): Values to match, in column order.
        field_index (int): Column matched by the first entry of the pattern.

    Returns:
        Q: The condition. An empty ``Q`` when every entry is a wildcard.
    """
    condition = Q()
    for offset, value in enumerate(pattern):
        if value:
            condition &= Q(**{FIELD_NAMES[field_index + offset]: value})
    return condition


def build_partial_condition(ptype: str, field_index: int, field_values: Sequence[str]) -> Optional[Q]:
    """
    Build the condition for Casbin's filtered policy removal.

    Matches rows of type ``ptype`` whose column ``field_index + i`` equals
    ``field_values[i]`` for every non-empty value.

    Args:
        ptype (str): Policy type of the rows to match.
        field_index (int): Column matched by the first value.
        field_values (Sequence[str]): Values to match. Empty values are wildcards.

    Returns:
        Optional[Q]: The condition, or None when the values do not fit in the
            columns. None means the store must not be queried at all.
    """
    if not is_valid_partial_spec(field_index, field_values):
        return None
    return Q(ptype=ptype) & build_pattern_condition(field_values, field_index)


def build_exact_condition(row: PolicyRow) -> Q:
    """
    Build the condition matching exactly one stored row.

    Every column must be equal, empty strings included; there are no wildcards.

    Args:
        row (PolicyRow): The fully specified row.

    Returns:
        Q: The condition.
    """
    return Q(**row.as_fields())
