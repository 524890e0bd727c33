"""
Filter Implementation for Casbin Policy Selection.

This module provides the Filter class used to load only part of the stored
policy into a Casbin model, and the routing that turns it into a database
condition.

A filter carries two independent positional patterns: one for grouping rules
(policy types starting with ``g``) and one for permission rules (policy types
starting with ``p``). Each pattern is matched against ``v0``..``v5`` of the
rows of its own section, and a row is loaded when it matches the pattern of
its section.
"""

from typing import Optional

import attr
from django.db.models import Q

from authz_rulestore.engine.codec import FIELD_COUNT
from authz_rulestore.engine.conditions import build_pattern_condition

GROUPING_MARKER = "g"
PERMISSION_MARKER = "p"


@attr.define
class Filter:
    """
    Filter class for selective Casbin policy loading.

    Note:
        - Position ``i`` of a pattern is matched against column ``v{i}``.
        - Empty strings (or missing positions) mean no filtering on that column.
        - Entries past the sixth position are ignored.
        - An empty pattern loads every rule of its section.
    """

    p: Optional[list[str]] = attr.field(factory=list)
    """p (Optional[list[str]]): Pattern for permission rules (``p``, ``p2``...).

    For ``p = sub, dom, obj, act``, ``["", "domain1"]`` loads the rules of ``domain1``.
    """

    g: Optional[list[str]] = attr.field(factory=list)
    """g (Optional[list[str]]): Pattern for grouping rules (``g``, ``g2``...).

    For ``g = _, _, _``, ``["", "", "domain1"]`` loads the role assignments of ``domain1``.
    """

    @classmethod
    def coerce(cls, value) -> "Filter":
        """
        Build a Filter from the filter objects Casbin users commonly pass around.

        Accepts a Filter, a mapping with ``p``/``g`` keys, or an object with ``P``/``G``
        attributes such as ``casbin.persist.adapters.filtered_file_adapter.Filter``.

        Args:
            value: The filter-like object.

        Returns:
            Filter: The equivalent filter.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(p=list(value.get("p") or []), g=list(value.get("g") or []))
        return cls(
            p=list(getattr(value, "p", None) or getattr(value, "P", None) or []),
            g=list(getattr(value, "g", None) or getattr(value, "G", None) or []),
        )

    def where_values(self) -> tuple[list[str], list[str]]:
        """
        Expand both patterns to one entry per column.

        Returns:
            tuple: ``(g_values, p_values)``, each a list of six strings where
                unconstrained columns hold the empty string.
        """
        return _expand_pattern(self.g), _expand_pattern(self.p)


def _expand_pattern(pattern: Optional[list[str]]) -> list[str]:
    values = [""] * FIELD_COUNT
    for index, value in enumerate((pattern or [])[:FIELD_COUNT]):
        if value:
            values[index] = value
    return values


def build_section_condition(policy_filter: Filter) -> Q:
    """
    Build the condition selecting the rows matched by a filter.

    The condition is::

        (ptype starts with "g" AND g pattern) OR (ptype starts with "p" AND p pattern)

    Rows of any other section are never selected.

    Args:
        policy_filter (Filter): The filter to apply.

    Returns:
        Q: The condition.
    """
    g_values, p_values = policy_filter.where_values()
    grouping = Q(ptype__startswith=GROUPING_MARKER) & build_pattern_condition(g_values)
    permission = Q(ptype__startswith=PERMISSION_MARKER) & build_pattern_condition(p_values)
    return grouping | permission
