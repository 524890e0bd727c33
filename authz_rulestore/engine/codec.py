"""
Rule codec between Casbin rule lines and fixed-width policy rows.

Casbin hands rules to the adapter as variable-length lists of strings
(``["alice", "data1", "read"]``) tagged with a policy type (``p``, ``g``,
``g2``...). The database stores every rule in the same fixed-width row of six
value columns. This module converts between both representations:

- ``widen`` pads a rule with empty strings up to six values.
- ``normalize`` trims the trailing empty strings of a stored row back to the
  original rule.

Only *trailing* empty values are padding. An empty value followed by a
non-empty one is part of the rule and is kept as-is in both directions.
"""

from typing import Optional, Sequence

import attr

FIELD_NAMES = ("v0", "v1", "v2", "v3", "v4", "v5")
FIELD_COUNT = len(FIELD_NAMES)


@attr.define(frozen=True)
class PolicyRow:
    """
    Fixed-width representation of a Casbin rule.

    Mirrors the columns of the ``PolicyRule`` model. Values past the end of the
    rule hold the empty string.
    """

    ptype: str
    """ptype (str): Type of policy (e.g. ``p``, ``g``, ``g2``)."""

    v0: str = ""
    """v0 (str): First policy value."""

    v1: str = ""
    """v1 (str): Second policy value."""

    v2: str = ""
    """v2 (str): Third policy value."""

    v3: str = ""
    """v3 (str): Fourth policy value."""

    v4: str = ""
    """v4 (str): Fifth policy value."""

    v5: str = ""
    """v5 (str): Sixth policy value."""

    @property
    def values(self) -> tuple[str, ...]:
        """The six value fields, in column order."""
        return (self.v0, self.v1, self.v2, self.v3, self.v4, self.v5)

    def as_fields(self) -> dict[str, str]:
        """
        Return the row as keyword arguments for the ``PolicyRule`` model.

        Returns:
            dict: Mapping of column name to value, ``ptype`` included.
        """
        return attr.asdict(self)

    @classmethod
    def from_model(cls, instance) -> "PolicyRow":
        """
        Build a row from a stored ``PolicyRule`` instance.

        NULL columns, which may exist in tables populated by other tools, are
        read as empty strings.

        Args:
            instance: A ``PolicyRule`` instance (or any object with the same attributes).

        Returns:
            PolicyRow: The fixed-width row.
        """
        return cls(
            instance.ptype or "",
            *(getattr(instance, name) or "" for name in FIELD_NAMES),
        )

    def __str__(self):
        return ", ".join([self.ptype, *(normalize(self) or [])])


def widen(ptype: str, rule: Sequence[str]) -> Optional[PolicyRow]:
    """
    Pad a Casbin rule into a fixed-width row.

    Args:
        ptype (str): Policy type of the rule.
        rule (Sequence[str]): Rule values, at most six.

    Returns:
        Optional[PolicyRow]: The widened row, or None when the rule is malformed:
            blank policy type, no values, or more values than there are columns.
            Malformed rules are never truncated to fit.
    """
    if not ptype or not ptype.strip():
        return None
    if not rule or len(rule) > FIELD_COUNT:
        return None
    return PolicyRow(ptype, *rule)


def normalize(row: PolicyRow) -> Optional[list[str]]:
    """
    Trim the padding of a fixed-width row back into a Casbin rule.

    Trailing empty values are removed starting from ``v5`` and stopping at the
    first non-empty one. Interior empty values are preserved.

    Args:
        row (PolicyRow): The stored row.

    Returns:
        Optional[list[str]]: The rule values, or None when every value is empty.
    """
    values = list(row.values)
    while values and values[-1] == "":
        values.pop()
    return values or None
