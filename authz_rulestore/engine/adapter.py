"""
Casbin Adapter backed by the PolicyRule Django model.

This module provides the adapter that Casbin enforcers use to read and write
their policy from the ``PolicyRule`` table. It implements the plain, filtered
and batch adapter interfaces of pycasbin:

- Rules are widened to the six value columns on write and trimmed back on read
  (see ``authz_rulestore.engine.codec``).
- Filtered loading selects grouping and permission rules with two independent
  patterns (see ``authz_rulestore.engine.filter``).
- Filtered removal matches a run of columns starting at any position (see
  ``authz_rulestore.engine.conditions``).

Write policies:

- ``save_policy`` replaces the whole table with the rules of the model.
- ``add_policy`` and ``add_policies`` reject duplicates: inserting a rule that is
  already stored raises ``ConstraintViolation``.
- Malformed rules (blank policy type, no values, more than six values) are
  never sent to the database. Writes ignore them, loads skip them.

Batch operations run one query per rule and are not atomic. Wrap them in
``adapter.atomic()`` when all-or-nothing behavior is needed.
"""

import logging
from typing import Iterable, Optional

from casbin import persist
from casbin.model import Model
from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from authz_rulestore.engine.codec import PolicyRow, normalize, widen
from authz_rulestore.engine.conditions import build_exact_condition, build_partial_condition
from authz_rulestore.engine.exceptions import store_errors
from authz_rulestore.engine.filter import GROUPING_MARKER, PERMISSION_MARKER, Filter, build_section_condition
from authz_rulestore.models import PolicyRule

logger = logging.getLogger(__name__)


class RuleStoreAdapter(persist.FilteredAdapter, persist.BatchAdapter):
    """
    Casbin adapter storing rules in the ``PolicyRule`` table.

    The adapter only borrows a database alias; connections, transactions and
    timeouts belong to Django. Queries are issued sequentially, one at a time.

    Inherits from:
        FilteredAdapter: Interface for filtered policy loading.
        BatchAdapter: Interface for adding and removing several rules at once.

    Attributes:
        db_alias (str): Django database alias holding the ``PolicyRule`` table.
    """

    def __init__(self, db_alias: Optional[str] = None):
        self.db_alias = db_alias or getattr(settings, "AUTHZ_RULESTORE_DB_ALIAS", "default")
        self._filtered = False

    def is_filtered(self) -> bool:
        """
        Check whether the adapter has loaded a filtered policy.

        Once a filtered policy has been loaded the adapter stays filtered for the
        rest of its lifetime, so enforcers refuse to save a partial policy over
        the full one. Create a new adapter to go back to unfiltered mode.

        Returns:
            bool: True if ``load_filtered_policy`` has been called, False otherwise.
        """
        return self._filtered

    def atomic(self):
        """
        Open a transaction on the adapter's database.

        Returns:
            Atomic: A ``django.db.transaction.atomic`` context manager.
        """
        return transaction.atomic(using=self.db_alias)

    def get_policy_rows(self, ptype: Optional[str] = None) -> QuerySet:
        """
        Return the stored rows, optionally restricted to one policy type.

        Args:
            ptype (Optional[str]): Policy type to restrict to.

        Returns:
            QuerySet: ``PolicyRule`` rows ordered by id.
        """
        queryset = PolicyRule.objects.using(self.db_alias)
        if ptype is not None:
            queryset = queryset.filter(ptype=ptype)
        return queryset.order_by("id")

    def load_policy(self, model: Model) -> None:
        """
        Load every stored rule into the Casbin model.

        Args:
            model (Model): The Casbin model to load policy rules into.
        """
        with store_errors("Loading policy"):
            rows = list(self.get_policy_rows())
        loaded = self._load_rows(rows, model)
        logger.info(f"Loaded {loaded} of {len(rows)} policy rules.")

    def load_filtered_policy(self, model: Model, filter: Filter) -> None:  # pylint: disable=redefined-builtin
        """
        Load the stored rules matching a filter into the Casbin model.

        IMPORTANT: This method is used internally by the ``enforcer.load_filtered_policy()``
            method. Do not call this method directly. If you need to load policy rules, use
            the ``enforcer.load_filtered_policy()`` method.

        Args:
            model (Model): The Casbin model to load policy rules into.
            filter (Filter): Grouping and permission patterns. Mappings and objects
                with ``P``/``G`` attributes are accepted too.
        """
        policy_filter = Filter.coerce(filter)
        with store_errors("Loading filtered policy"):
            rows = list(self.get_policy_rows().filter(build_section_condition(policy_filter)))
        self._filtered = True
        loaded = self._load_rows(rows, model)
        logger.info(f"Loaded {loaded} of {len(rows)} policy rules matching {policy_filter}.")

    def _load_rows(self, rows: Iterable[PolicyRule], model: Model) -> int:
        """
        Add stored rows to the model, skipping the ones it cannot hold.

        Returns:
            int: Number of rules added to the model.
        """
        loaded = 0
        for instance in rows:
            row = PolicyRow.from_model(instance)
            rule = normalize(row)
            if not row.ptype.strip() or rule is None:
                logger.debug(f"Skipping malformed policy rule with id {instance.pk}.")
                continue
            sec = row.ptype[0]
            if sec not in model.model or row.ptype not in model.model[sec]:
                logger.debug(f"Skipping policy rule '{row}': '{row.ptype}' is not defined in the model.")
                continue
            if model.add_policy(sec, row.ptype, rule):
                loaded += 1
        return loaded

    def save_policy(self, model: Model) -> bool:
        """
        Replace every stored rule with the rules of the Casbin model.

        The table is cleared, then each rule of the ``p`` and ``g`` sections is
        inserted with its own query. The whole operation is not atomic.

        Args:
            model (Model): The Casbin model whose rules are saved.

        Returns:
            bool: Always True.
        """
        rows = []
        for sec in (PERMISSION_MARKER, GROUPING_MARKER):
            for ptype, assertion in model.model.get(sec, {}).items():
                for rule in assertion.policy:
                    row = widen(ptype, rule)
                    if row is None:
                        logger.debug(f"Not saving malformed policy rule {ptype}: {rule}.")
                        continue
                    rows.append(row)

        self.clear_policy()
        for row in rows:
            self._insert(row)
        logger.info(f"Saved {len(rows)} policy rules.")
        return True

    def _insert(self, row: PolicyRow) -> None:
        # Savepoint so a rejected duplicate leaves any enclosing transaction usable.
        with store_errors(f"Adding policy rule '{row}'"):
            with transaction.atomic(using=self.db_alias):
                PolicyRule.objects.using(self.db_alias).create(**row.as_fields())

    def add_policy(self, sec: str, ptype: str, rule: list[str]) -> bool:
        """
        Add a rule to the storage.

        Args:
            sec (str): Model section of the rule (unused, derived from ``ptype``).
            ptype (str): Policy type of the rule.
            rule (list[str]): Rule values.

        Returns:
            bool: True if the rule was stored, False if it is malformed.

        Raises:
            ConstraintViolation: If the rule is already stored.
            StoreFailure: If the database query fails.
        """
        row = widen(ptype, rule)
        if row is None:
            return False
        self._insert(row)
        return True

    def add_policies(self, sec: str, ptype: str, rules: list[list[str]]) -> bool:
        """
        Add several rules to the storage, one query per rule.

        Malformed rules are ignored. A duplicate stops the batch, leaving the
        rules inserted before it in place.

        Args:
            sec (str): Model section of the rules (unused, derived from ``ptype``).
            ptype (str): Policy type of the rules.
            rules (list[list[str]]): Rules to add.

        Returns:
            bool: True if the rules were stored, False if none of them is well formed.

        Raises:
            ConstraintViolation: If one of the rules is already stored.
            StoreFailure: If a database query fails.
        """
        rows = [row for row in (widen(ptype, rule) for rule in rules) if row is not None]
        if not rows:
            return False
        for row in rows:
            self._insert(row)
        return True

    def remove_policy(self, sec: str, ptype: str, rule: list[str]) -> bool:
        """
        Remove one rule from the storage.

        Every column must match exactly, padding included.

        Args:
            sec (str): Model section of the rule (unused, derived from ``ptype``).
            ptype (str): Policy type of the rule.
            rule (list[str]): Rule values.

        Returns:
            bool: True if exactly one row was deleted, False otherwise.
        """
        row = widen(ptype, rule)
        if row is None:
            return False
        return self._delete_exact(row)

    def _delete_exact(self, row: PolicyRow) -> bool:
        with store_errors(f"Removing policy rule '{row}'"):
            deleted, _ = self.get_policy_rows().filter(build_exact_condition(row)).delete()
        return deleted == 1

    def remove_policies(self, sec: str, ptype: str, rules: list[list[str]]) -> bool:
        """
        Remove several rules from the storage, one query per rule.

        Args:
            sec (str): Model section of the rules (unused, derived from ``ptype``).
            ptype (str): Policy type of the rules.
            rules (list[list[str]]): Rules to remove. Malformed rules are ignored.

        Returns:
            bool: True if at least one row was deleted, False otherwise.
        """
        rows = [row for row in (widen(ptype, rule) for rule in rules) if row is not None]
        removed = False
        for row in rows:
            removed = self._delete_exact(row) or removed
        return removed

    def remove_filtered_policy(self, sec: str, ptype: str, field_index: int, *field_values: str) -> bool:
        """
        Remove the rules matching values from ``field_index`` onwards.

        Empty values are wildcards. When the values do not fit in the six
        columns nothing is queried and nothing is removed.

        Args:
            sec (str): Model section of the rules (unused, derived from ``ptype``).
            ptype (str): Policy type of the rules.
            field_index (int): Column matched by the first value.
            *field_values (str): Values to match.

        Returns:
            bool: True if at least one row was deleted, False otherwise.
        """
        condition = build_partial_condition(ptype, field_index, field_values)
        if condition is None:
            logger.debug(
                f"Ignoring filtered removal of '{ptype}' rules: {len(field_values)} values "
                f"from column {field_index} do not fit the policy table."
            )
            return False
        with store_errors(f"Removing filtered '{ptype}' policy rules"):
            deleted, _ = self.get_policy_rows().filter(condition).delete()
        return deleted >= 1

    def clear_policy(self) -> None:
        """Delete every stored rule."""
        with store_errors("Clearing policy"):
            deleted, _ = self.get_policy_rows().delete()
        logger.info(f"Cleared {deleted} policy rules.")
