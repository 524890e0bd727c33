"""Tests for the RuleStoreAdapter.

These tests exercise the adapter directly against the database, the way a
Casbin enforcer drives it: loading whole or filtered policies into a model,
saving a model, and adding or removing rules one by one or in batches.
"""

from unittest.mock import patch

import casbin
from ddt import data, ddt, unpack
from django.db import OperationalError
from django.test import TestCase

from authz_rulestore.engine.adapter import RuleStoreAdapter
from authz_rulestore.engine.exceptions import ConstraintViolation, StoreFailure
from authz_rulestore.engine.filter import Filter
from authz_rulestore.models import PolicyRule
from authz_rulestore.tests.test_utils import (
    RBAC_MODEL,
    RBAC_POLICY,
    RBAC_WITH_DOMAINS_MODEL,
    RBAC_WITH_DOMAINS_POLICY,
    make_model,
)


class AdapterTestMixin(TestCase):
    """Mixin providing an adapter and model loading helpers."""

    def setUp(self):
        super().setUp()
        self.adapter = RuleStoreAdapter()

    def _load(self, path: str = RBAC_MODEL):
        """Load the whole stored policy into a fresh model."""
        model = make_model(path)
        self.adapter.load_policy(model)
        return model

    def _stored(self):
        """Return the stored rules as policy lines, in insertion order."""
        return [str(rule) for rule in PolicyRule.objects.order_by("id")]


@ddt
class TestAddAndRemove(AdapterTestMixin):
    """Tests for adding and removing rules."""

    def test_add_then_load_permission_rule(self):
        """A stored permission rule loads back as exactly the same rule."""
        self.assertTrue(self.adapter.add_policy("p", "p", ["alice", "data1", "read"]))

        model = self._load()

        self.assertEqual(model.get_policy("p", "p"), [["alice", "data1", "read"]])
        self.assertEqual(model.get_policy("g", "g"), [])

    def test_remove_filtered_from_offset(self):
        """Filtered removal matches values from the given column onwards."""
        self.adapter.add_policy("p", "p", ["alice", "data1", "read"])

        self.assertTrue(self.adapter.remove_filtered_policy("p", "p", 1, "data1"))

        self.assertEqual(self._load().get_policy("p", "p"), [])

    def test_remove_filtered_ignores_unspecified_trailing_columns(self):
        """Columns after the given values are wildcards."""
        self.adapter.add_policy("g", "g", ["alice", "admin", "domain1", "domain2"])

        self.assertTrue(self.adapter.remove_filtered_policy("g", "g", 0, "alice"))

        self.assertEqual(PolicyRule.objects.count(), 0)

    def test_remove_filtered_with_interior_wildcard(self):
        """An empty value in the middle of the values matches anything."""
        rules = [
            ["alice_rfp", "book_rfp", "read_rfp"],
            ["bob_rfp", "book_rfp", "read_rfp"],
            ["bob_rfp", "book_rfp", "write_rfp"],
            ["alice_rfp", "pen_rfp", "get_rfp"],
            ["bob_rfp", "pen_rfp", "get_rfp"],
            ["alice_rfp", "pencil_rfp", "get_rfp"],
        ]
        self.adapter.add_policies("p", "p", rules)

        self.assertTrue(self.adapter.remove_filtered_policy("p", "p", 1, "book_rfp"))
        self.assertTrue(self.adapter.remove_filtered_policy("p", "p", 0, "alice_rfp", "", "get_rfp"))

        self.assertEqual(self._stored(), ["p, bob_rfp, pen_rfp, get_rfp"])

    def test_remove_filtered_without_match(self):
        """No deleted row reports no effect."""
        self.adapter.add_policy("g", "g", ["alice", "data2_admin"])

        self.assertFalse(self.adapter.remove_filtered_policy("g", "g", 0, "alice", "data2_admin", "not_exists"))
        self.assertTrue(self.adapter.remove_filtered_policy("g", "g", 0, "alice", "data2_admin"))

    def test_remove_filtered_only_touches_its_ptype(self):
        """Rows of other policy types are left alone."""
        self.adapter.add_policy("g", "g", ["alice", "admin"])
        self.adapter.add_policy("g", "g2", ["alice", "admin"])

        self.assertTrue(self.adapter.remove_filtered_policy("g", "g2", 0, "alice"))

        self.assertEqual(self._stored(), ["g, alice, admin"])

    @unpack
    @data(
        (0, ["a", "b", "c", "d", "e", "f", "g"]),
        (1, ["a", "b", "c", "d", "e", "f"]),
        (4, ["alice", "data1", "read"]),
        (5, ["alice", "data1"]),
        (6, ["alice"]),
        (-1, ["alice"]),
        (0, []),
    )
    def test_remove_filtered_out_of_range_is_a_no_op(self, field_index, field_values):
        """Values not fitting the columns never reach the database."""
        self.adapter.add_policy("p", "p", ["alice", "data1", "read"])

        with self.assertNumQueries(0):
            removed = self.adapter.remove_filtered_policy("p", "p", field_index, *field_values)

        self.assertFalse(removed)
        self.assertEqual(PolicyRule.objects.count(), 1)

    def test_duplicate_add_is_rejected(self):
        """Adding a stored rule again raises ConstraintViolation."""
        self.adapter.add_policy("g", "g", ["alice", "data2_admin"])

        with self.assertRaises(ConstraintViolation):
            self.adapter.add_policy("g", "g", ["alice", "data2_admin"])

        self.assertEqual(self._stored(), ["g, alice, data2_admin"])

    def test_duplicate_is_a_store_failure(self):
        """Constraint violations are store failures for callers catching the broad error."""
        self.adapter.add_policy("p", "p", ["alice", "data1", "read"])

        with self.assertRaises(StoreFailure):
            self.adapter.add_policy("p", "p", ["alice", "data1", "read"])

    def test_same_values_with_another_ptype_are_not_duplicates(self):
        """Uniqueness covers the policy type too."""
        self.assertTrue(self.adapter.add_policy("g", "g", ["alice", "admin"]))
        self.assertTrue(self.adapter.add_policy("g", "g2", ["alice", "admin"]))

    @unpack
    @data(
        ("", ["alice", "data1", "read"]),
        ("  ", ["alice", "data1", "read"]),
        ("p", []),
        ("p", ["a", "b", "c", "d", "e", "f", "g"]),
    )
    def test_malformed_add_is_ignored(self, ptype, rule):
        """Malformed rules are not stored and do not query the database."""
        with self.assertNumQueries(0):
            self.assertFalse(self.adapter.add_policy("p", ptype, rule))

    def test_remove_exact_rule(self):
        """Exact removal needs every column, padding included, to match."""
        self.adapter.add_policy("g", "g", ["alice", "admin", "domain1"])

        self.assertFalse(self.adapter.remove_policy("g", "g", ["alice", "admin"]))
        self.assertTrue(self.adapter.remove_policy("g", "g", ["alice", "admin", "domain1"]))
        self.assertEqual(PolicyRule.objects.count(), 0)

    def test_remove_never_added_rule(self):
        """Removing a missing rule reports no effect instead of failing."""
        self.assertFalse(self.adapter.remove_policy("p", "p", ["alice", "data1", "read"]))

    def test_remove_malformed_rule(self):
        """Malformed rules are not looked up."""
        with self.assertNumQueries(0):
            self.assertFalse(self.adapter.remove_policy("p", "", ["alice"]))

    def test_add_policies(self):
        """Every rule of the batch is stored."""
        rules = [["alice", "data1", "read"], ["bob", "data2", "write"]]

        self.assertTrue(self.adapter.add_policies("p", "p", rules))

        self.assertEqual(self._stored(), ["p, alice, data1, read", "p, bob, data2, write"])

    def test_add_policies_skips_malformed_rules(self):
        """Malformed rules of a batch are ignored, the rest is stored."""
        self.assertTrue(self.adapter.add_policies("p", "p", [[], ["alice", "data1", "read"]]))

        self.assertEqual(self._stored(), ["p, alice, data1, read"])

    def test_add_policies_without_valid_rules(self):
        """A batch with nothing to store reports no effect."""
        with self.assertNumQueries(0):
            self.assertFalse(self.adapter.add_policies("p", "p", [[], ["a", "b", "c", "d", "e", "f", "g"]]))

    def test_add_policies_is_not_atomic(self):
        """A duplicate stops the batch and keeps the rules inserted before it."""
        self.adapter.add_policy("p", "p", ["bob", "data2", "write"])
        rules = [["alice", "data1", "read"], ["bob", "data2", "write"], ["carol", "data3", "read"]]

        with self.assertRaises(ConstraintViolation):
            self.adapter.add_policies("p", "p", rules)

        self.assertEqual(self._stored(), ["p, bob, data2, write", "p, alice, data1, read"])

    def test_add_policies_inside_atomic_block(self):
        """Wrapping a batch in adapter.atomic() rolls back the whole batch."""
        self.adapter.add_policy("p", "p", ["bob", "data2", "write"])
        rules = [["alice", "data1", "read"], ["bob", "data2", "write"]]

        with self.assertRaises(ConstraintViolation):
            with self.adapter.atomic():
                self.adapter.add_policies("p", "p", rules)

        self.assertEqual(self._stored(), ["p, bob, data2, write"])

    def test_remove_policies(self):
        """Every rule of the batch is removed."""
        rules = [["alice", "data1", "read"], ["bob", "data2", "write"], ["carol", "data3", "read"]]
        self.adapter.add_policies("p", "p", rules)

        self.assertTrue(self.adapter.remove_policies("p", "p", rules[:2]))

        self.assertEqual(self._stored(), ["p, carol, data3, read"])

    def test_remove_policies_reports_partial_effect(self):
        """A batch removing at least one rule reports an effect."""
        self.adapter.add_policy("p", "p", ["alice", "data1", "read"])

        self.assertTrue(self.adapter.remove_policies("p", "p", [["alice", "data1", "read"], ["nobody", "x", "y"]]))

    def test_remove_policies_without_match(self):
        """A batch removing nothing reports no effect."""
        self.assertFalse(self.adapter.remove_policies("p", "p", [["nobody", "x", "y"], []]))

    def test_clear_policy(self):
        """Every stored rule is removed."""
        self.adapter.add_policies("p", "p", [["alice", "data1", "read"], ["bob", "data2", "write"]])
        self.adapter.add_policy("g", "g", ["alice", "admin"])

        self.adapter.clear_policy()

        self.assertEqual(PolicyRule.objects.count(), 0)


class TestLoadAndSave(AdapterTestMixin):
    """Tests for loading stored rules into models and saving models."""

    def test_load_skips_malformed_and_unknown_rows(self):
        """Rows the model cannot hold are dropped silently."""
        PolicyRule.objects.create(ptype="", v0="alice", v1="data1", v2="read")
        PolicyRule.objects.create(ptype="p")
        PolicyRule.objects.create(ptype="p3", v0="alice", v1="data1", v2="read")
        PolicyRule.objects.create(ptype="x", v0="alice")
        PolicyRule.objects.create(ptype="p", v0="alice", v1="data1", v2="read")

        model = self._load()

        self.assertEqual(model.get_policy("p", "p"), [["alice", "data1", "read"]])
        self.assertEqual(model.get_policy("g", "g"), [])

    def test_load_keeps_interior_empty_values(self):
        """A stored gap is loaded as an empty value."""
        PolicyRule.objects.create(ptype="p", v0="alice", v1="", v2="read")

        self.assertEqual(self._load().get_policy("p", "p"), [["alice", "", "read"]])

    def test_load_keeps_insertion_order(self):
        """Rules are loaded in the order they were stored."""
        rules = [["bob", "data2", "write"], ["alice", "data1", "read"], ["carol", "data3", "read"]]
        self.adapter.add_policies("p", "p", rules)

        self.assertEqual(self._load().get_policy("p", "p"), rules)

    def test_save_policy_replaces_stored_rules(self):
        """Saving writes the model's rules and drops the ones it does not have."""
        self.adapter.add_policy("p", "p", ["stale", "data9", "read"])
        source = casbin.Enforcer(RBAC_MODEL, RBAC_POLICY)

        self.assertTrue(self.adapter.save_policy(source.get_model()))

        self.assertEqual(
            self._stored(),
            [
                "p, alice, data1, read",
                "p, bob, data2, write",
                "p, data2_admin, data2, read",
                "p, data2_admin, data2, write",
                "g, alice, data2_admin",
            ],
        )

    def test_save_then_load_round_trip(self):
        """A saved model loads back unchanged."""
        source = casbin.Enforcer(RBAC_WITH_DOMAINS_MODEL, RBAC_WITH_DOMAINS_POLICY)
        self.adapter.save_policy(source.get_model())

        model = self._load(RBAC_WITH_DOMAINS_MODEL)

        self.assertEqual(model.get_policy("p", "p"), source.get_policy())
        self.assertEqual(model.get_policy("g", "g"), source.get_grouping_policy())

    def test_save_policy_skips_malformed_rules(self):
        """Rules the table cannot hold are not saved."""
        model = make_model(RBAC_MODEL)
        model.add_policy("p", "p", ["alice", "data1", "read"])
        model.add_policy("p", "p", [])

        self.adapter.save_policy(model)

        self.assertEqual(self._stored(), ["p, alice, data1, read"])


class TestFilteredLoad(AdapterTestMixin):
    """Tests for loading filtered policies."""

    def setUp(self):
        super().setUp()
        source = casbin.Enforcer(RBAC_WITH_DOMAINS_MODEL, RBAC_WITH_DOMAINS_POLICY)
        self.adapter.save_policy(source.get_model())

    def test_load_filtered_policy(self):
        """Only rules matching their section's pattern are loaded."""
        model = make_model(RBAC_WITH_DOMAINS_MODEL)

        self.adapter.load_filtered_policy(model, Filter(p=["", "domain1"], g=["", "", "domain1"]))

        self.assertEqual(
            model.get_policy("p", "p"),
            [["admin", "domain1", "data1", "read"], ["admin", "domain1", "data1", "write"]],
        )
        self.assertEqual(model.get_policy("g", "g"), [["alice", "admin", "domain1"]])

    def test_load_filtered_policy_with_empty_patterns(self):
        """Empty patterns load the same rules as an unfiltered load."""
        model = make_model(RBAC_WITH_DOMAINS_MODEL)

        self.adapter.load_filtered_policy(model, Filter())

        full = self._load(RBAC_WITH_DOMAINS_MODEL)
        self.assertEqual(model.get_policy("p", "p"), full.get_policy("p", "p"))
        self.assertEqual(model.get_policy("g", "g"), full.get_policy("g", "g"))

    def test_load_filtered_policy_accepts_mappings(self):
        """Plain mappings work as filters."""
        model = make_model(RBAC_WITH_DOMAINS_MODEL)

        self.adapter.load_filtered_policy(model, {"p": ["", "domain2"], "g": ["bob"]})

        self.assertEqual(len(model.get_policy("p", "p")), 2)
        self.assertEqual(model.get_policy("g", "g"), [["bob", "admin", "domain2"]])

    def test_filtered_flag_is_set_once(self):
        """The adapter stays filtered after a filtered load, even across full loads."""
        self.assertFalse(self.adapter.is_filtered())

        self._load(RBAC_WITH_DOMAINS_MODEL)
        self.assertFalse(self.adapter.is_filtered())

        self.adapter.load_filtered_policy(make_model(RBAC_WITH_DOMAINS_MODEL), Filter(p=["admin"]))
        self.assertTrue(self.adapter.is_filtered())

        self._load(RBAC_WITH_DOMAINS_MODEL)
        self.assertTrue(self.adapter.is_filtered())

    def test_new_adapter_is_unfiltered(self):
        """Filtering is per adapter instance."""
        self.adapter.load_filtered_policy(make_model(RBAC_WITH_DOMAINS_MODEL), Filter())

        self.assertFalse(RuleStoreAdapter().is_filtered())


class TestStoreFailures(AdapterTestMixin):
    """Tests for database errors surfacing as store failures."""

    def test_load_failure(self):
        """Query errors while loading propagate as StoreFailure."""
        with patch("django.db.models.query.QuerySet._fetch_all", side_effect=OperationalError("gone")):
            with self.assertRaises(StoreFailure) as context:
                self._load()

        self.assertIsInstance(context.exception.__cause__, OperationalError)

    def test_failed_filtered_load_does_not_mark_the_adapter_filtered(self):
        """The filtered flag is only set once rows were fetched."""
        with patch("django.db.models.query.QuerySet._fetch_all", side_effect=OperationalError("gone")):
            with self.assertRaises(StoreFailure):
                self.adapter.load_filtered_policy(make_model(), Filter())

        self.assertFalse(self.adapter.is_filtered())

    def test_remove_failure(self):
        """Query errors while deleting propagate as StoreFailure."""
        with patch("django.db.models.query.QuerySet.delete", side_effect=OperationalError("locked")):
            with self.assertRaises(StoreFailure):
                self.adapter.remove_filtered_policy("p", "p", 0, "alice")
            with self.assertRaises(StoreFailure):
                self.adapter.clear_policy()

    def test_remove_failure_is_not_a_constraint_violation(self):
        """Only integrity errors are reported as constraint violations."""
        with patch("django.db.models.query.QuerySet.delete", side_effect=OperationalError("locked")):
            with self.assertRaises(StoreFailure) as context:
                self.adapter.remove_policy("p", "p", ["alice"])

        self.assertNotIsInstance(context.exception, ConstraintViolation)
