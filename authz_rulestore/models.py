"""Database model for persisted Casbin policy rules.

Every Casbin rule, whatever its arity, is stored in the same fixed-width row:
the policy type (``ptype``) plus six value columns ``v0``..``v5``. Positions
past the end of a rule hold the empty string, never NULL, so the unique
constraint below also covers shorter rules.

The column widths keep the unique index within MySQL's 3072 byte key limit
for ``utf8mb4`` (768 characters): 18 + 125 * 6 = 768.
"""

from django.db import models

from authz_rulestore.engine.codec import PolicyRow

PTYPE_MAX_LENGTH = 18
VALUE_MAX_LENGTH = 125


class PolicyRule(models.Model):
    """A single Casbin policy or grouping rule.

    .. no_pii:
    """

    ptype = models.CharField(max_length=PTYPE_MAX_LENGTH)
    v0 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)
    v1 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)
    v2 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)
    v3 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)
    v4 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)
    v5 = models.CharField(max_length=VALUE_MAX_LENGTH, default="", blank=True)

    class Meta:
        verbose_name = "Policy rule"
        verbose_name_plural = "Policy rules"
        constraints = [
            models.UniqueConstraint(
                fields=["ptype", "v0", "v1", "v2", "v3", "v4", "v5"],
                name="unique_policy_rule",
            ),
        ]

    def __str__(self):
        return str(PolicyRow.from_model(self))
