"""Admin configuration for authz_rulestore."""

from django import forms
from django.contrib import admin

from authz_rulestore.models import PolicyRule


class PolicyRuleForm(forms.ModelForm):
    """Custom form for PolicyRule to make v1..v5 optional."""

    class Meta:
        """Meta class for PolicyRuleForm."""

        model = PolicyRule
        fields = "__all__"

    def __init__(self, *args, **kwargs):
        """Initialize PolicyRuleForm."""
        super().__init__(*args, **kwargs)
        # Rules shorter than six values leave the trailing columns empty
        for name in ("v1", "v2", "v3", "v4", "v5"):
            self.fields[name].required = False


@admin.register(PolicyRule)
class PolicyRuleAdmin(admin.ModelAdmin):
    """Admin for the stored Casbin policy rules."""

    form = PolicyRuleForm
    list_display = ("id", "ptype", "v0", "v1", "v2", "v3", "v4", "v5")
    search_fields = ("ptype", "v0", "v1", "v2", "v3", "v4", "v5")
    list_filter = ("ptype",)
