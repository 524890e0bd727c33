"""
Common settings for the authz_rulestore app.
"""

import os

from authz_rulestore import ROOT_DIRECTORY


def plugin_settings(settings):
    """
    Fill in the authz_rulestore settings the project has not set.

    Args:
        settings: The Django settings object
    """
    # Database alias holding the PolicyRule table.
    if not hasattr(settings, "AUTHZ_RULESTORE_DB_ALIAS"):
        settings.AUTHZ_RULESTORE_DB_ALIAS = "default"

    # Casbin model used by the enforcer, RBAC with domains by default.
    if not hasattr(settings, "AUTHZ_RULESTORE_MODEL"):
        settings.AUTHZ_RULESTORE_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")

    # How often (in seconds) the enforcer reloads the policy from the database. 0 disables it.
    if not hasattr(settings, "AUTHZ_RULESTORE_AUTO_LOAD_POLICY_INTERVAL"):
        settings.AUTHZ_RULESTORE_AUTO_LOAD_POLICY_INTERVAL = 0

    # Whether policy changes made through the enforcer are written to the database.
    if not hasattr(settings, "AUTHZ_RULESTORE_AUTO_SAVE_POLICY"):
        settings.AUTHZ_RULESTORE_AUTO_SAVE_POLICY = True
