"""
authz_rulestore Django application initialization.
"""

from django.apps import AppConfig


class AuthzRuleStoreConfig(AppConfig):
    """
    Configuration for the authz_rulestore Django application.
    """

    name = "authz_rulestore"
    verbose_name = "AuthZ Rule Store"
    default_auto_field = "django.db.models.BigAutoField"
    plugin_app = {
        "settings_config": {
            "lms.djangoapp": {
                "test": {"relative_path": "settings.test"},
                "common": {"relative_path": "settings.common"},
            },
            "cms.djangoapp": {
                "test": {"relative_path": "settings.test"},
                "common": {"relative_path": "settings.common"},
            },
        },
    }
