"""
Casbin enforcer wired to the policy rule store.

Provides a Casbin SyncedEnforcer instance using the RuleStoreAdapter, so the
policy evaluated by Casbin is the one persisted in the ``PolicyRule`` table.

Components:
    - Enforcer: Main SyncedEnforcer instance for policy evaluation
    - Adapter: RuleStoreAdapter for database policy storage and filtered loading

Usage:
    from authz_rulestore.engine.enforcer import RuleStoreEnforcer
    allowed = RuleStoreEnforcer.get_enforcer().enforce(user, domain, resource, action)

Uses the `AUTHZ_RULESTORE_MODEL` setting.
"""

import logging
import os

from casbin import SyncedEnforcer
from django.conf import settings

from authz_rulestore import ROOT_DIRECTORY
from authz_rulestore.engine.adapter import RuleStoreAdapter

logger = logging.getLogger(__name__)

DEFAULT_MODEL_PATH = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")


class RuleStoreEnforcer:
    """Singleton class to manage the Casbin SyncedEnforcer instance.

    Ensures a single enforcer instance is created and configured with the
    RuleStoreAdapter for policy management and automatic synchronization.

    Attributes:
        _enforcer (SyncedEnforcer): The singleton enforcer instance.
        _adapter (RuleStoreAdapter): The singleton adapter instance.
    """

    _enforcer = None
    _adapter = None

    @classmethod
    def is_auto_save_enabled(cls) -> bool:
        """Check if auto-save is currently enabled on the enforcer.

        Returns:
            bool: True if auto-save is enabled, False otherwise
        """
        if cls._enforcer is None:
            return False
        return cls._enforcer._e.auto_save  # pylint: disable=protected-access

    @classmethod
    def configure_enforcer_auto_save_and_load(cls):
        """Configure auto-load and auto-save on the enforcer from settings.

        ``AUTHZ_RULESTORE_AUTO_LOAD_POLICY_INTERVAL`` starts a thread reloading the
        policy every given number of seconds when positive.
        ``AUTHZ_RULESTORE_AUTO_SAVE_POLICY`` makes policy changes made through the
        enforcer write through to the database.
        """
        auto_load_policy_interval = getattr(settings, "AUTHZ_RULESTORE_AUTO_LOAD_POLICY_INTERVAL", 0)
        auto_save_policy = getattr(settings, "AUTHZ_RULESTORE_AUTO_SAVE_POLICY", True)

        if auto_load_policy_interval > 0:
            if not cls._enforcer.is_auto_loading_running():
                cls._enforcer.start_auto_load_policy(auto_load_policy_interval)
        else:
            logger.debug("AUTHZ_RULESTORE_AUTO_LOAD_POLICY_INTERVAL is not set or zero; auto-load is disabled.")

        if cls.is_auto_save_enabled() != auto_save_policy:
            cls._enforcer.enable_auto_save(auto_save_policy)

    @classmethod
    def deactivate_enforcer(cls):
        """Stop the auto-load thread and disable auto-save on the current enforcer, if any."""
        if cls._enforcer is not None:
            cls._enforcer.stop_auto_load_policy()
            cls._enforcer.enable_auto_save(False)

    @classmethod
    def reset(cls):
        """Deactivate and forget the current enforcer and adapter.

        The next call to ``get_enforcer`` builds a new enforcer with a fresh,
        unfiltered adapter.
        """
        cls.deactivate_enforcer()
        cls._enforcer = None
        cls._adapter = None

    @classmethod
    def get_enforcer(cls) -> SyncedEnforcer:
        """Get the enforcer instance, creating it if needed.

        Returns:
            SyncedEnforcer: The singleton enforcer instance.
        """
        if cls._enforcer is None:
            cls._enforcer = cls._initialize_enforcer()
            cls.configure_enforcer_auto_save_and_load()
        return cls._enforcer

    @classmethod
    def get_adapter(cls) -> RuleStoreAdapter:
        """Get the adapter used by the enforcer, creating the enforcer if needed.

        Returns:
            RuleStoreAdapter: The singleton adapter instance.
        """
        if cls._adapter is None:
            cls.get_enforcer()
        return cls._adapter

    @classmethod
    def _initialize_enforcer(cls) -> SyncedEnforcer:
        """
        Create and configure the Casbin SyncedEnforcer instance.

        The enforcer loads the full policy from the database when created.

        Returns:
            SyncedEnforcer: Configured Casbin enforcer backed by the rule store.
        """
        model_path = getattr(settings, "AUTHZ_RULESTORE_MODEL", DEFAULT_MODEL_PATH)
        adapter = RuleStoreAdapter()

        try:
            enforcer = SyncedEnforcer(model_path, adapter)
        except Exception as e:
            logger.error(f"Failed to initialize Casbin enforcer with model '{model_path}': {e}")
            raise

        cls._adapter = adapter
        return enforcer
