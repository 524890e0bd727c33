"""Policy migration utilities.

Copies the rules of one Casbin enforcer into another, typically from a
file-based policy into the database-backed enforcer.
"""

import logging

from casbin import Enforcer

from authz_rulestore.engine.filter import GROUPING_MARKER, PERMISSION_MARKER

logger = logging.getLogger(__name__)


def migrate_policy_between_enforcers(source_enforcer: Enforcer, target_enforcer: Enforcer) -> int:
    """Copy every permission and grouping rule of the source enforcer into the target.

    Rules the target already has are skipped, so running the migration twice
    is harmless. Every policy type declared in the source model is copied
    (``p``, ``p2``..., ``g``, ``g2``...), provided the target model declares it too.

    The target enforcer must have auto-save enabled for the rules to reach its
    storage.

    Args:
        source_enforcer (Enforcer): The Casbin enforcer to migrate rules from (e.g., file-based).
        target_enforcer (Enforcer): The Casbin enforcer to migrate rules to (e.g., database).

    Returns:
        int: Number of rules added to the target.
    """
    source_enforcer.load_policy()
    target_enforcer.load_policy()
    source_model = source_enforcer.get_model().model
    target_model = target_enforcer.get_model().model

    added = 0
    for ptype in source_model.get(PERMISSION_MARKER, {}):
        if ptype not in target_model.get(PERMISSION_MARKER, {}):
            logger.warning(f"Skipping '{ptype}' policies: not defined in the target model.")
            continue
        for rule in source_enforcer.get_named_policy(ptype):
            if target_enforcer.has_named_policy(ptype, *rule):
                logger.info(f"Policy {ptype} {rule} already exists in target, skipping.")
                continue
            if target_enforcer.add_named_policy(ptype, *rule):
                added += 1

    for ptype in source_model.get(GROUPING_MARKER, {}):
        if ptype not in target_model.get(GROUPING_MARKER, {}):
            logger.warning(f"Skipping '{ptype}' grouping policies: not defined in the target model.")
            continue
        for rule in source_enforcer.get_named_grouping_policy(ptype):
            if target_enforcer.has_named_grouping_policy(ptype, *rule):
                logger.info(f"Grouping policy {ptype} {rule} already exists in target, skipping.")
                continue
            if target_enforcer.add_named_grouping_policy(ptype, *rule):
                added += 1

    logger.info(f"Migrated {added} policy rules into the target enforcer.")
    return added
