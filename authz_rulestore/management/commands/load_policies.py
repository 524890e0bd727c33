"""Django management command to load policies into the PolicyRule table.

The command supports:
- Specifying the path to the Casbin policy file. Default is 'authz_rulestore/engine/config/authz.policy'.
- Specifying the Casbin model configuration file. Default is 'authz_rulestore/engine/config/model.conf'.
- Optionally clearing existing policies in the database before loading new ones.
"""

import os

import casbin
import click
from django.core.management.base import BaseCommand, CommandError

from authz_rulestore import ROOT_DIRECTORY
from authz_rulestore.engine.enforcer import RuleStoreEnforcer
from authz_rulestore.engine.utils import migrate_policy_between_enforcers


class Command(BaseCommand):
    """Django management command to load policies into the PolicyRule table.

    Reads the rules of a Casbin policy file and adds the ones missing from the
    database through the rule store enforcer.

    Example Usage:
        python manage.py load_policies --policy-file-path /path/to/authz.policy
        python manage.py load_policies --policy-file-path /path/to/authz.policy --model-file-path /path/to/model.conf
        python manage.py load_policies --clear-existing --yes
    """

    help = "Load policies from a Casbin policy file into the PolicyRule table."

    def add_arguments(self, parser) -> None:
        """Add command-line arguments to the argument parser.

        Args:
            parser: The Django argument parser instance to configure.
        """
        parser.add_argument(
            "--policy-file-path",
            type=str,
            default=None,
            help="Path to the Casbin policy file (CSV format with policies and grouping rules)",
        )
        parser.add_argument(
            "--model-file-path",
            type=str,
            default=None,
            help="Path to the Casbin model configuration file",
        )
        parser.add_argument(
            "--clear-existing",
            action="store_true",
            help="Flag to clear existing policies before loading new ones",
        )
        parser.add_argument(
            "--yes",
            action="store_true",
            help="Do not ask for confirmation before clearing existing policies",
        )

    def handle(self, *args, **options):
        """Execute the policy loading command.

        Args:
            *args: Positional command arguments (unused).
            **options: Command options including 'policy_file_path', 'model_file_path',
                'clear_existing' and 'yes'.

        Raises:
            CommandError: If the policy or model file is not found.
        """
        policy_file_path = options["policy_file_path"] or os.path.join(
            ROOT_DIRECTORY, "engine", "config", "authz.policy"
        )
        model_file_path = options["model_file_path"] or os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")

        for path in (policy_file_path, model_file_path):
            if not os.path.isfile(path):
                raise CommandError(f"File not found: {path}")

        target_enforcer = RuleStoreEnforcer.get_enforcer()

        if options.get("clear_existing"):
            if options.get("yes") or click.confirm(
                click.style("Do you want to delete every stored policy rule?", fg="yellow", bold=True),
                default=False,
            ):
                RuleStoreEnforcer.get_adapter().clear_policy()
                target_enforcer.load_policy()
                self.stdout.write("Deleted existing policy rules.")

        source_enforcer = casbin.Enforcer(model_file_path, policy_file_path)
        added = migrate_policy_between_enforcers(source_enforcer, target_enforcer)
        self.stdout.write(self.style.SUCCESS(f"Loaded {added} policy rules from {policy_file_path}."))
