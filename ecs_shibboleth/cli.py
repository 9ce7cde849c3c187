# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_shibboleth.
"""

import argparse
import sys

from tabulate import tabulate

from ecs_shibboleth import __version__
from ecs_shibboleth.common.aws import deploy, plan
from ecs_shibboleth.common.logging import LOG, set_log_level
from ecs_shibboleth.common.settings import ShibbolethSettings
from ecs_shibboleth.common.stacks import process_stacks
from ecs_shibboleth.exceptions import (
    ParameterValidationError,
    ShibbolethBaseException,
)
from ecs_shibboleth.preview import preview_deployment
from ecs_shibboleth.resolver import resolve_plan
from ecs_shibboleth.root import generate_root_stack

PLAN_HEADERS = ["Wave", "Stack", "Parameter", "Kind", "Source", "Value"]
PREVIEW_HEADERS = ["Stack", "LogicalId", "Type"]
OUTPUTS_HEADERS = ["Output", "Value"]


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        commands = [
            cmd["name"]
            for cmd in ShibbolethSettings.active_commands
            + ShibbolethSettings.validation_commands
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in commands:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())


def add_name_argument(parser, required):
    parser.add_argument(
        "-n",
        "--name",
        help="Name of the root stack",
        required=required,
        type=str,
        dest=ShibbolethSettings.name_arg,
    )


def main_parser():
    """
    Console script for ecs_shibboleth.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=ShibbolethSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    parameters_parser = argparse.ArgumentParser(add_help=False)
    optional_name_parser = argparse.ArgumentParser(add_help=False)
    add_name_argument(base_command_parser, required=True)
    add_name_argument(optional_name_parser, required=False)
    parameters_parser.add_argument(
        "-p",
        "--parameters-file",
        dest=ShibbolethSettings.parameters_file_arg,
        required=False,
        help="Path to a CloudFormation config file (JSON or YAML) with Parameters and Tags",
    )
    parameters_parser.add_argument(
        "--parameter",
        dest=ShibbolethSettings.parameter_arg,
        action="append",
        default=[],
        required=False,
        help="Root stack parameter, as Key=Value. Overrides the parameters file value",
    )
    parameters_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write all the templates to.",
        type=str,
        dest=ShibbolethSettings.output_dir_arg,
        default=ShibbolethSettings.default_output_dir,
    )
    parameters_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=ShibbolethSettings.format_arg,
        choices=ShibbolethSettings.allowed_formats,
        default=ShibbolethSettings.default_format,
    )
    base_command_parser.add_argument(
        "--region",
        required=False,
        dest=ShibbolethSettings.region_arg,
        help="Specify the region you want to build for"
        "default use default region from config or environment vars",
    )
    base_command_parser.add_argument(
        "-b",
        "--bucket-name",
        type=str,
        required=False,
        help="Bucket name to upload the templates to",
        dest=ShibbolethSettings.bucket_arg,
    )
    base_command_parser.add_argument(
        "--template-base-url",
        type=str,
        required=False,
        help="URL prefix of the nested stacks templates when not uploaded",
        dest=ShibbolethSettings.template_base_url_arg,
    )
    base_command_parser.add_argument(
        "--role-arn",
        dest=ShibbolethSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest=ShibbolethSettings.disable_rollback_arg,
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    for command in ShibbolethSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, parameters_parser],
        )
    for command in ShibbolethSettings.validation_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[optional_name_parser, parameters_parser],
        )

    for command in ShibbolethSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def log_error(error: ShibbolethBaseException):
    if isinstance(error, ParameterValidationError) and error.errors:
        LOG.error(error.args[0])
        for name, messages in error.errors.items():
            for message in messages:
                LOG.error(f"{name} - {message}")
    else:
        LOG.error(error)


def print_validation(resolved_plan):
    print(tabulate(resolved_plan.to_table(), headers=PLAN_HEADERS, tablefmt="rst"))
    preview = preview_deployment(resolved_plan)
    print(tabulate(preview.to_table(), headers=PREVIEW_HEADERS, tablefmt="rst"))
    print(
        tabulate(
            [[name, str(value)] for name, value in preview.outputs.items()],
            headers=OUTPUTS_HEADERS,
            tablefmt="rst",
        )
    )


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit()
    args = parser.parse_args()
    if args.command == ShibbolethSettings.version_arg:
        print(f"ecs-shibboleth {__version__}")
        return 0
    if args.loglevel and not set_log_level(args.loglevel):
        print(f"Log level value {args.loglevel} is invalid.")
    LOG.debug(args)
    try:
        settings = ShibbolethSettings(**vars(args))
    except ShibbolethBaseException as error:
        log_error(error)
        return 1
    except ValueError as error:
        parser.error(str(error))
    if settings.upload:
        settings.set_bucket_name_from_account_id()
    LOG.debug(settings)

    if settings.deploy and not settings.upload:
        LOG.warning(
            "You must update the templates in order to deploy. We won't be deploying."
        )
        settings.deploy = False
    try:
        root_stack = generate_root_stack(settings)
        resolved_plan = resolve_plan(
            root_stack, settings.parameters, settings.pseudo_parameters
        )
        if settings.command == ShibbolethSettings.validate_arg:
            print_validation(resolved_plan)
            return 0
    except ShibbolethBaseException as error:
        log_error(error)
        return 1
    process_stacks(root_stack, settings)

    if settings.deploy:
        deploy(settings, root_stack)
    elif settings.plan:
        plan(settings, root_stack)
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
