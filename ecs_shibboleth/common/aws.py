# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to create, update and plan the root stack with AWS CloudFormation.
"""

from __future__ import annotations

import secrets
from string import ascii_lowercase
from time import sleep
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_shibboleth.common.settings import ShibbolethSettings
    from ecs_shibboleth.common.stacks import ShibStack

from botocore.exceptions import ClientError
from compose_x_common.compose_x_common import keyisset
from tabulate import tabulate

from ecs_shibboleth.common.logging import LOG

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]


def render_tags(tags: dict) -> list:
    return [{"Key": key, "Value": str(value)} for key, value in tags.items()]


def assert_can_create_stack(client, name):
    """
    Checks whether a stack already exists or not

    :return: True if the stack does not exist, the stack if in REVIEW_IN_PROGRESS, False otherwise
    """
    try:
        stack_r = client.describe_stacks(StackName=name)
        if not keyisset("Stacks", stack_r):
            return True
        stacks = stack_r["Stacks"]
        if len(stacks) != 1:
            raise LookupError("Too many stacks found with machine name", name)
        stack = stacks[0]
        if stack["StackStatus"] == "REVIEW_IN_PROGRESS":
            return stack
        return False
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and error.response["Error"]["Message"].find("does not exist") > 0
        ):
            return True
        raise error


def assert_can_update_stack(client, name):
    """
    Checks whether the existing stack is in a status that allows an update
    """
    can_update_statuses = [
        "CREATE_COMPLETE",
        "ROLLBACK_COMPLETE",
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
    ]
    res = client.describe_stacks(StackName=name)
    if not res["Stacks"]:
        return False
    stack = res["Stacks"][0]
    LOG.info(f"{name} - {stack['StackStatus']}")
    if stack["StackStatus"] in can_update_statuses:
        return True
    return False


def validate_stack_availability(settings: ShibbolethSettings, root_stack: ShibStack):
    """
    Function to check that the templates were uploaded before creating the stack
    """
    if not settings.upload:
        raise RuntimeError(
            "The templates were not uploaded to S3, which is required to deploy."
        )
    elif not root_stack.TemplateURL.startswith("https://"):
        raise ValueError(
            f"The URL for the stack is incorrect.: {root_stack.TemplateURL}",
            "TemplateURL must be a s3 URL",
        )


def deploy(settings: ShibbolethSettings, root_stack: ShibStack):
    """
    Function to deploy (create or update) the stack to CFN.

    :return: the stack ID, None if the stack could not be created nor updated.
    """
    validate_stack_availability(settings, root_stack)
    client = settings.session.client("cloudformation")
    if assert_can_create_stack(client, settings.name):
        res = client.create_stack(
            StackName=settings.name,
            Capabilities=CAPABILITIES,
            Parameters=root_stack.render_parameters_list_cfn(),
            TemplateURL=root_stack.TemplateURL,
            DisableRollback=settings.disable_rollback,
            Tags=render_tags(settings.tags),
        )
        LOG.info(f"Stack {settings.name} successfully deployed.")
        LOG.info(res["StackId"])
        return res["StackId"]
    elif assert_can_update_stack(client, settings.name):
        LOG.warning(f"Stack {settings.name} already exists. Updating.")
        res = client.update_stack(
            StackName=settings.name,
            Capabilities=CAPABILITIES,
            Parameters=root_stack.render_parameters_list_cfn(),
            TemplateURL=root_stack.TemplateURL,
            DisableRollback=settings.disable_rollback,
            Tags=render_tags(settings.tags),
        )
        LOG.info(f"Stack {settings.name} successfully updating.")
        LOG.info(res["StackId"])
        return res["StackId"]
    LOG.error(f"Stack {settings.name} can neither be created nor updated.")
    return None


def get_change_set_status(client, change_set_name, settings, wait_time=10):
    """
    Waits for the change set to be ready and prints its changes

    :return: the change set description
    """
    pending_statuses = [
        "CREATE_PENDING",
        "CREATE_IN_PROGRESS",
        "DELETE_PENDING",
        "DELETE_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    ]
    success_statuses = ["CREATE_COMPLETE", "DELETE_COMPLETE"]
    failed_statuses = ["DELETE_FAILED", "FAILED"]
    ready = False
    status = None
    while not ready:
        status = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        if status["Status"] in failed_statuses:
            raise SystemExit("Change set is unsuccessful", status["Status"])
        if status["Status"] in pending_statuses:
            print(
                f"ChangeSet creation in progress. Waiting {wait_time} seconds",
                end="\r",
                flush=True,
            )
            sleep(wait_time)
        elif status["Status"] in success_statuses:
            ready = True

    print(
        tabulate(
            [
                [
                    change["ResourceChange"]["LogicalResourceId"],
                    change["ResourceChange"]["ResourceType"],
                    change["ResourceChange"]["Action"],
                ]
                for change in status["Changes"]
            ],
            ["LogicalResourceId", "ResourceType", "Action"],
            tablefmt="rst",
        )
    )
    return status


def plan(settings: ShibbolethSettings, root_stack: ShibStack, apply=None):
    """
    Function to create a recursive change-set and return diffs

    :param apply: whether to apply the change set. Prompts when None.
    :return: the change set name
    """
    validate_stack_availability(settings, root_stack)
    client = settings.session.client("cloudformation")
    change_set_name = f"{settings.name}" + "".join(
        secrets.choice(ascii_lowercase) for _ in range(10)
    )
    if assert_can_create_stack(client, settings.name):
        change_set_type = "CREATE"
    elif assert_can_update_stack(client, settings.name):
        change_set_type = "UPDATE"
    else:
        LOG.error(f"Stack {settings.name} can neither be created nor updated.")
        return None
    client.create_change_set(
        StackName=settings.name,
        Capabilities=CAPABILITIES,
        Parameters=root_stack.render_parameters_list_cfn(),
        TemplateURL=root_stack.TemplateURL,
        UsePreviousTemplate=False,
        IncludeNestedStacks=True,
        ChangeSetType=change_set_type,
        ChangeSetName=change_set_name,
        Tags=render_tags(settings.tags),
    )
    status = get_change_set_status(client, change_set_name, settings)
    if status:
        if apply is None:
            apply = input("Want to apply? [yN]: ") in ["y", "Y", "YES", "Yes", "yes"]
        if apply:
            client.execute_change_set(
                ChangeSetName=change_set_name,
                StackName=settings.name,
                DisableRollback=settings.disable_rollback,
            )
        else:
            LOG.info(f"Deleting change set {change_set_name}")
            client.delete_change_set(
                ChangeSetName=change_set_name, StackName=settings.name
            )
    return change_set_name
