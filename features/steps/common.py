#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path

from behave import given, then, when

from ecs_shibboleth.common.settings import ShibbolethSettings
from ecs_shibboleth.common.stacks import process_stacks
from ecs_shibboleth.exceptions import ParameterValidationError
from ecs_shibboleth.preview import preview_deployment
from ecs_shibboleth.resolver import resolve_plan
from ecs_shibboleth.root import generate_root_stack


def here():
    return path.abspath(path.dirname(__file__))


@given("I use {file_path} as my parameters file")
def step_impl(context, file_path):
    """
    Function to import the parameters file from use-cases.

    :param context:
    :param str file_path:
    """
    cases_path = path.abspath(f"{here()}/../{file_path}")
    context.settings = ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.render_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
            ShibbolethSettings.parameters_file_arg: cases_path,
            ShibbolethSettings.output_dir_arg: context.output_dir,
            ShibbolethSettings.format_arg: "yaml",
        },
    )
    context.root_stack = generate_root_stack(context.settings)


@given("I set {name} to {value}")
def step_impl(context, name, value):
    context.settings.parameters[name] = value
    context.root_stack = generate_root_stack(context.settings)


@when("I resolve the stacks")
def step_impl(context):
    try:
        context.plan = resolve_plan(
            context.root_stack,
            context.settings.parameters,
            context.settings.pseudo_parameters,
        )
    except ParameterValidationError as error:
        context.error = error


@then("I render all files to verify execution")
def step_impl(context):
    assert not hasattr(context, "error")
    process_stacks(context.root_stack, context.settings)
    for file_name in ["shibboleth-idp.yaml", "secrets.yml", "service.yaml"]:
        assert path.exists(path.join(context.output_dir, file_name))


@then("the stacks are created in order {order}")
def step_impl(context, order):
    assert context.plan.order == [name.strip() for name in order.split(",")]


@then("parameter {name} is rejected")
def step_impl(context, name):
    assert hasattr(context, "error")
    assert name in context.error.errors


@then("the {stack_name} stack creates {resource_type} {logical_id}")
def step_impl(context, stack_name, resource_type, logical_id):
    if not hasattr(context, "preview"):
        context.preview = preview_deployment(context.plan)
    resources = context.preview[stack_name].resources_of_type(resource_type)
    assert logical_id in resources, list(resources)


@then("the {stack_name} stack does not create {logical_id}")
def step_impl(context, stack_name, logical_id):
    if not hasattr(context, "preview"):
        context.preview = preview_deployment(context.plan)
    assert logical_id not in context.preview[stack_name].resources
