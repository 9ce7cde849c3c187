# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Common parameters for CFN, and the evaluation of parameter values against their constraints.

This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.
"""

from __future__ import annotations

import re

from troposphere import Parameter as CfnParameter

from ecs_shibboleth.common import MASKED_VALUE

NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
AWS_TYPES_PATTERNS = {
    "AWS::EC2::VPC::Id": re.compile(r"^vpc-[0-9a-f]+$"),
    "AWS::EC2::Subnet::Id": re.compile(r"^subnet-[0-9a-f]+$"),
    "AWS::EC2::SecurityGroup::Id": re.compile(r"^sg-[0-9a-f]+$"),
}
LIST_TYPE_RE = re.compile(r"^List<(?P<item_type>[\S]+)>$")


class Parameter(CfnParameter):
    """
    Class to extend the default Parameter behaviour
    """

    def __init__(self, title, group_label=None, label=None, **kwargs):
        self.group_label = group_label if group_label else "Uncategorized parameters"
        self.label = label
        super().__init__(title, **kwargs)


STACK_NAME_T = "Name"
STACK_NAME = Parameter(
    STACK_NAME_T,
    Type="String",
    Description="Name of the root stack. Used to name resources and logs",
)

LAUNCH_TYPE_T = "LaunchType"
LAUNCH_TYPE = Parameter(
    LAUNCH_TYPE_T,
    group_label="ECS Cluster Configuration",
    label="Launch Type",
    Type="String",
    Default="Fargate",
    AllowedValues=["Fargate", "EC2"],
    Description="The launch type for your service. Selecting EC2 will create an Auto Scaling group "
    "of instances for your cluster. See "
    "https://docs.aws.amazon.com/AmazonECS/latest/developerguide/launch_types.html "
    "to learn more about launch types.",
)


def to_cfn_string(value) -> str:
    """
    Renders a value the way CloudFormation hands it over to a stack parameter

    :param value: the python value
    :rtype: str
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(to_cfn_string(item) for item in value)
    return str(value)


def is_list_type(param_type: str) -> bool:
    return param_type == "CommaDelimitedList" or bool(LIST_TYPE_RE.match(param_type))


def split_list_value(value) -> list:
    if isinstance(value, (list, tuple)):
        return [to_cfn_string(item) for item in value]
    return [item.strip() for item in to_cfn_string(value).split(",")]


def display_value(parameter: CfnParameter, value):
    """
    Returns the value to show to humans for that parameter. NoEcho values are never shown.
    """
    if parameter.properties.get("NoEcho"):
        return MASKED_VALUE
    return value


def validate_number(parameter, value) -> list:
    errors = []
    str_value = to_cfn_string(value)
    if not NUMBER_RE.match(str_value):
        return [f"{str_value!r} is not a number"]
    number = float(str_value)
    min_value = parameter.properties.get("MinValue")
    max_value = parameter.properties.get("MaxValue")
    if min_value is not None and number < float(min_value):
        errors.append(f"must be greater than or equal to {min_value}")
    if max_value is not None and number > float(max_value):
        errors.append(f"must be less than or equal to {max_value}")
    return errors


def validate_string(parameter, value) -> list:
    errors = []
    str_value = to_cfn_string(value)
    shown = display_value(parameter, repr(str_value))
    min_length = parameter.properties.get("MinLength")
    max_length = parameter.properties.get("MaxLength")
    if min_length is not None and len(str_value) < int(min_length):
        errors.append(f"must contain at least {min_length} characters")
    if max_length is not None and len(str_value) > int(max_length):
        errors.append(f"must contain at most {max_length} characters")
    pattern = parameter.properties.get("AllowedPattern")
    if pattern is not None and not re.fullmatch(pattern, str_value):
        errors.append(
            parameter.properties.get(
                "ConstraintDescription",
                f"{shown} does not match pattern {pattern}",
            ).strip()
        )
    return errors


def validate_aws_type(param_type, values) -> list:
    item_type = param_type
    parts = LIST_TYPE_RE.match(param_type)
    if parts:
        item_type = parts.group("item_type")
    if item_type not in AWS_TYPES_PATTERNS:
        return []
    return [
        f"{item!r} is not a valid {item_type}"
        for item in values
        if not AWS_TYPES_PATTERNS[item_type].match(item)
    ]


def validate_parameter_value(parameter: CfnParameter, value) -> list:
    """
    Evaluates the value against the parameter definition constraints, the same way CloudFormation does
    prior to creating anything.

    :param troposphere.Parameter parameter: the parameter definition
    :param value: the value to evaluate
    :return: the list of constraint violations, empty when valid
    :rtype: list[str]
    """
    if not isinstance(parameter, CfnParameter):
        raise TypeError(
            "parameter must be of type", CfnParameter, "got", type(parameter)
        )
    param_type = parameter.properties["Type"]
    errors = []
    if param_type == "Number":
        errors += validate_number(parameter, value)
    elif param_type == "String":
        errors += validate_string(parameter, value)
    elif is_list_type(param_type):
        errors += validate_aws_type(param_type, split_list_value(value))
    else:
        errors += validate_aws_type(param_type, [to_cfn_string(value)])
    allowed_values = parameter.properties.get("AllowedValues")
    if allowed_values:
        allowed = [to_cfn_string(allowed_value) for allowed_value in allowed_values]
        if is_list_type(param_type):
            values = split_list_value(value)
        else:
            values = [to_cfn_string(value)]
        for item in values:
            if item not in allowed:
                errors.append(
                    f"{display_value(parameter, repr(item))} is not one of {allowed}"
                )
    return errors


def normalize_parameter_value(param_type: str, value):
    """
    Returns the value as a template sees it through Ref: a list of strings for list types,
    a string otherwise.
    """
    if is_list_type(param_type):
        return split_list_value(value)
    return to_cfn_string(value)
