#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Helpers to manipulate troposphere templates consistently across all the stacks
"""

from __future__ import annotations

from troposphere import AWSObject, Output, Parameter, Template

from ecs_shibboleth.common.logging import LOG

TEMPLATE_VERSION = "2010-09-09"


def init_template(description=None):
    """Function to initialize the troposphere base template

    :param str description: Description of the template
    :returns: template
    :rtype: Template
    """
    template = Template(
        description if description else "Template generated by ecs-shibboleth"
    )
    template.set_version(TEMPLATE_VERSION)
    template.set_metadata({"Generator": "ecs-shibboleth"})
    return template


def add_parameters(template, parameters):
    """
    Function to add parameters to the template

    :param troposphere.Template template:
    :param list parameters:
    """
    for param in parameters:
        if not issubclass(type(param), Parameter):
            raise TypeError("Expected", Parameter, "got", type(param))
        if param.title in template.parameters:
            LOG.debug(f"Parameter {param.title} already in template {template.description}")
            continue
        template.add_parameter(param)


def add_outputs(template, outputs):
    """
    Function to add outputs to the template

    :param troposphere.Template template:
    :param list outputs:
    """
    for output in outputs:
        if not isinstance(output, Output):
            raise TypeError("Expected", Output, "got", type(output))
        template.add_output(output)


def add_resource(template, resource, replace=False):
    """
    Function to add resource to template if the resource does not already exist

    :param troposphere.Template template:
    :param resource:
    :param bool replace:
    :return: the resource in the template
    """
    if not issubclass(type(resource), AWSObject):
        raise TypeError("Expected", AWSObject, "got", type(resource))
    if resource.title not in template.resources:
        template.add_resource(resource)
    elif replace:
        template.resources[resource.title] = resource
    else:
        LOG.debug(f"Resource {resource.title} already in template. Skipping")
    return template.resources[resource.title]


def set_parameters_interface(template, groups_order=None):
    """
    Sets the AWS::CloudFormation::Interface metadata from the parameters labels and groups,
    so that the console presents the parameters grouped and labelled.

    :param troposphere.Template template:
    :param list groups_order: list of group labels, in the order to present them.
    """
    groups = {}
    labels = {}
    for name, parameter in template.parameters.items():
        group_label = getattr(parameter, "group_label", None)
        label = getattr(parameter, "label", None)
        if label:
            labels[name] = {"default": label}
        if group_label:
            groups.setdefault(group_label, []).append(name)
    ordered = [group for group in (groups_order or []) if group in groups]
    ordered += sorted(group for group in groups if group not in ordered)
    interface = {
        "ParameterGroups": [
            {"Label": {"default": group}, "Parameters": groups[group]}
            for group in ordered
        ],
        "ParameterLabels": labels,
    }
    metadata = template.metadata if template.metadata else {}
    metadata["AWS::CloudFormation::Interface"] = interface
    template.set_metadata(metadata)
