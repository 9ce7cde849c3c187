#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2021 John Mille <john@compose-x.io>

"""
Module to handle Root stacks and substacks. Allows to treat everything in memory before uploading
files into S3 and on disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_shibboleth.common.settings import ShibbolethSettings

from compose_x_common.compose_x_common import keyisset
from troposphere import GetAtt, If, ImportValue, Join, Ref, Sub, Template
from troposphere.cloudformation import Stack

from ecs_shibboleth.common import NONALPHANUM
from ecs_shibboleth.common.files import FileArtifact
from ecs_shibboleth.common.logging import LOG
from ecs_shibboleth.exceptions import UnresolvedReferenceError


def render_codepipeline_config_file(parameters):
    """
    Method to write all the parameters in the AWS CFN Config format for Codepipeline
    :param list parameters:
    :return:
    """
    if not parameters:
        return
    config = {"Parameters": {}, "Tags": {}}

    for param in parameters:
        config["Parameters"].update({param["ParameterKey"]: param["ParameterValue"]})
    return config


class StackOutput:
    """
    Handle to an output of a nested stack. Only exists for outputs the stack template declares.
    """

    def __init__(self, stack: ShibStack, name: str):
        if name not in stack.stack_template.outputs:
            raise UnresolvedReferenceError(
                f"Stack {stack.title} has no output {name}. "
                f"Outputs: {list(stack.stack_template.outputs.keys())}"
            )
        self.stack = stack
        self.name = name

    def __repr__(self):
        return f"{self.stack.title}.Outputs.{self.name}"

    @property
    def get_att(self) -> GetAtt:
        return GetAtt(self.stack.title, f"Outputs.{self.name}")


class ShibStack(Stack, object):
    """
    Class to define a CFN Stack as a composition of its template object, parameters, tags etc.

    :ivar troposphere.Template stack_template: the template of the nested stack
    :ivar str file_name: the base file name to render the template into
    :ivar list validators: functions evaluating the stack parameter values together.
    """

    attributes = [
        "Condition",
        "CreationPolicy",
        "DeletionPolicy",
        "DependsOn",
        "Metadata",
        "UpdatePolicy",
        "UpdateReplacePolicy",
    ]

    def __init__(
        self, name, stack_template, stack_parameters=None, file_name=None, **kwargs
    ):
        """
        Class to keep track of the template object along with the stack object it represents.

        :param str name: title of the resource in the root template
        :param troposphere.Template stack_template: the template object to keep track of
        :param dict stack_parameters: Stack parameters to set
        :param str file_name: file name (with extension) to render the template into.
        :param kwargs: kwargs for the stack
        """
        self.name = name
        self.parent_stack = None
        title = NONALPHANUM.sub("", self.name)
        self.file_name = file_name if file_name else f"{title}.yaml"
        self.validators = []
        if not isinstance(stack_template, Template):
            raise TypeError(
                "stack_template is", type(stack_template), "expected", Template
            )
        self.stack_template = stack_template
        if stack_parameters is not None and not isinstance(stack_parameters, dict):
            raise TypeError("parameters is", type(stack_parameters), "expected", dict)
        stack_kwargs = dict((x, kwargs[x]) for x in self.props.keys() if x in kwargs)
        stack_kwargs.update(
            dict((x, kwargs[x]) for x in self.attributes if x in kwargs)
        )
        stack_kwargs.update({"Parameters": {}})
        super().__init__(title, **stack_kwargs)
        if not hasattr(self, "DependsOn") or not keyisset("DependsOn", kwargs):
            self.DependsOn = []
        if stack_parameters:
            self.set_parameters(stack_parameters)

    def __repr__(self):
        return f"ShibStack({self.title})"

    def output(self, name: str) -> StackOutput:
        """
        Returns the handle to the stack output

        :raises: UnresolvedReferenceError if the stack template has no such output
        """
        return StackOutput(self, name)

    @property
    def nested_stacks(self) -> dict:
        """
        The ShibStack resources of this stack template, by title.
        """
        return {
            title: resource
            for title, resource in self.stack_template.resources.items()
            if isinstance(resource, ShibStack)
        }

    def mark_nested_stacks(self):
        """
        Method to go over the stack resources, identify the nested stacks, and set a marker of the parent to them
        """
        for resource in self.nested_stacks.values():
            resource.parent_stack = self
            resource.mark_nested_stacks()

    def add_dependencies(self, dependencies):
        """
        Function to add dependencies to DependsOn
        :return:
        """
        if isinstance(dependencies, str):
            self.DependsOn.append(dependencies)
        elif isinstance(dependencies, list):
            self.DependsOn += dependencies

    def set_parameters(self, parameters):
        """
        Sets the stack parameters. StackOutput handles are turned into GetAtt to the stack output.

        :param dict parameters:
        """
        if not isinstance(parameters, dict):
            raise TypeError("parameters must be of type", dict, "got", type(parameters))
        for name, value in parameters.items():
            if isinstance(value, StackOutput):
                value = value.get_att
            self.Parameters.update({name: value})

    def render_parameters_list_cfn(self, masked=False):
        """
        Renders parameters in a CFN parameters config file format

        :param bool masked: whether to leave out the values of NoEcho parameters.
        :return: params
        :rtype: list
        """
        if not hasattr(self, "Parameters"):
            return []
        params = []
        for param_name, param_value in self.Parameters.items():
            if masked and param_name in self.stack_template.parameters:
                if self.stack_template.parameters[param_name].properties.get("NoEcho"):
                    LOG.debug(f"{self.title}.{param_name} - NoEcho, not rendered")
                    continue
            if isinstance(
                param_value,
                (Ref, GetAtt, ImportValue, If, Join, Sub, type(None)),
            ):
                continue
            if isinstance(param_value, bool):
                params.append(
                    {
                        "ParameterKey": param_name,
                        "ParameterValue": "true" if param_value else "false",
                    }
                )
            elif isinstance(param_value, (int, float, str)):
                params.append(
                    {"ParameterKey": param_name, "ParameterValue": str(param_value)}
                )
            elif isinstance(param_value, list):
                params.append(
                    {
                        "ParameterKey": param_name,
                        "ParameterValue": ",".join(str(item) for item in param_value),
                    }
                )
        return params

    def write_config_file(self, settings: ShibbolethSettings):
        """
        Method to write the parameters file for the stack. Only uses manual input. NoEcho values are left out.
        """
        params = self.render_parameters_list_cfn(masked=True)
        if not params:
            return
        base_name = self.file_name.rsplit(".", 1)[0]
        LOG.debug(f"Rendering {base_name}.params.json")
        file = FileArtifact(
            file_name=f"{base_name}.params.json",
            content=params,
            settings=settings,
        )
        file.define_body()
        file.write(settings)
        config_file = FileArtifact(
            file_name=f"{base_name}.config.json",
            content=render_codepipeline_config_file(params),
            settings=settings,
        )
        config_file.define_body()
        config_file.write(settings)
        if settings.upload:
            file.upload(settings)
            config_file.upload(settings)

    def render(self, settings: ShibbolethSettings):
        """
        Function to use when the template is finalized and can be uploaded to S3.
        """
        LOG.debug(f"Rendering {self.title}")
        self.DependsOn = sorted(set(self.DependsOn))
        template_file = FileArtifact(
            file_name=settings.format_file_name(self.file_name),
            template=self.stack_template,
            settings=settings,
        )
        template_file.define_body()
        template_file.write(settings)
        self.file_name = template_file.file_name
        if not self.parent_stack:
            setattr(self, "TemplateURL", template_file.file_path)
        else:
            setattr(
                self,
                "TemplateURL",
                f"{settings.template_base_url}{template_file.file_name}",
            )
        if settings.upload:
            template_file.upload(settings)
            setattr(self, "TemplateURL", template_file.url)
            LOG.debug(f"Rendered URL = {template_file.url}")
            template_file.validate(settings)


def process_stacks(root_stack, settings):
    """
    Function to go through all stacks of a given template and render them, children first, so that
    the parent templates get the final TemplateURL of their nested stacks.

    :param ShibStack root_stack: the root template to iterate over the resources.
    :param ecs_shibboleth.common.settings.ShibbolethSettings settings: The settings for execution
    """
    root_stack.mark_nested_stacks()
    for resource in root_stack.nested_stacks.values():
        LOG.debug(resource.title)
        process_stacks(resource, settings)
    root_stack.render(settings)
    if not root_stack.parent_stack:
        root_stack.write_config_file(settings)
