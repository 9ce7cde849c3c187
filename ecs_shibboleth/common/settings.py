# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the ShibbolethSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt
from json import loads
from os import path

import boto3
import jsonschema
import jsonschema.exceptions
import yaml
from botocore.exceptions import ClientError
from compose_x_common.aws import (
    get_account_id,
    get_assume_role_session,
    validate_iam_role_arn,
)
from compose_x_common.compose_x_common import keyisset, set_else_none
from importlib_resources import files as pkg_files

from ecs_shibboleth.common.envsubst import expand_values
from ecs_shibboleth.common.logging import LOG
from ecs_shibboleth.exceptions import ParametersFileError
from ecs_shibboleth.iam import ROLE_ARN_ARG
from ecs_shibboleth.secrets.secrets_params import LDAP_PARAMETERS

DEFAULT_TEMPLATE_BASE_URL = (
    "https://shibboleth-bucket.s3.us-east-2.amazonaws.com/template/"
)


def parse_parameter_overrides(overrides) -> dict:
    """
    Parses the Key=Value overrides given on the command line

    :param list overrides:
    :rtype: dict
    """
    parameters = {}
    if not overrides:
        return parameters
    for override in overrides:
        if "=" not in override:
            raise ValueError(
                f"Parameter override {override!r} is invalid. Must be Key=Value"
            )
        key, value = override.split("=", 1)
        parameters[key.strip()] = value
    return parameters


def load_parameters_file(file_path: str, literal_parameters=None) -> dict:
    """
    Loads a CloudFormation config file (JSON or YAML), validated against the parameters file schema.
    Environment variables in the values are expanded, except for the literal parameters.

    :param str file_path:
    :param list literal_parameters: names of the parameters whose value is kept as written
    :return: the file content
    :rtype: dict
    :raises: ParametersFileError if the file cannot be read or is invalid
    """
    try:
        with open(path.abspath(file_path)) as file_fd:
            content = yaml.safe_load(file_fd.read())
    except (OSError, yaml.YAMLError) as error:
        raise ParametersFileError(
            f"Failed to read parameters file {file_path}: {error}", file_path
        ) from error
    source = pkg_files("ecs_shibboleth").joinpath("specs/parameters.spec.json")
    LOG.debug(f"Validating {file_path} against input schema {source}")
    try:
        jsonschema.validate(content, loads(source.read_text()))
    except jsonschema.exceptions.ValidationError as error:
        raise ParametersFileError(
            f"{file_path} is not a valid parameters file: {error.message}", file_path
        ) from error
    literal_parameters = literal_parameters if literal_parameters else []
    parameters = set_else_none("Parameters", content, alt_value={})
    expanded = expand_values(content)
    for name in literal_parameters:
        if name in parameters:
            expanded["Parameters"][name] = parameters[name]
    return expanded


class ShibbolethSettings:
    """
    Class to handle the settings to use for ecs-shibboleth.

    :ivar boto3.session.Session session: session for all the AWS API calls
    :ivar dict parameters: the root stack parameter values provided by the user
    :ivar dict tags: the tags to set on the root stack
    """

    name_arg = "Name"
    region_arg = "RegionName"
    arn_arg = ROLE_ARN_ARG

    deploy_arg = "up"
    render_arg = "render"
    create_arg = "create"
    plan_arg = "plan"
    validate_arg = "validate"
    version_arg = "version"
    command_arg = "command"

    bucket_arg = "BucketName"
    parameters_file_arg = "ParametersFile"
    parameter_arg = "Parameter"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    template_base_url_arg = "TemplateBaseUrl"
    disable_rollback_arg = "DisableRollback"
    default_format = "yaml"
    allowed_formats = ["json", "yaml"]

    default_output_dir = f"/tmp/{dt.utcnow().strftime('%s')}"
    literal_parameters = [
        parameter.title
        for parameter in LDAP_PARAMETERS
        if parameter.properties.get("NoEcho")
    ]

    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates & Validates the CFN templates, Creates/Updates stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates & Validates the CFN templates locally. No upload to S3",
        },
        {
            "name": create_arg,
            "help": "Generates & Validates the CFN templates locally. Uploads files to S3",
        },
        {
            "name": plan_arg,
            "help": "Creates a recursive change-set to show the diff prior to an update",
        },
    ]
    validation_commands = [
        {
            "name": validate_arg,
            "help": "Resolves the stacks graph and previews the stacks for the parameters. No AWS calls",
        }
    ]
    neutral_commands = [
        {"name": version_arg, "help": "ecs-shibboleth version"},
    ]
    all_commands = active_commands + validation_commands + neutral_commands

    def __init__(self, profile_name=None, session=None, **kwargs):
        """
        Class to init the configuration
        """
        self.__args = deepcopy(kwargs)
        self.session = boto3.session.Session()
        self.command = set_else_none(self.command_arg, kwargs)
        self.override_session(session, profile_name, kwargs)
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )
        self.name = set_else_none(self.name_arg, kwargs)
        self.bucket_name = set_else_none(self.bucket_arg, kwargs)
        self.account_id = None
        self.deploy = False
        self.plan = False
        self.upload = False
        self.no_upload = True
        self.parse_command(kwargs)
        self.set_output_settings(kwargs)
        self.template_base_url = set_else_none(
            self.template_base_url_arg, kwargs, alt_value=DEFAULT_TEMPLATE_BASE_URL
        )
        if not self.template_base_url.endswith("/"):
            self.template_base_url += "/"
        self.parameters = {}
        self.tags = {}
        self.set_parameters(kwargs)

    def __repr__(self):
        return f"ShibbolethSettings({self.command}, {self.name})"

    @property
    def disable_rollback(self) -> bool:
        return bool(
            set_else_none(self.disable_rollback_arg, self.__args, alt_value=False)
        )

    @property
    def pseudo_parameters(self) -> dict:
        """
        The pseudo parameters values known prior to deployment
        """
        pseudo = {}
        if self.name:
            pseudo["AWS::StackName"] = self.name
        if self.aws_region:
            pseudo["AWS::Region"] = self.aws_region
        if self.account_id:
            pseudo["AWS::AccountId"] = self.account_id
        return pseudo

    def parse_command(self, kwargs):
        """
        Method to analyze the command and set execution settings accordingly.

        :param dict kwargs:
        """
        command_names = [cmd["name"] for cmd in self.all_commands]
        if self.command not in command_names:
            raise ValueError(
                f"Command {self.command} is not valid. Must be one of", command_names
            )
        if self.command == self.deploy_arg:
            self.deploy = True
            self.upload = True
        elif self.command == self.plan_arg:
            self.plan = True
            self.upload = True
        elif self.command == self.create_arg:
            self.upload = True
        self.no_upload = not self.upload
        if self.command in [cmd["name"] for cmd in self.active_commands] and not (
            keyisset(self.name_arg, kwargs)
        ):
            raise ValueError(f"A stack name is required for {self.command}")

    def override_session(self, session, profile_name, kwargs):
        """
        Method to set the session based on input params

        :param boto3.session.Session session: The session to override the API calls with
        :param str profile_name: Name of a profile configured in .aws/config
        :param dict kwargs: CLI kwargs
        """
        if profile_name and not session:
            self.session = boto3.session.Session(profile_name=profile_name)
        elif session:
            self.session = session
        if keyisset(self.arn_arg, kwargs):
            validate_iam_role_arn(arn=kwargs[self.arn_arg])
            try:
                self.session = get_assume_role_session(
                    self.session,
                    kwargs[self.arn_arg],
                    session_name=f"ShibbolethSettings@{self.command}",
                )
            except ClientError:
                LOG.error(f"Failed to use the Role ARN {kwargs[self.arn_arg]}")
                raise

    def set_output_settings(self, kwargs):
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]

        self.output_dir = (
            kwargs[self.output_dir_arg]
            if keyisset(self.output_dir_arg, kwargs)
            else self.default_output_dir
        )

    def set_parameters(self, kwargs):
        """
        Sets the root parameter values from the parameters file, then the command line overrides.
        """
        if keyisset(self.parameters_file_arg, kwargs):
            content = load_parameters_file(
                kwargs[self.parameters_file_arg], self.literal_parameters
            )
            self.parameters.update(set_else_none("Parameters", content, alt_value={}))
            self.tags.update(set_else_none("Tags", content, alt_value={}))
        overrides = parse_parameter_overrides(
            set_else_none(self.parameter_arg, kwargs, alt_value=[])
        )
        for key in overrides:
            LOG.debug(f"Parameter {key} set from command line")
        self.parameters.update(overrides)

    def format_file_name(self, file_name: str) -> str:
        """
        Returns the file name with the extension of the output format. The YAML files keep their own
        extension (.yml or .yaml).

        :param str file_name:
        :rtype: str
        """
        base_name, extension = path.splitext(file_name)
        if self.format == "json":
            return f"{base_name}.json"
        if extension in [".yml", ".yaml"]:
            return file_name
        return f"{base_name}.yaml"

    def set_bucket_name_from_account_id(self):
        """
        Defines the default bucket name to use from the AWS Account ID
        """
        if self.bucket_name and isinstance(self.bucket_name, str):
            return
        if self.account_id is None:
            try:
                self.account_id = get_account_id(session=self.session)
                self.bucket_name = (
                    f"shibboleth-idp-{self.account_id}-{self.aws_region}"
                )
            except ClientError as error:
                code = error.response["Error"]["Code"]
                message = error.response["Error"]["Message"]
                if code == "ExpiredToken":
                    LOG.error(message)
                    LOG.warning(
                        "Due to credentials error, we won't attempt to upload to S3."
                    )
                else:
                    LOG.error(error)
                self.bucket_name = None
                self.upload = False
                self.no_upload = True
