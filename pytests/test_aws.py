#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create or update of the root stack, played back from recorded CloudFormation API calls.
"""

from os import path

import boto3
import placebo
from pytest import fixture, raises

from ecs_shibboleth.common.aws import (
    deploy,
    render_tags,
    validate_stack_availability,
)
from ecs_shibboleth.common.settings import ShibbolethSettings
from ecs_shibboleth.root import generate_root_stack

HERE = path.abspath(path.dirname(__file__))
STACK_ID = (
    "arn:aws:cloudformation:eu-west-1:012345678912:stack/shibboleth-idp/"
    "4e9b0b70-3c1f-11ed-9d1c-0a5d0c3e1f2b"
)


def create_settings(case_path, command=ShibbolethSettings.deploy_arg):
    session = boto3.session.Session()
    pill = placebo.attach(session, data_path=f"{HERE}/placebos/{case_path}")
    pill.playback()
    return ShibbolethSettings(
        session=session,
        **{
            ShibbolethSettings.command_arg: command,
            ShibbolethSettings.name_arg: "shibboleth-idp",
            ShibbolethSettings.bucket_arg: "shibboleth-templates",
            ShibbolethSettings.parameter_arg: [
                "ParentDomain=example.com",
                "FullyQualifiedDomainName=sso.example.com",
            ],
        },
    )


def uploaded_root_stack(settings):
    root_stack = generate_root_stack(settings)
    root_stack.TemplateURL = (
        "https://s3.amazonaws.com/shibboleth-templates/shibboleth-idp.yaml"
    )
    return root_stack


@fixture
def render_settings():
    return ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.render_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
        }
    )


def test_create_stack():
    settings = create_settings("aws_create")
    root_stack = uploaded_root_stack(settings)
    assert {
        "ParameterKey": "ParentDomain",
        "ParameterValue": "example.com",
    } in root_stack.render_parameters_list_cfn()
    assert deploy(settings, root_stack) == STACK_ID


def test_update_stack():
    settings = create_settings("aws_update")
    assert deploy(settings, uploaded_root_stack(settings)) == STACK_ID


def test_stack_in_progress():
    settings = create_settings("aws_blocked")
    assert deploy(settings, uploaded_root_stack(settings)) is None


def test_templates_must_be_uploaded(render_settings):
    root_stack = generate_root_stack(render_settings)
    root_stack.TemplateURL = "/tmp/shibboleth-idp.yaml"
    with raises(RuntimeError):
        deploy(render_settings, root_stack)
    settings = create_settings("aws_create")
    with raises(ValueError):
        validate_stack_availability(settings, root_stack)


def test_render_tags():
    assert render_tags({"Project": "shibboleth", "Cost": 10}) == [
        {"Key": "Project", "Value": "shibboleth"},
        {"Key": "Cost", "Value": "10"},
    ]
