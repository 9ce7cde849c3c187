#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Rendering of the root and nested templates to the output directory.
"""

import json
from os import path

from pytest import raises
from troposphere import Template

from ecs_shibboleth.common.settings import ShibbolethSettings
from ecs_shibboleth.common.stacks import ShibStack, process_stacks
from ecs_shibboleth.root import generate_root_stack

TEMPLATE_FILES = [
    "shibboleth-idp",
    "secrets",
    "ecs-cluster",
    "deployment-pipeline",
    "load-balancer",
    "vpc",
    "service",
]


def render_settings(output_dir, template_format="yaml"):
    return ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.render_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
            ShibbolethSettings.output_dir_arg: str(output_dir),
            ShibbolethSettings.format_arg: template_format,
            ShibbolethSettings.template_base_url_arg: "https://templates.example.com/idp/",
            ShibbolethSettings.parameter_arg: [
                "ParentDomain=example.com",
                "FullyQualifiedDomainName=sso.example.com",
                "LDAPReadOnlyPassword=s3cr3t-p4ss",
            ],
        }
    )


def test_render_yaml(tmp_path):
    settings = render_settings(tmp_path)
    root_stack = generate_root_stack(settings)
    process_stacks(root_stack, settings)
    assert path.exists(tmp_path / "secrets.yml")
    for file_name in ["shibboleth-idp.yaml", "vpc.yaml", "service.yaml"]:
        assert path.exists(tmp_path / file_name)
    assert root_stack.TemplateURL == str(tmp_path / "shibboleth-idp.yaml")
    nested = root_stack.nested_stacks
    assert nested["VPC"].TemplateURL == "https://templates.example.com/idp/vpc.yaml"
    assert nested["Secrets"].TemplateURL == (
        "https://templates.example.com/idp/secrets.yml"
    )


def test_render_json(tmp_path):
    settings = render_settings(tmp_path, "json")
    process_stacks(generate_root_stack(settings), settings)
    for file_name in TEMPLATE_FILES:
        assert path.exists(tmp_path / f"{file_name}.json")
    with open(tmp_path / "shibboleth-idp.json") as template_fd:
        template = json.loads(template_fd.read())
    assert template["Resources"]["LoadBalancer"]["Properties"]["TemplateURL"] == (
        "https://templates.example.com/idp/load-balancer.json"
    )


def test_no_echo_values_are_not_written(tmp_path):
    settings = render_settings(tmp_path)
    process_stacks(generate_root_stack(settings), settings)
    with open(tmp_path / "shibboleth-idp.params.json") as params_fd:
        content = params_fd.read()
    params = json.loads(content)
    assert {
        "ParameterKey": "ParentDomain",
        "ParameterValue": "example.com",
    } in params
    assert "s3cr3t-p4ss" not in content
    assert "LDAPReadOnlyPassword" not in content
    with open(tmp_path / "shibboleth-idp.config.json") as config_fd:
        config = json.loads(config_fd.read())
    assert config["Parameters"]["FullyQualifiedDomainName"] == "sso.example.com"


def test_stack_arguments():
    with raises(TypeError):
        ShibStack("Test", stack_template="template")
    with raises(TypeError):
        ShibStack("Test", stack_template=Template(), stack_parameters=["a"])
