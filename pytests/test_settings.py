#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Settings from the command line arguments and the parameters files.
"""

from os import path

import boto3
import placebo
from jsonschema.exceptions import ValidationError
from pytest import raises

from ecs_shibboleth.common.settings import (
    ShibbolethSettings,
    load_parameters_file,
    parse_parameter_overrides,
)
from ecs_shibboleth.exceptions import ParametersFileError

HERE = path.abspath(path.dirname(__file__))


def test_parameters_overrides():
    assert parse_parameter_overrides(None) == {}
    assert parse_parameter_overrides(["LaunchType=EC2", "Tag=a=b"]) == {
        "LaunchType": "EC2",
        "Tag": "a=b",
    }
    with raises(ValueError):
        parse_parameter_overrides(["LaunchType"])


def test_parameters_file(monkeypatch):
    monkeypatch.setenv("IDP_OWNER", "identity-team")
    monkeypatch.delenv("IDP_FQDN", raising=False)
    content = load_parameters_file(f"{HERE}/parameters/valid.yml")
    assert content["Parameters"]["FullyQualifiedDomainName"] == "sso.example.com"
    assert content["Parameters"]["ClusterSize"] == 2
    assert content["Tags"]["Owner"] == "identity-team"
    with raises(ParametersFileError) as error:
        load_parameters_file(f"{HERE}/parameters/invalid.yml")
    assert isinstance(error.value.__cause__, ValidationError)
    with raises(ParametersFileError) as error:
        load_parameters_file(f"{HERE}/parameters/null-value.yml")
    assert error.value.file_path.endswith("null-value.yml")
    with raises(ParametersFileError) as error:
        load_parameters_file(f"{HERE}/parameters/does-not-exist.yml")
    assert isinstance(error.value.__cause__, FileNotFoundError)


def test_command_line_overrides_the_file(monkeypatch):
    monkeypatch.setenv("IDP_FQDN", "idp.example.com")
    settings = ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.render_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
            ShibbolethSettings.parameters_file_arg: f"{HERE}/parameters/valid.yml",
            ShibbolethSettings.parameter_arg: ["LaunchType=Fargate"],
        }
    )
    assert settings.parameters["LaunchType"] == "Fargate"
    assert settings.parameters["FullyQualifiedDomainName"] == "idp.example.com"
    assert settings.tags["Project"] == "shibboleth"
    assert settings.no_upload and not settings.deploy
    assert settings.pseudo_parameters == {
        "AWS::StackName": "shibboleth-idp",
        "AWS::Region": "eu-west-1",
    }


def test_commands():
    with raises(ValueError):
        ShibbolethSettings(**{ShibbolethSettings.command_arg: "destroy"})
    with raises(ValueError):
        ShibbolethSettings(
            **{ShibbolethSettings.command_arg: ShibbolethSettings.deploy_arg}
        )
    settings = ShibbolethSettings(
        **{ShibbolethSettings.command_arg: ShibbolethSettings.validate_arg}
    )
    assert settings.name is None and settings.no_upload
    settings = ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.deploy_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
            ShibbolethSettings.template_base_url_arg: "https://templates.example.com/idp",
        }
    )
    assert settings.deploy and settings.upload
    assert settings.template_base_url == "https://templates.example.com/idp/"


def test_format_file_name():
    settings = ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.validate_arg,
            ShibbolethSettings.format_arg: "json",
        }
    )
    assert settings.format_file_name("secrets.yml") == "secrets.json"
    settings.format = "yaml"
    assert settings.format_file_name("secrets.yml") == "secrets.yml"
    assert settings.format_file_name("vpc.yaml") == "vpc.yaml"
    assert settings.format_file_name("VPC") == "VPC.yaml"


def test_bucket_name_from_account_id():
    session = boto3.session.Session()
    pill = placebo.attach(session, data_path=f"{HERE}/placebos/sts")
    pill.playback()
    settings = ShibbolethSettings(
        session=session,
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.create_arg,
            ShibbolethSettings.name_arg: "shibboleth-idp",
        },
    )
    settings.set_bucket_name_from_account_id()
    assert settings.account_id == "012345678912"
    assert settings.bucket_name == "shibboleth-idp-012345678912-eu-west-1"
    assert settings.pseudo_parameters["AWS::AccountId"] == "012345678912"


def test_no_echo_values_are_kept_as_written(monkeypatch):
    monkeypatch.setenv("HOME", "/root")
    monkeypatch.setenv("IDP_OWNER", "identity-team")
    monkeypatch.delenv("IDP_LDAP_DOMAIN", raising=False)
    settings = ShibbolethSettings(
        **{
            ShibbolethSettings.command_arg: ShibbolethSettings.validate_arg,
            ShibbolethSettings.parameters_file_arg: f"{HERE}/parameters/password.yml",
        }
    )
    assert "LDAPReadOnlyPassword" in ShibbolethSettings.literal_parameters
    assert settings.parameters["LDAPReadOnlyPassword"] == "pa$HOME-${IDP_OWNER}"
    assert settings.parameters["LDAPBaseDN"] == "dc=example,dc=com"
