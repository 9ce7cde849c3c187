#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameter constraints, evaluated the way CloudFormation does before creating anything.
"""

from pytest import raises

from ecs_shibboleth.common import MASKED_VALUE
from ecs_shibboleth.common.cfn_params import (
    LAUNCH_TYPE,
    Parameter,
    normalize_parameter_value,
    to_cfn_string,
    validate_parameter_value,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_params import CLUSTER_SIZE
from ecs_shibboleth.pipeline.pipeline_params import CODECOMMIT_REPO_NAME
from ecs_shibboleth.secrets.secrets_params import LDAP_READ_ONLY_PASSWORD
from ecs_shibboleth.vpc.vpc_params import SUBNETS, VPC_CIDR, VPC_ID


def test_vpc_cidr_pattern():
    assert validate_parameter_value(VPC_CIDR, "bad-value")
    assert not validate_parameter_value(VPC_CIDR, "10.215.0.0/16")


def test_pattern_matches_the_whole_value():
    assert validate_parameter_value(VPC_CIDR, "10.215.0.0/16 and more")
    assert validate_parameter_value(VPC_CIDR, "x10.215.0.0/16")


def test_codecommit_repo_name():
    assert not validate_parameter_value(CODECOMMIT_REPO_NAME, "shibboleth")
    assert not validate_parameter_value(CODECOMMIT_REPO_NAME, "my-repo_1.0")
    assert not validate_parameter_value(CODECOMMIT_REPO_NAME, "a" * 100)
    assert validate_parameter_value(CODECOMMIT_REPO_NAME, "a" * 101)
    assert validate_parameter_value(CODECOMMIT_REPO_NAME, "bad name!")
    assert validate_parameter_value(CODECOMMIT_REPO_NAME, "repo/name")


def test_launch_type_allowed_values():
    assert not validate_parameter_value(LAUNCH_TYPE, "Fargate")
    assert not validate_parameter_value(LAUNCH_TYPE, "EC2")
    errors = validate_parameter_value(LAUNCH_TYPE, "Windows")
    assert errors and "Windows" in errors[0]


def test_number_constraints():
    assert not validate_parameter_value(CLUSTER_SIZE, 2)
    assert not validate_parameter_value(CLUSTER_SIZE, "3")
    assert validate_parameter_value(CLUSTER_SIZE, 0)
    assert validate_parameter_value(CLUSTER_SIZE, "two")


def test_aws_specific_types():
    assert not validate_parameter_value(VPC_ID, "vpc-0123456789abcdef0")
    assert validate_parameter_value(VPC_ID, "vpc_123")
    assert not validate_parameter_value(
        SUBNETS, "subnet-0123456789abcdef0,subnet-0123456789abcdef1"
    )
    assert not validate_parameter_value(
        SUBNETS, ["subnet-0123456789abcdef0", "subnet-0123456789abcdef1"]
    )
    assert validate_parameter_value(SUBNETS, "subnet-0123456789abcdef0,vpc-abcd")


def test_no_echo_values_never_in_messages():
    secret = Parameter(
        "Secret",
        Type="String",
        NoEcho=True,
        AllowedValues=["one", "two"],
    )
    errors = validate_parameter_value(secret, "hunter2")
    assert errors
    assert all("hunter2" not in error for error in errors)
    assert MASKED_VALUE in errors[0]
    assert LDAP_READ_ONLY_PASSWORD.properties["NoEcho"] is True


def test_validate_parameter_type_error():
    with raises(TypeError):
        validate_parameter_value("VpcCIDR", "10.0.0.0/16")


def test_cfn_strings():
    assert to_cfn_string(True) == "true"
    assert to_cfn_string(False) == "false"
    assert to_cfn_string(10) == "10"
    assert to_cfn_string(["a", "b"]) == "a,b"
    assert normalize_parameter_value("Number", 0) == "0"
    assert normalize_parameter_value("CommaDelimitedList", "a, b") == ["a", "b"]
    assert normalize_parameter_value("List<AWS::EC2::Subnet::Id>", ["s-1"]) == ["s-1"]


def test_parameter_metadata():
    assert LAUNCH_TYPE.group_label
    assert not hasattr(LAUNCH_TYPE, "return_value")
    parameter = Parameter("Plain", Type="String")
    assert parameter.group_label == "Uncategorized parameters"
    assert parameter.label is None
    with raises(AttributeError):
        Parameter("Plain", Type="String", return_value="Plain")
