#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from pytest import raises
from troposphere import If

from ecs_shibboleth.common.cfn_conditions import IS_FARGATE_CON_T
from ecs_shibboleth.launch_types import EC2, FARGATE, select_launch_type, variant_if


def test_select_launch_type():
    assert select_launch_type("Fargate") is FARGATE
    assert select_launch_type("EC2") is EC2
    for value in ["fargate", "EXTERNAL", "", None]:
        with raises(ValueError):
            select_launch_type(value)


def test_variants_table():
    assert (FARGATE.network_mode, FARGATE.memory, FARGATE.cpu) == ("awsvpc", 4096, 2048)
    assert (EC2.network_mode, EC2.memory, EC2.cpu) == ("bridge", 3884, 2048)
    assert FARGATE.service_title == "FargateService"
    assert EC2.service_title == "EC2Service"
    assert FARGATE.target_type == "ip" and EC2.target_type == "instance"
    assert FARGATE.uses_awsvpc and not EC2.uses_awsvpc
    assert FARGATE.compatibility == "FARGATE" and EC2.compatibility == "EC2"


def test_variant_if():
    memory = variant_if("memory")
    assert isinstance(memory, If)
    assert memory.to_dict() == {"Fn::If": [IS_FARGATE_CON_T, 4096, 3884]}
    assert variant_if("cpu", cast=str) == "2048"
    with raises(AttributeError):
        variant_if("disk")
