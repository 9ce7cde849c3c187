#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The two mutually exclusive shapes of the IdP runtime, Fargate or EC2.

Every attribute that differs between the two lives on the variant, so the templates
select from a single table with ``If(IsFargate, FARGATE.<attr>, EC2.<attr>)`` and
only one variant ever gets created.

The EC2 memory is lower than Fargate's (3884 vs 4096) to leave headroom to the
host OS and ECS agent. Keep it that way.
"""

from __future__ import annotations

from troposphere import If

from ecs_shibboleth.common.cfn_conditions import IS_FARGATE_CON_T


class LaunchTypeVariant:
    """
    Class to represent one ECS launch type and all the settings bound to it.

    :ivar str name: the value of the LaunchType parameter selecting this variant
    :ivar str ecs_launch_type: the ECS Service LaunchType
    :ivar str compatibility: the task definition RequiresCompatibilities item
    :ivar str network_mode: the task definition NetworkMode
    :ivar int memory: memory (MB) for the task and the container
    :ivar int cpu: CPU units for the task
    :ivar str service_title: logical id of the ECS Service resource
    :ivar str target_type: the ELBv2 target group TargetType
    :ivar bool uses_awsvpc: whether the service gets a security group and subnets
    """

    def __init__(
        self,
        name: str,
        ecs_launch_type: str,
        network_mode: str,
        memory: int,
        cpu: int,
        service_title: str,
        target_type: str,
    ):
        self.name = name
        self.ecs_launch_type = ecs_launch_type
        self.compatibility = ecs_launch_type
        self.network_mode = network_mode
        self.memory = memory
        self.cpu = cpu
        self.service_title = service_title
        self.target_type = target_type
        self.uses_awsvpc = network_mode == "awsvpc"

    def __repr__(self):
        return f"LaunchTypeVariant({self.name})"


FARGATE = LaunchTypeVariant(
    "Fargate",
    ecs_launch_type="FARGATE",
    network_mode="awsvpc",
    memory=4096,
    cpu=2048,
    service_title="FargateService",
    target_type="ip",
)

EC2 = LaunchTypeVariant(
    "EC2",
    ecs_launch_type="EC2",
    network_mode="bridge",
    memory=3884,
    cpu=2048,
    service_title="EC2Service",
    target_type="instance",
)

LAUNCH_TYPES = {FARGATE.name: FARGATE, EC2.name: EC2}


def select_launch_type(value: str) -> LaunchTypeVariant:
    """
    Returns the variant for the given LaunchType parameter value

    :param str value:
    :raises: ValueError if the value is not a known launch type
    """
    if value not in LAUNCH_TYPES:
        raise ValueError(
            f"LaunchType {value!r} is invalid. Must be one of", list(LAUNCH_TYPES)
        )
    return LAUNCH_TYPES[value]


def variant_if(attribute: str, cast=None) -> If:
    """
    Function to return the If() selecting the attribute of the variant in use.
    When both variants share the same value, the value itself is returned.

    :param str attribute: the LaunchTypeVariant attribute name
    :param cast: optional callable applied to both values, i.e. str
    :return: If(IsFargate, FARGATE.attribute, EC2.attribute)
    :rtype: If
    """
    if not hasattr(FARGATE, attribute):
        raise AttributeError(f"LaunchTypeVariant has no attribute {attribute}")
    fargate_value = getattr(FARGATE, attribute)
    ec2_value = getattr(EC2, attribute)
    if cast:
        fargate_value = cast(fargate_value)
        ec2_value = cast(ec2_value)
    if fargate_value == ec2_value:
        return fargate_value
    return If(IS_FARGATE_CON_T, fargate_value, ec2_value)
