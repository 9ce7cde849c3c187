# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the Service template: the IdP task definition, IAM roles and the ECS service of the launch type in use.
"""

from troposphere import AWS_REGION, If, Output, Ref, Sub
from troposphere.ecs import (
    AwsvpcConfiguration,
    ContainerDefinition,
    Environment,
)
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.ecs import (
    LogConfiguration,
    NetworkConfiguration,
    PortMapping,
    Service,
    TaskDefinition,
)
from troposphere.iam import Policy, Role, ServiceLinkedRole
from troposphere.logs import LogGroup

from ecs_shibboleth.common.cfn_conditions import (
    IS_EC2_CON_T,
    IS_FARGATE_CON_T,
    add_launch_type_conditions,
)
from ecs_shibboleth.common.cfn_params import STACK_NAME, STACK_NAME_T
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_params import SOURCE_SECURITY_GROUP
from ecs_shibboleth.iam import aws_managed_policy, service_role_trust_policy
from ecs_shibboleth.launch_types import EC2, FARGATE, variant_if
from ecs_shibboleth.service.service_params import (
    CLUSTER,
    CONTAINER_IMAGE_URI,
    CONTAINER_NAME,
    CONTAINER_PORT,
    DESIRED_COUNT,
    EXECUTION_ROLE_T,
    HEALTH_CHECK_GRACE_PERIOD,
    LOG_GROUP_T,
    SEALER_KEY_ARN,
    SEALER_KEY_ENV_VAR,
    SEALER_KEY_READ_ACTIONS,
    SERVICE_LINKED_ROLE_T,
    SERVICE_OUTPUT_T,
    TARGET_GROUP,
    TASK_DEFINITION_T,
    TASK_ROLE_T,
)
from ecs_shibboleth.vpc.vpc_params import SUBNETS


def add_roles(template):
    """
    Adds the ECS service-linked role, the task role which can only read the sealer key secret,
    and the task execution role.

    :return: tuple with the task role and the execution role
    """
    ServiceLinkedRole(
        SERVICE_LINKED_ROLE_T,
        template=template,
        AWSServiceName="ecs.amazonaws.com",
        Description="Role to enable Amazon ECS to manage your cluster.",
    )
    task_role = Role(
        TASK_ROLE_T,
        template=template,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        Policies=[
            Policy(
                PolicyName="GetSealerKeySecret",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": SEALER_KEY_READ_ACTIONS,
                            "Resource": Ref(SEALER_KEY_ARN),
                        }
                    ],
                },
            )
        ],
    )
    execution_role = Role(
        EXECUTION_ROLE_T,
        template=template,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
        ManagedPolicyArns=[
            aws_managed_policy("service-role/AmazonECSTaskExecutionRolePolicy")
        ],
    )
    return task_role, execution_role


def add_task_definition(template, task_role, execution_role, log_group):
    """
    Adds the task definition. Compatibility, network mode and memory follow the launch type.
    """
    return TaskDefinition(
        TASK_DEFINITION_T,
        template=template,
        Family=Sub(f"shibboleth-idp-${{{STACK_NAME_T}}}"),
        RequiresCompatibilities=[variant_if("compatibility")],
        Memory=variant_if("memory"),
        Cpu=variant_if("cpu", cast=str),
        NetworkMode=variant_if("network_mode"),
        TaskRoleArn=Ref(task_role),
        ExecutionRoleArn=Ref(execution_role),
        ContainerDefinitions=[
            ContainerDefinition(
                Name=CONTAINER_NAME,
                Image=Ref(CONTAINER_IMAGE_URI),
                Environment=[
                    Environment(Name=SEALER_KEY_ENV_VAR, Value=Ref(SEALER_KEY_ARN))
                ],
                Essential=True,
                Memory=variant_if("memory"),
                PortMappings=[PortMapping(ContainerPort=CONTAINER_PORT)],
                LogConfiguration=LogConfiguration(
                    LogDriver="awslogs",
                    Options={
                        "awslogs-region": Ref(AWS_REGION),
                        "awslogs-group": Ref(log_group),
                        "awslogs-stream-prefix": Ref(STACK_NAME),
                    },
                ),
            )
        ],
    )


def add_service(template, variant, condition, task_definition):
    """
    Adds the ECS service of the launch type variant, only created when the condition is true.

    :param troposphere.Template template:
    :param ecs_shibboleth.launch_types.LaunchTypeVariant variant:
    :param str condition: the condition name selecting that variant
    :param TaskDefinition task_definition:
    """
    props = {
        "Cluster": Ref(CLUSTER),
        "DesiredCount": Ref(DESIRED_COUNT),
        "HealthCheckGracePeriodSeconds": HEALTH_CHECK_GRACE_PERIOD,
        "TaskDefinition": Ref(task_definition),
        "LaunchType": variant.ecs_launch_type,
        "LoadBalancers": [
            EcsLoadBalancer(
                ContainerName=CONTAINER_NAME,
                ContainerPort=CONTAINER_PORT,
                TargetGroupArn=Ref(TARGET_GROUP),
            )
        ],
    }
    if variant.uses_awsvpc:
        props["NetworkConfiguration"] = NetworkConfiguration(
            AwsvpcConfiguration=AwsvpcConfiguration(
                AssignPublicIp="DISABLED",
                SecurityGroups=[Ref(SOURCE_SECURITY_GROUP)],
                Subnets=Ref(SUBNETS),
            )
        )
    return Service(
        variant.service_title, template=template, Condition=condition, **props
    )


def render_service_template():
    """
    Function to create the Service template.

    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - ECS Service")
    add_launch_type_conditions(template)
    add_parameters(
        template,
        [
            STACK_NAME,
            CLUSTER,
            DESIRED_COUNT,
            TARGET_GROUP,
            SOURCE_SECURITY_GROUP,
            SUBNETS,
            CONTAINER_IMAGE_URI,
            SEALER_KEY_ARN,
        ],
    )
    task_role, execution_role = add_roles(template)
    log_group = LogGroup(
        LOG_GROUP_T,
        template=template,
        LogGroupName=Sub(f"/ecs/${{{STACK_NAME_T}}}"),
    )
    task_definition = add_task_definition(
        template, task_role, execution_role, log_group
    )
    add_service(template, FARGATE, IS_FARGATE_CON_T, task_definition)
    add_service(template, EC2, IS_EC2_CON_T, task_definition)
    add_outputs(
        template,
        [
            Output(
                SERVICE_OUTPUT_T,
                Description="The ECS service of the IdP",
                Value=If(
                    IS_FARGATE_CON_T,
                    Ref(FARGATE.service_title),
                    Ref(EC2.service_title),
                ),
            )
        ],
    )
    return template
