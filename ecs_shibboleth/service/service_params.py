# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters and titles of the Service template
"""

from ecs_shibboleth.common.cfn_params import Parameter

CONTAINER_NAME = "shibboleth-idp"
CONTAINER_PORT = 443
HEALTH_CHECK_GRACE_PERIOD = 120
SEALER_KEY_ENV_VAR = "SEALER_KEY_SECRET_ID"

SERVICE_LINKED_ROLE_T = "EcsServiceLinkedRole"
TASK_ROLE_T = "TaskRole"
EXECUTION_ROLE_T = "TaskExecutionRole"
LOG_GROUP_T = "LogGroup"
TASK_DEFINITION_T = "TaskDefinition"
SERVICE_OUTPUT_T = "Service"

SEALER_KEY_READ_ACTIONS = [
    "secretsmanager:GetResourcePolicy",
    "secretsmanager:GetSecretValue",
    "secretsmanager:DescribeSecret",
    "secretsmanager:ListSecretVersionIds",
]

CLUSTER_T = "Cluster"
CLUSTER = Parameter(CLUSTER_T, Type="String", Description="Name of the ECS Cluster")

DESIRED_COUNT_T = "DesiredCount"
DESIRED_COUNT = Parameter(
    DESIRED_COUNT_T,
    Type="Number",
    Default=0,
    Description="Number of IdP tasks to run",
)

TARGET_GROUP_T = "TargetGroup"
TARGET_GROUP = Parameter(
    TARGET_GROUP_T,
    Type="String",
    Description="ARN of the load balancer target group for the IdP",
)

CONTAINER_IMAGE_URI_T = "ContainerImageURI"
CONTAINER_IMAGE_URI = Parameter(
    CONTAINER_IMAGE_URI_T,
    Type="String",
    Description="URI of the IdP docker image",
)

SEALER_KEY_ARN_T = "SealerKeyArn"
SEALER_KEY_ARN = Parameter(
    SEALER_KEY_ARN_T,
    Type="String",
    Description="ARN of the sealer key secret",
)
