#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from ecs_shibboleth.common.cfn_params import Parameter
from ecs_shibboleth.vpc.vpc_params import SG_ID_TYPE

ECS_SETTINGS = "ECS Cluster Configuration"

CLUSTER_T = "Cluster"
CLUSTER_NAME_OUTPUT_T = "ClusterName"
HOSTS_SG_T = "HostsSecurityGroup"
INSTANCE_ROLE_T = "InstanceRole"
INSTANCE_PROFILE_T = "InstanceProfile"
LAUNCH_TEMPLATE_T = "LaunchTemplate"
AUTOSCALING_GROUP_T = "AutoScalingGroup"

DEFAULT_ECS_AMI_ID = "/aws/service/ecs/optimized-ami/amazon-linux-2/recommended/image_id"

SOURCE_SECURITY_GROUP_T = "SourceSecurityGroup"
SOURCE_SECURITY_GROUP = Parameter(
    SOURCE_SECURITY_GROUP_T,
    group_label=ECS_SETTINGS,
    Type=SG_ID_TYPE,
    Description="Security group of the load balancer, allowed to reach the IdP",
)

INSTANCE_TYPE_T = "InstanceType"
INSTANCE_TYPE = Parameter(
    INSTANCE_TYPE_T,
    group_label=ECS_SETTINGS,
    Type="String",
    Default="t3.medium",
    Description="Instance type of the ECS hosts, when the launch type is EC2",
)

CLUSTER_SIZE_T = "ClusterSize"
CLUSTER_SIZE = Parameter(
    CLUSTER_SIZE_T,
    group_label=ECS_SETTINGS,
    Type="Number",
    Default=1,
    MinValue=1,
    Description="Number of ECS hosts, when the launch type is EC2",
)

ECS_AMI_ID_T = "EcsAmiId"
ECS_AMI_ID = Parameter(
    ECS_AMI_ID_T,
    group_label=ECS_SETTINGS,
    Type="AWS::SSM::Parameter::Value<AWS::EC2::Image::Id>",
    Default=DEFAULT_ECS_AMI_ID,
    Description="SSM parameter of the ECS optimized AMI ID",
)
