#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the ECS Cluster template. The hosts resources only exist for the EC2 launch type.
"""

from troposphere import Base64, GetAtt, Output, Ref, Sub
from troposphere.autoscaling import AutoScalingGroup
from troposphere.autoscaling import Tags as AsgTags
from troposphere.autoscaling import LaunchTemplateSpecification as AsgLaunchTemplate
from troposphere.ec2 import (
    IamInstanceProfile,
    LaunchTemplate,
    LaunchTemplateData,
    SecurityGroup,
    SecurityGroupRule,
)
from troposphere.ecs import Cluster
from troposphere.iam import InstanceProfile, Role

from ecs_shibboleth.common.cfn_conditions import (
    IS_EC2_CON_T,
    add_launch_type_conditions,
)
from ecs_shibboleth.common.cfn_params import STACK_NAME, STACK_NAME_T
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_params import (
    AUTOSCALING_GROUP_T,
    CLUSTER_NAME_OUTPUT_T,
    CLUSTER_SIZE,
    CLUSTER_T,
    ECS_AMI_ID,
    HOSTS_SG_T,
    INSTANCE_PROFILE_T,
    INSTANCE_ROLE_T,
    INSTANCE_TYPE,
    LAUNCH_TEMPLATE_T,
    SOURCE_SECURITY_GROUP,
)
from ecs_shibboleth.iam import aws_managed_policy, service_role_trust_policy
from ecs_shibboleth.vpc.vpc_params import SUBNETS, VPC_ID


def add_hosts_security(template):
    """
    Adds the hosts security group, ingress from the load balancer only, and the instance role and profile.

    :return: tuple with the security group and the instance profile
    """
    security_group = SecurityGroup(
        HOSTS_SG_T,
        template=template,
        Condition=IS_EC2_CON_T,
        GroupDescription=Sub(f"ECS hosts of ${{{STACK_NAME_T}}}"),
        VpcId=Ref(VPC_ID),
        SecurityGroupIngress=[
            SecurityGroupRule(
                IpProtocol="tcp",
                FromPort=0,
                ToPort=65535,
                SourceSecurityGroupId=Ref(SOURCE_SECURITY_GROUP),
            )
        ],
    )
    role = Role(
        INSTANCE_ROLE_T,
        template=template,
        Condition=IS_EC2_CON_T,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("ec2"),
        ManagedPolicyArns=[
            aws_managed_policy("service-role/AmazonEC2ContainerServiceforEC2Role"),
            aws_managed_policy("AmazonSSMManagedInstanceCore"),
        ],
    )
    profile = InstanceProfile(
        INSTANCE_PROFILE_T,
        template=template,
        Condition=IS_EC2_CON_T,
        Path="/",
        Roles=[Ref(role)],
    )
    return security_group, profile


def add_hosts(template, cluster, security_group, profile):
    """
    Adds the launch template registering the instances into the cluster, and the auto scaling group
    on the private subnets.
    """
    launch_template = LaunchTemplate(
        LAUNCH_TEMPLATE_T,
        template=template,
        Condition=IS_EC2_CON_T,
        LaunchTemplateData=LaunchTemplateData(
            ImageId=Ref(ECS_AMI_ID),
            InstanceType=Ref(INSTANCE_TYPE),
            IamInstanceProfile=IamInstanceProfile(Arn=GetAtt(profile, "Arn")),
            SecurityGroupIds=[GetAtt(security_group, "GroupId")],
            UserData=Base64(
                Sub(
                    "#!/bin/bash\n"
                    f"echo ECS_CLUSTER=${{{cluster.title}}} >> /etc/ecs/ecs.config\n"
                )
            ),
        ),
    )
    AutoScalingGroup(
        AUTOSCALING_GROUP_T,
        template=template,
        Condition=IS_EC2_CON_T,
        VPCZoneIdentifier=Ref(SUBNETS),
        MinSize=Ref(CLUSTER_SIZE),
        MaxSize=Ref(CLUSTER_SIZE),
        DesiredCapacity=Ref(CLUSTER_SIZE),
        LaunchTemplate=AsgLaunchTemplate(
            LaunchTemplateId=Ref(launch_template),
            Version=GetAtt(launch_template, "LatestVersionNumber"),
        ),
        Tags=AsgTags(Name=Sub(f"${{{STACK_NAME_T}}} ECS host")),
    )


def render_ecs_cluster_template():
    """
    Function to create the ECS Cluster template.

    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - ECS Cluster")
    add_launch_type_conditions(template)
    add_parameters(
        template,
        [
            STACK_NAME,
            SOURCE_SECURITY_GROUP,
            SUBNETS,
            VPC_ID,
            INSTANCE_TYPE,
            CLUSTER_SIZE,
            ECS_AMI_ID,
        ],
    )
    cluster = Cluster(CLUSTER_T, template=template, ClusterName=Ref(STACK_NAME))
    security_group, profile = add_hosts_security(template)
    add_hosts(template, cluster, security_group, profile)
    add_outputs(template, [Output(CLUSTER_NAME_OUTPUT_T, Value=Ref(cluster))])
    return template
