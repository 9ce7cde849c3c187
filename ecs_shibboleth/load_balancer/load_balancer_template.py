# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the LoadBalancer template: ALB, its security group, the IdP target group and the listeners.
"""

from troposphere import And, Equals, GetAtt, If, Not, Output, Ref, Sub
from troposphere.ec2 import SecurityGroup, SecurityGroupRule
from troposphere.elasticloadbalancingv2 import (
    Action,
    Certificate,
    Listener,
    LoadBalancer,
    Matcher,
    RedirectConfig,
    TargetGroup,
)

from ecs_shibboleth.common.cfn_conditions import add_launch_type_conditions
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.launch_types import variant_if
from ecs_shibboleth.load_balancer.load_balancer_params import (
    CERTIFICATE_ARN,
    CREATE_HTTPS_LISTENER,
    DNS_NAME_OUTPUT_T,
    HEALTH_CHECK_PATH,
    HOSTED_ZONE_OUTPUT_T,
    HTTP_LISTENER_T,
    HTTPS_LISTENER_T,
    IDP_PORT,
    LB_SG_T,
    LB_T,
    LB_URL_OUTPUT_T,
    SECURITY_GROUP_OUTPUT_T,
    TARGET_GROUP_T,
    USE_HTTPS_LISTENER_CON_T,
)
from ecs_shibboleth.vpc.vpc_params import SUBNETS, VPC_ID

USE_HTTPS_LISTENER_CON = And(
    Equals(Ref(CREATE_HTTPS_LISTENER), "true"),
    Not(Equals(Ref(CERTIFICATE_ARN), "")),
)


def add_load_balancer(template):
    """
    Adds the security group and the internet-facing ALB

    :return: tuple with the load balancer and its security group
    """
    security_group = SecurityGroup(
        LB_SG_T,
        template=template,
        GroupDescription="Access to the Shibboleth IdP load balancer",
        VpcId=Ref(VPC_ID),
        SecurityGroupIngress=[
            SecurityGroupRule(
                IpProtocol="tcp", FromPort=port, ToPort=port, CidrIp="0.0.0.0/0"
            )
            for port in [80, 443]
        ],
    )
    load_balancer = LoadBalancer(
        LB_T,
        template=template,
        Type="application",
        Scheme="internet-facing",
        Subnets=Ref(SUBNETS),
        SecurityGroups=[Ref(security_group)],
    )
    return load_balancer, security_group


def add_target_group(template):
    """
    Target group of the IdP containers. The target type depends on the launch type.
    """
    return TargetGroup(
        TARGET_GROUP_T,
        template=template,
        Port=IDP_PORT,
        Protocol="HTTPS",
        VpcId=Ref(VPC_ID),
        TargetType=variant_if("target_type"),
        HealthCheckPath=HEALTH_CHECK_PATH,
        HealthCheckProtocol="HTTPS",
        Matcher=Matcher(HttpCode="200"),
    )


def add_listeners(template, load_balancer, target_group):
    """
    Adds the HTTPS listener when requested and a certificate is set, and the HTTP listener which redirects
    to HTTPS when the HTTPS listener exists, forwards to the IdP otherwise.
    """
    forward = Action(Type="forward", TargetGroupArn=Ref(target_group))
    redirect = Action(
        Type="redirect",
        RedirectConfig=RedirectConfig(
            Protocol="HTTPS", Port=str(IDP_PORT), StatusCode="HTTP_301"
        ),
    )
    Listener(
        HTTPS_LISTENER_T,
        template=template,
        Condition=USE_HTTPS_LISTENER_CON_T,
        LoadBalancerArn=Ref(load_balancer),
        Port=IDP_PORT,
        Protocol="HTTPS",
        Certificates=[Certificate(CertificateArn=Ref(CERTIFICATE_ARN))],
        DefaultActions=[forward],
    )
    Listener(
        HTTP_LISTENER_T,
        template=template,
        LoadBalancerArn=Ref(load_balancer),
        Port=80,
        Protocol="HTTP",
        DefaultActions=If(USE_HTTPS_LISTENER_CON_T, [redirect], [forward]),
    )


def render_load_balancer_template():
    """
    Function to create the LoadBalancer template.

    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - Application Load Balancer")
    add_launch_type_conditions(template)
    add_parameters(template, [SUBNETS, VPC_ID, CREATE_HTTPS_LISTENER, CERTIFICATE_ARN])
    template.add_condition(USE_HTTPS_LISTENER_CON_T, USE_HTTPS_LISTENER_CON)
    load_balancer, security_group = add_load_balancer(template)
    target_group = add_target_group(template)
    add_listeners(template, load_balancer, target_group)
    add_outputs(
        template,
        [
            Output(TARGET_GROUP_T, Value=Ref(target_group)),
            Output(SECURITY_GROUP_OUTPUT_T, Value=GetAtt(security_group, "GroupId")),
            Output(DNS_NAME_OUTPUT_T, Value=GetAtt(load_balancer, "DNSName")),
            Output(
                HOSTED_ZONE_OUTPUT_T,
                Value=GetAtt(load_balancer, "CanonicalHostedZoneID"),
            ),
            Output(
                LB_URL_OUTPUT_T,
                Description="URL of the load balancer",
                Value=If(
                    USE_HTTPS_LISTENER_CON_T,
                    Sub(f"https://${{{LB_T}.DNSName}}"),
                    Sub(f"http://${{{LB_T}.DNSName}}"),
                ),
            ),
        ],
    )
    return template
