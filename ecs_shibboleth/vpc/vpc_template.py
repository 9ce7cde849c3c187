# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC template and its associated resources
"""

from troposphere import GetAtt, GetAZs, Join, Output, Ref, Select, Sub, Tags
from troposphere.ec2 import VPC as VPCType
from troposphere.ec2 import (
    EIP,
    InternetGateway,
    NatGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
    VPCGatewayAttachment,
)

from ecs_shibboleth.common.cfn_params import STACK_NAME, STACK_NAME_T
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.vpc.vpc_params import (
    IGW_T,
    PRIVATE_SUBNETS_CIDRS,
    PRIVATE_SUBNETS_T,
    PUBLIC_ROUTE_TABLE_T,
    PUBLIC_SUBNETS_CIDRS,
    SUBNETS_T,
    VPC_CIDR,
    VPC_ID_T,
    VPC_T,
)

GATEWAY_ATTACHMENT_T = "InternetGatewayAttachment"


def add_vpc_core(template):
    """
    Function to create the core resources of the VPC
    and add them to the core VPC template

    :param template: VPC Template()
    :return: tuple() with the vpc and igw object
    """
    vpc = VPCType(
        VPC_T,
        template=template,
        CidrBlock=Ref(VPC_CIDR),
        EnableDnsHostnames=True,
        EnableDnsSupport=True,
        Tags=Tags(Name=Ref(STACK_NAME)),
    )
    igw = InternetGateway(
        IGW_T, template=template, Tags=Tags(Name=Ref(STACK_NAME))
    )
    VPCGatewayAttachment(
        GATEWAY_ATTACHMENT_T,
        template=template,
        InternetGatewayId=Ref(igw),
        VpcId=Ref(vpc),
    )
    return vpc, igw


def add_public_subnets(template, vpc, igw):
    """
    Adds the public subnets, spread over the first two AZs, and their default route to the internet gateway

    :return: the list of subnets
    :rtype: list[troposphere.ec2.Subnet]
    """
    route_table = RouteTable(
        PUBLIC_ROUTE_TABLE_T,
        template=template,
        VpcId=Ref(vpc),
        Tags=Tags(Name=Sub(f"${{{STACK_NAME_T}}} Public Routes")),
    )
    Route(
        "DefaultPublicRoute",
        template=template,
        DependsOn=[GATEWAY_ATTACHMENT_T],
        RouteTableId=Ref(route_table),
        DestinationCidrBlock="0.0.0.0/0",
        GatewayId=Ref(igw),
    )
    subnets = []
    for count, cidr in enumerate(PUBLIC_SUBNETS_CIDRS):
        subnet = Subnet(
            f"PublicSubnet{count + 1}",
            template=template,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(count, GetAZs("")),
            CidrBlock=Ref(cidr),
            MapPublicIpOnLaunch=True,
            Tags=Tags(Name=Sub(f"${{{STACK_NAME_T}}} Public Subnet (AZ{count + 1})")),
        )
        SubnetRouteTableAssociation(
            f"PublicSubnet{count + 1}RouteTableAssociation",
            template=template,
            RouteTableId=Ref(route_table),
            SubnetId=Ref(subnet),
        )
        subnets.append(subnet)
    return subnets


def add_private_subnets(template, vpc, public_subnets):
    """
    Adds the private subnets. Each one routes to the internet via the NAT gateway of the public subnet
    in the same AZ.

    :return: the list of subnets
    :rtype: list[troposphere.ec2.Subnet]
    """
    subnets = []
    for count, (cidr, public_subnet) in enumerate(
        zip(PRIVATE_SUBNETS_CIDRS, public_subnets)
    ):
        index = count + 1
        eip = EIP(
            f"NatGateway{index}EIP",
            template=template,
            DependsOn=[GATEWAY_ATTACHMENT_T],
            Domain="vpc",
        )
        nat = NatGateway(
            f"NatGateway{index}",
            template=template,
            AllocationId=GetAtt(eip, "AllocationId"),
            SubnetId=Ref(public_subnet),
        )
        subnet = Subnet(
            f"PrivateSubnet{index}",
            template=template,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(count, GetAZs("")),
            CidrBlock=Ref(cidr),
            MapPublicIpOnLaunch=False,
            Tags=Tags(Name=Sub(f"${{{STACK_NAME_T}}} Private Subnet (AZ{index})")),
        )
        route_table = RouteTable(
            f"PrivateRouteTable{index}",
            template=template,
            VpcId=Ref(vpc),
            Tags=Tags(Name=Sub(f"${{{STACK_NAME_T}}} Private Routes (AZ{index})")),
        )
        Route(
            f"DefaultPrivateRoute{index}",
            template=template,
            RouteTableId=Ref(route_table),
            DestinationCidrBlock="0.0.0.0/0",
            NatGatewayId=Ref(nat),
        )
        SubnetRouteTableAssociation(
            f"PrivateSubnet{index}RouteTableAssociation",
            template=template,
            RouteTableId=Ref(route_table),
            SubnetId=Ref(subnet),
        )
        subnets.append(subnet)
    return subnets


def render_vpc_template():
    """
    Function to create the VPC template.

    :return: the VPC template
    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - VPC with public and private subnets")
    add_parameters(
        template,
        [STACK_NAME, VPC_CIDR] + PUBLIC_SUBNETS_CIDRS + PRIVATE_SUBNETS_CIDRS,
    )
    vpc, igw = add_vpc_core(template)
    public_subnets = add_public_subnets(template, vpc, igw)
    private_subnets = add_private_subnets(template, vpc, public_subnets)
    add_outputs(
        template,
        [
            Output(VPC_ID_T, Description="The VPC ID", Value=Ref(vpc)),
            Output(
                SUBNETS_T,
                Description="The public subnets, comma delimited",
                Value=Join(",", [Ref(subnet) for subnet in public_subnets]),
            ),
            Output(
                PRIVATE_SUBNETS_T,
                Description="The private subnets, comma delimited",
                Value=Join(",", [Ref(subnet) for subnet in private_subnets]),
            ),
        ],
    )
    return template
