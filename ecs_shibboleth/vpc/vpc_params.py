# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters related to the VPC settings. Used by ecs_shibboleth.vpc and others
"""

from ecs_shibboleth.common.cfn_params import Parameter

VPC_TYPE = "AWS::EC2::VPC::Id"
SUBNETS_TYPE = "List<AWS::EC2::Subnet::Id>"
SG_ID_TYPE = "AWS::EC2::SecurityGroup::Id"

VPC_SETTINGS = "VPC Settings"
CIDR_PATTERN = r"((\d{1,3})\.){3}\d{1,3}/\d{1,2}"
CIDR_CONSTRAINT = "Must be an IPv4 CIDR block, i.e. 10.215.0.0/16"

VPC_T = "Vpc"
IGW_T = "InternetGateway"
PUBLIC_ROUTE_TABLE_T = "PublicRouteTable"

VPC_CIDR_T = "VpcCIDR"
VPC_CIDR = Parameter(
    VPC_CIDR_T,
    group_label=VPC_SETTINGS,
    Type="String",
    Default="10.215.0.0/16",
    AllowedPattern=CIDR_PATTERN,
    ConstraintDescription=CIDR_CONSTRAINT,
    Description="CIDR block of the VPC that will be created",
)

PUBLIC_SUBNET_1_CIDR_T = "PublicSubnet1CIDR"
PUBLIC_SUBNET_1_CIDR = Parameter(
    PUBLIC_SUBNET_1_CIDR_T,
    group_label=VPC_SETTINGS,
    Type="String",
    Default="10.215.1.0/24",
    AllowedPattern=CIDR_PATTERN,
    ConstraintDescription=CIDR_CONSTRAINT,
    Description="CIDR block of public subnet 1",
)

PUBLIC_SUBNET_2_CIDR_T = "PublicSubnet2CIDR"
PUBLIC_SUBNET_2_CIDR = Parameter(
    PUBLIC_SUBNET_2_CIDR_T,
    group_label=VPC_SETTINGS,
    Type="String",
    Default="10.215.2.0/24",
    AllowedPattern=CIDR_PATTERN,
    ConstraintDescription=CIDR_CONSTRAINT,
    Description="CIDR block of public subnet 2",
)

PRIVATE_SUBNET_1_CIDR_T = "PrivateSubnet1CIDR"
PRIVATE_SUBNET_1_CIDR = Parameter(
    PRIVATE_SUBNET_1_CIDR_T,
    group_label=VPC_SETTINGS,
    Type="String",
    Default="10.215.11.0/24",
    AllowedPattern=CIDR_PATTERN,
    ConstraintDescription=CIDR_CONSTRAINT,
    Description="CIDR block of private subnet 1",
)

PRIVATE_SUBNET_2_CIDR_T = "PrivateSubnet2CIDR"
PRIVATE_SUBNET_2_CIDR = Parameter(
    PRIVATE_SUBNET_2_CIDR_T,
    group_label=VPC_SETTINGS,
    Type="String",
    Default="10.215.12.0/24",
    AllowedPattern=CIDR_PATTERN,
    ConstraintDescription=CIDR_CONSTRAINT,
    Description="CIDR block of private subnet 2",
)

PUBLIC_SUBNETS_CIDRS = [PUBLIC_SUBNET_1_CIDR, PUBLIC_SUBNET_2_CIDR]
PRIVATE_SUBNETS_CIDRS = [PRIVATE_SUBNET_1_CIDR, PRIVATE_SUBNET_2_CIDR]

VPC_ID_T = "VpcId"
VPC_ID = Parameter(VPC_ID_T, group_label=VPC_SETTINGS, Type=VPC_TYPE)

SUBNETS_T = "Subnets"
SUBNETS = Parameter(SUBNETS_T, group_label=VPC_SETTINGS, Type=SUBNETS_TYPE)

PRIVATE_SUBNETS_T = "PrivateSubnets"
