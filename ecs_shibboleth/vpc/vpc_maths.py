# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Checks of the network layout given as parameters: subnets must fit in the VPC and not overlap.
"""

import ipaddress
from itertools import combinations

from ecs_shibboleth.vpc.vpc_params import (
    PRIVATE_SUBNETS_CIDRS,
    PUBLIC_SUBNETS_CIDRS,
    VPC_CIDR_T,
)


def get_network(value):
    """
    Returns the IPv4Network for the CIDR, None if it is not a valid IPv4 network
    """
    try:
        return ipaddress.IPv4Network(str(value), strict=True)
    except ValueError:
        return None


def validate_network_layout(parameter_values: dict) -> dict:
    """
    Evaluates the VPC and subnets CIDRs together.

    :param dict parameter_values: the root stack parameter values, defaults applied
    :return: the errors per parameter name, empty when valid
    :rtype: dict[str, list[str]]
    """
    errors = {}
    vpc_net = get_network(parameter_values.get(VPC_CIDR_T))
    if vpc_net is None:
        errors[VPC_CIDR_T] = [
            f"{parameter_values.get(VPC_CIDR_T)!r} is not a valid IPv4 network"
        ]
        return errors
    subnets = {}
    for parameter in PUBLIC_SUBNETS_CIDRS + PRIVATE_SUBNETS_CIDRS:
        value = parameter_values.get(parameter.title)
        subnet_net = get_network(value)
        if subnet_net is None:
            errors.setdefault(parameter.title, []).append(
                f"{value!r} is not a valid IPv4 network"
            )
            continue
        if not subnet_net.subnet_of(vpc_net):
            errors.setdefault(parameter.title, []).append(
                f"{subnet_net} is not within the VPC CIDR {vpc_net}"
            )
        subnets[parameter.title] = subnet_net
    for (name_a, net_a), (name_b, net_b) in combinations(subnets.items(), 2):
        if net_a.overlaps(net_b):
            errors.setdefault(name_b, []).append(f"{net_b} overlaps with {name_a}")
    return errors
