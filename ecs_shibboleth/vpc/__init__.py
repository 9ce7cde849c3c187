# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Network layer of the IdP: VPC, two public and two private subnets, one NAT gateway per AZ.
"""
