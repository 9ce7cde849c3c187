# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Cluster of the IdP, with the EC2 hosts when the launch type is EC2.
"""
