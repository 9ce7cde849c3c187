# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Internet facing Application Load Balancer in front of the IdP.
"""
