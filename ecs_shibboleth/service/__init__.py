# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The IdP ECS service, its task definition and IAM roles.
"""
