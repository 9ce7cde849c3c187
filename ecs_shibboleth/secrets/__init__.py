# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Secrets of the IdP, created empty and initialized by a Lambda function backed custom resource.
"""
