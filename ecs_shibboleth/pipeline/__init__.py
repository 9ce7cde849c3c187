# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Continuous deployment of the IdP image: CodeCommit, CodeBuild to ECR, CodePipeline to the ECS service.
"""
