# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM helpers shared by the templates.
"""

import re

from troposphere import Sub

ROLE_ARN_ARG = "RoleArn"


def service_role_trust_policy(service_name: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service
    used from lambda-my-aws/ozone

    :param str service_name: name of the AWS service, i.e. ecs-tasks
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [Sub(f"{service_name}.${{AWS::URLSuffix}}")]},
        "Action": ["sts:AssumeRole"],
    }
    policy_doc = {"Version": "2012-10-17", "Statement": [statement]}
    return policy_doc


def aws_managed_policy(policy: str) -> Sub:
    """
    Returns the partition-aware ARN of an AWS managed policy

    :param str policy: the policy path and name, i.e. service-role/AmazonECSTaskExecutionRolePolicy
    :rtype: Sub
    """
    if not re.match(r"^[a-zA-Z0-9-_./]+$", policy):
        raise ValueError(f"AWS managed policy name {policy} is invalid")
    return Sub(f"arn:${{AWS::Partition}}:iam::aws:policy/{policy}")
