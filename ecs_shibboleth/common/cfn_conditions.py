#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2021 John Mille <john@compose-x.io>

"""Common Conditions across the templates"""

from troposphere import Condition, Equals, Not, Ref, Template

from ecs_shibboleth.common.cfn_params import LAUNCH_TYPE

IS_FARGATE_CON_T = "IsFargate"
IS_FARGATE_CON = Equals(Ref(LAUNCH_TYPE), "Fargate")

IS_EC2_CON_T = "IsEC2"
IS_EC2_CON = Not(Condition(IS_FARGATE_CON_T))


def add_launch_type_conditions(template):
    """
    Adds the LaunchType parameter and the IsFargate / IsEC2 conditions to the template

    :param troposphere.Template template:
    """
    if not isinstance(template, Template):
        raise TypeError("template must be of type", Template, "got", type(template))
    if LAUNCH_TYPE.title not in template.parameters:
        template.add_parameter(LAUNCH_TYPE)
    if IS_FARGATE_CON_T not in template.conditions:
        template.add_condition(IS_FARGATE_CON_T, IS_FARGATE_CON)
    if IS_EC2_CON_T not in template.conditions:
        template.add_condition(IS_EC2_CON_T, IS_EC2_CON)
