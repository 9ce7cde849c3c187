# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The VPC nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.vpc.vpc_template import render_vpc_template

VPC_STACK_T = "VPC"
VPC_TEMPLATE_FILE = "vpc.yaml"


class VpcStack(ShibStack):
    """
    Class to represent the VPC stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            VPC_STACK_T,
            stack_template=render_vpc_template(),
            stack_parameters=stack_parameters,
            file_name=VPC_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{VPC_TEMPLATE_FILE}",
            **kwargs,
        )
