# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The LoadBalancer nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.load_balancer.load_balancer_template import (
    render_load_balancer_template,
)

LB_STACK_T = "LoadBalancer"
LB_TEMPLATE_FILE = "load-balancer.yaml"


class LoadBalancerStack(ShibStack):
    """
    Class to represent the LoadBalancer stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            LB_STACK_T,
            stack_template=render_load_balancer_template(),
            stack_parameters=stack_parameters,
            file_name=LB_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{LB_TEMPLATE_FILE}",
            **kwargs,
        )
