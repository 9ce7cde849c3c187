#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The ECS Cluster nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.ecs_cluster.ecs_cluster_template import render_ecs_cluster_template

CLUSTER_STACK_T = "Cluster"
CLUSTER_TEMPLATE_FILE = "ecs-cluster.yaml"


class ClusterStack(ShibStack):
    """
    Class to represent the ECS Cluster stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            CLUSTER_STACK_T,
            stack_template=render_ecs_cluster_template(),
            stack_parameters=stack_parameters,
            file_name=CLUSTER_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{CLUSTER_TEMPLATE_FILE}",
            **kwargs,
        )
