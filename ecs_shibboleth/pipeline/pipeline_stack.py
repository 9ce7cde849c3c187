# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The DeploymentPipeline nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.pipeline.pipeline_template import render_pipeline_template

PIPELINE_STACK_T = "DeploymentPipeline"
PIPELINE_TEMPLATE_FILE = "deployment-pipeline.yaml"


class PipelineStack(ShibStack):
    """
    Class to represent the DeploymentPipeline stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            PIPELINE_STACK_T,
            stack_template=render_pipeline_template(),
            stack_parameters=stack_parameters,
            file_name=PIPELINE_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{PIPELINE_TEMPLATE_FILE}",
            **kwargs,
        )
