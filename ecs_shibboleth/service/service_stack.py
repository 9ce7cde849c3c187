# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The Service nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.service.service_template import render_service_template

SERVICE_STACK_T = "Service"
SERVICE_TEMPLATE_FILE = "service.yaml"


class ServiceStack(ShibStack):
    """
    Class to represent the IdP Service stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            SERVICE_STACK_T,
            stack_template=render_service_template(),
            stack_parameters=stack_parameters,
            file_name=SERVICE_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{SERVICE_TEMPLATE_FILE}",
            **kwargs,
        )
