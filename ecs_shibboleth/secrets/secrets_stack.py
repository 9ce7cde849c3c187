# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The Secrets nested stack
"""

from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.secrets.secrets_template import render_secrets_template

SECRETS_STACK_T = "Secrets"
SECRETS_TEMPLATE_FILE = "secrets.yml"


class SecretsStack(ShibStack):
    """
    Class to represent the Secrets stack
    """

    def __init__(self, template_base_url, stack_parameters=None, **kwargs):
        super().__init__(
            SECRETS_STACK_T,
            stack_template=render_secrets_template(),
            stack_parameters=stack_parameters,
            file_name=SECRETS_TEMPLATE_FILE,
            TemplateURL=f"{template_base_url}{SECRETS_TEMPLATE_FILE}",
            **kwargs,
        )
