#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from tempfile import mkdtemp


# -- CLEANUP FUNCTIONS:
def cleanup_shibboleth_settings(context):
    for attribute in ["settings", "root_stack", "plan", "preview", "error"]:
        if hasattr(context, attribute):
            delattr(context, attribute)


# -- HOOKS:
def before_scenario(context, scenario):
    print("CALLED-HOOK: before_scenario:%s" % scenario.name)
    context.output_dir = mkdtemp(prefix="ecs-shibboleth-")


def after_scenario(context, scenario):
    print("CALLED-HOOK: after_scenario:%s" % scenario.name)
    cleanup_shibboleth_settings(context)
