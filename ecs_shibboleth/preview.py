#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Preview of what CloudFormation would create for a given set of parameters, without calling AWS.

Each template is evaluated with the intrinsic evaluator: conditions decide which resources exist,
only the selected branch of Fn::If is evaluated, and the values only known once resources exist
are kept symbolic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_shibboleth.resolver import Plan

from troposphere import Template

from ecs_shibboleth.common.cfn_params import LAUNCH_TYPE_T, normalize_parameter_value
from ecs_shibboleth.common.intrinsics import (
    OUTPUTS_PREFIX,
    IntrinsicEvaluator,
    Unresolved,
    is_symbolic,
)
from ecs_shibboleth.common.logging import LOG
from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.exceptions import (
    MissingParameterError,
    UnknownParameterError,
    UnresolvedReferenceError,
)
from ecs_shibboleth.launch_types import LaunchTypeVariant, select_launch_type
from ecs_shibboleth.orchestration import execute_plan

SSM_PARAMETER_TYPE_PREFIX = "AWS::SSM::Parameter::Value<"


class MaterializedStack:
    """
    The resources and outputs a template gives for a set of parameter values.

    :ivar str name:
    :ivar dict parameters: the parameter values, defaults applied
    :ivar dict conditions: condition name to its value
    :ivar dict resources: logical ID to {"Type": ..., "Properties": ...}, created resources only
    :ivar dict outputs: output name to value
    """

    def __init__(self, name, parameters, conditions, resources, outputs):
        self.name = name
        self.parameters = parameters
        self.conditions = conditions
        self.resources = resources
        self.outputs = outputs

    def __repr__(self):
        return f"MaterializedStack({self.name}, {len(self.resources)} resources)"

    def resources_of_type(self, resource_type: str) -> dict:
        return {
            logical_id: definition
            for logical_id, definition in self.resources.items()
            if definition["Type"] == resource_type
        }


class DeploymentPreview:
    """
    The materialized nested stacks and the root stack outputs.

    :ivar LaunchTypeVariant launch_type: the variant the parameters selected
    """

    def __init__(
        self, stacks: dict, outputs: dict, launch_type: LaunchTypeVariant
    ):
        self.stacks = stacks
        self.outputs = outputs
        self.launch_type = launch_type

    def __getitem__(self, name: str) -> MaterializedStack:
        return self.stacks[name]

    def to_table(self) -> list:
        """
        Rows of stack, logical ID, resource type
        """
        return [
            [name, logical_id, definition["Type"]]
            for name, stack in self.stacks.items()
            for logical_id, definition in stack.resources.items()
        ]


def set_parameter_values(
    content: dict, parameter_values: dict, stack_name: str
) -> dict:
    """
    Applies the defaults and returns the values as Ref returns them in the template.

    :raises: UnknownParameterError, MissingParameterError
    """
    declared = content.get("Parameters", {})
    unknown = sorted(set(parameter_values) - set(declared))
    if unknown:
        raise UnknownParameterError(f"{stack_name} - {unknown} are not declared")
    values = {}
    missing = []
    for name, definition in declared.items():
        if name in parameter_values:
            value = parameter_values[name]
        elif "Default" in definition:
            value = definition["Default"]
        else:
            missing.append(name)
            continue
        if is_symbolic(value):
            values[name] = value
        elif definition["Type"].startswith(SSM_PARAMETER_TYPE_PREFIX):
            values[name] = Unresolved(f"ssm:{value}")
        else:
            values[name] = normalize_parameter_value(definition["Type"], value)
    if missing:
        raise MissingParameterError(f"{stack_name} - no value for {missing}")
    return values


def materialize_stack(
    stack,
    parameter_values: dict,
    pseudo_parameters: dict = None,
    stack_name: str = None,
    attribute_resolver=None,
) -> MaterializedStack:
    """
    Evaluates the template for the given parameter values.

    :param stack: the ShibStack or troposphere.Template to evaluate
    :param dict parameter_values: values of the template parameters
    :param dict pseudo_parameters: AWS:: pseudo parameters values
    :param str stack_name: name used for the symbolic values. Defaults to the stack title.
    :param attribute_resolver: callable(logical_id, attribute) for values known outside the template
    :rtype: MaterializedStack
    """
    if isinstance(stack, ShibStack):
        template = stack.stack_template
        stack_name = stack_name if stack_name else stack.title
    elif isinstance(stack, Template):
        template = stack
    else:
        raise TypeError(
            "stack is", type(stack), "expected one of", (ShibStack, Template)
        )
    content = template.to_dict()
    values = set_parameter_values(content, parameter_values, stack_name)
    conditions = content.get("Conditions", {})
    definitions = content.get("Resources", {})
    evaluator = IntrinsicEvaluator(
        parameters=values,
        pseudo_parameters=pseudo_parameters,
        conditions=conditions,
        stack_name=stack_name,
        attribute_resolver=attribute_resolver,
    )
    evaluated_conditions = {
        name: evaluator.evaluate_condition(name) for name in conditions
    }
    created = [
        logical_id
        for logical_id, definition in definitions.items()
        if evaluated_conditions.get(definition.get("Condition"), True)
    ]
    evaluator.resources = set(created)
    resources = {}
    for logical_id in created:
        definition = definitions[logical_id]
        resources[logical_id] = {
            "Type": definition["Type"],
            "Properties": evaluator.evaluate(definition.get("Properties", {})),
        }
    outputs = {}
    for name, definition in content.get("Outputs", {}).items():
        if not evaluated_conditions.get(definition.get("Condition"), True):
            continue
        outputs[name] = evaluator.evaluate(definition["Value"])
    LOG.debug(f"{stack_name} - {len(resources)}/{len(definitions)} resources created")
    return MaterializedStack(
        stack_name, values, evaluated_conditions, resources, outputs
    )


def stacks_outputs_resolver(stacks: dict, requester: str):
    """
    Returns an attribute resolver reading the outputs of the already materialized stacks
    """

    def resolve(logical_id, attribute):
        if logical_id not in stacks or not attribute.startswith(OUTPUTS_PREFIX):
            return None
        output = attribute[len(OUTPUTS_PREFIX) :]
        if output not in stacks[logical_id].outputs:
            raise UnresolvedReferenceError(
                f"{requester} - {logical_id} did not output {output}"
            )
        return stacks[logical_id].outputs[output]

    return resolve


def preview_deployment(
    plan: Plan, root_stack: ShibStack = None, max_workers: int = None
) -> DeploymentPreview:
    """
    Materializes the nested stacks of the plan, in order, and then the root stack outputs.

    :param Plan plan: the resolved plan
    :param ShibStack root_stack: the root stack. Defaults to the plan one.
    :param int max_workers: number of stacks materialized concurrently
    :rtype: DeploymentPreview
    """
    root_stack = root_stack if root_stack else plan.root_stack
    root_name = plan.pseudo_parameters["AWS::StackName"]
    root_content = root_stack.stack_template.to_dict()
    launch_type = select_launch_type(plan.parameter_values[LAUNCH_TYPE_T])
    LOG.info(f"{root_name} - previewing for launch type {launch_type.name}")

    def root_evaluator(stacks, requester):
        return IntrinsicEvaluator(
            parameters=plan.parameter_values,
            pseudo_parameters=plan.pseudo_parameters,
            conditions=root_content.get("Conditions", {}),
            resources=root_content.get("Resources", {}).keys(),
            stack_name=root_stack.title,
            attribute_resolver=stacks_outputs_resolver(stacks, requester),
        )

    def materialize(node, dependencies_results):
        evaluator = root_evaluator(dependencies_results, node.name)
        values = {
            name: evaluator.evaluate(binding.expression)
            for name, binding in node.bindings.items()
        }
        pseudo_parameters = dict(plan.pseudo_parameters)
        pseudo_parameters["AWS::StackName"] = f"{root_name}-{node.name}"
        return materialize_stack(node.stack, values, pseudo_parameters, node.name)

    stacks = execute_plan(plan, materialize, max_workers)
    evaluator = root_evaluator(stacks, root_stack.title)
    outputs = {
        name: evaluator.evaluate(definition["Value"])
        for name, definition in root_content.get("Outputs", {}).items()
    }
    return DeploymentPreview(stacks, outputs, launch_type)
