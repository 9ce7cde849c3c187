#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Resolution of the composition graph of the root stack.

Before anything is rendered, uploaded or deployed, the root stack parameter values are
validated, every parameter binding of the nested stacks is checked against the stacks it
references, and the stacks are ordered so that a stack always comes after the stacks whose
outputs it consumes.
"""

from __future__ import annotations

from types import MappingProxyType

from troposphere import Parameter as CfnParameter

from ecs_shibboleth.common.cfn_params import (
    display_value,
    normalize_parameter_value,
    validate_parameter_value,
)
from ecs_shibboleth.common.intrinsics import (
    OUTPUTS_PREFIX,
    IntrinsicEvaluator,
    OutputReference,
    get_intrinsic,
    is_symbolic,
    iter_references,
)
from ecs_shibboleth.common.logging import LOG
from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.exceptions import (
    CyclicDependencyError,
    MissingParameterError,
    ParameterValidationError,
    UnknownParameterError,
    UnresolvedReferenceError,
)

LITERAL = "literal"
ROOT_PARAMETER = "root-parameter"
PSEUDO_PARAMETER = "pseudo-parameter"
STACK_OUTPUT = "stack-output"
EXPRESSION = "expression"


class ParameterBinding:
    """
    The value a parent stack hands over to one parameter of a nested stack.

    :ivar str name: the nested stack parameter name
    :ivar expression: the encoded value, as rendered in the parent template
    :ivar list references: the ("Ref", name) and ("GetAtt", logical_id, attribute) it uses
    :ivar str kind: one of literal, root-parameter, pseudo-parameter, stack-output, expression
    """

    def __init__(self, name: str, expression, root_parameters=None):
        self.name = name
        self.expression = expression
        self.references = list(iter_references(expression))
        self.kind = self.classify(root_parameters if root_parameters else {})

    def __repr__(self):
        return f"{self.name}={self.source}"

    def classify(self, root_parameters) -> str:
        intrinsic = get_intrinsic(self.expression)
        if not intrinsic:
            return EXPRESSION if self.references else LITERAL
        function, arguments = intrinsic
        if function == "Ref" and arguments.startswith("AWS::"):
            return PSEUDO_PARAMETER
        if function == "Ref" and arguments in root_parameters:
            return ROOT_PARAMETER
        if function == "Fn::GetAtt" and str(self.references[0][2]).startswith(
            OUTPUTS_PREFIX
        ):
            return STACK_OUTPUT
        return EXPRESSION

    @property
    def source(self) -> str:
        """
        Human readable origin of the value
        """
        if self.kind == LITERAL:
            return repr(self.expression)
        if self.kind in [ROOT_PARAMETER, PSEUDO_PARAMETER]:
            return f"Ref {self.references[0][1]}"
        if self.kind == STACK_OUTPUT:
            return f"{self.references[0][1]}.{self.references[0][2]}"
        intrinsic = get_intrinsic(self.expression)
        return intrinsic[0] if intrinsic else EXPRESSION


class StackNode:
    """
    A nested stack of the root stack within the plan.

    :ivar str name: the stack logical ID in the root template
    :ivar ShibStack stack: the nested stack
    :ivar dict bindings: parameter name to ParameterBinding
    :ivar set dependencies: the stacks this one consumes the outputs of
    :ivar set dependents: the stacks consuming this one outputs
    :ivar effective_values: parameter name to value, read-only once resolved
    :ivar int wave: the index of the wave the stack belongs to
    """

    def __init__(self, stack: ShibStack):
        self.name = stack.title
        self.stack = stack
        self.bindings = {}
        self.depends_on = []
        self.dependencies = set()
        self.dependents = set()
        self.effective_values = MappingProxyType({})
        self.wave = None

    def __repr__(self):
        return f"StackNode({self.name})"

    @property
    def template(self):
        return self.stack.stack_template

    def add_dependency(self, node: StackNode):
        self.dependencies.add(node.name)
        node.dependents.add(self.name)


class Plan:
    """
    The resolved composition of the root stack.

    :ivar ShibStack root_stack:
    :ivar dict parameter_values: root parameter values, with defaults applied
    :ivar dict pseudo_parameters: pseudo parameters known prior to deployment
    :ivar dict nodes: stack name to StackNode
    :ivar list order: the stacks names in dependency order
    :ivar list waves: lists of stacks names whose dependencies are all in earlier waves
    """

    def __init__(
        self, root_stack, parameter_values, pseudo_parameters, nodes, order, waves
    ):
        self.root_stack = root_stack
        self.parameter_values = parameter_values
        self.pseudo_parameters = pseudo_parameters
        self.nodes = nodes
        self.order = order
        self.waves = waves

    def __iter__(self):
        for name in self.order:
            yield self.nodes[name]

    def __getitem__(self, name: str) -> StackNode:
        return self.nodes[name]

    def to_table(self) -> list:
        """
        Rows of wave, stack, parameter, kind, source, value. NoEcho values are masked.
        """
        rows = []
        for node in self:
            for name in sorted(node.bindings):
                binding = node.bindings[name]
                value = display_value(
                    node.template.parameters[name], node.effective_values.get(name)
                )
                rows.append(
                    [
                        node.wave,
                        node.name,
                        name,
                        binding.kind,
                        binding.source,
                        str(value),
                    ]
                )
        return rows


def validate_root_parameters(template, parameter_values: dict) -> dict:
    """
    Validates the values against the template parameters. Unknown names and missing values
    are errors, all reported at once.

    :param troposphere.Template template: the root template
    :param dict parameter_values: the values given by the user
    :return: all the parameter values, defaults applied
    :rtype: dict
    :raises: ParameterValidationError
    """
    errors = {}
    values = {}
    for name in parameter_values:
        if name not in template.parameters:
            errors[name] = [
                f"is not a parameter of the template. Valid names: {sorted(template.parameters)}"
            ]
    for name, parameter in template.parameters.items():
        if name in parameter_values:
            value = parameter_values[name]
        elif "Default" in parameter.properties:
            value = parameter.properties["Default"]
        else:
            errors[name] = ["a value is required"]
            continue
        messages = validate_parameter_value(parameter, value)
        if messages:
            errors[name] = messages
            continue
        values[name] = normalize_parameter_value(parameter.properties["Type"], value)
    if errors:
        raise ParameterValidationError(
            f"{len(errors)} invalid root parameter(s)",
            errors,
        )
    return values


def run_validators(root_stack: ShibStack, values: dict):
    errors = {}
    for validator in root_stack.validators:
        for name, messages in validator(values).items():
            errors.setdefault(name, []).extend(messages)
    if errors:
        raise ParameterValidationError("Invalid combination of parameters", errors)


def build_nodes(root_stack: ShibStack) -> dict:
    """
    Creates the StackNode of each nested stack from the rendered root template.
    """
    content = root_stack.stack_template.to_dict()
    resources = content.get("Resources", {})
    root_parameters = root_stack.stack_template.parameters
    nodes = {}
    for title, stack in sorted(root_stack.nested_stacks.items()):
        node = StackNode(stack)
        definition = resources[title]
        for name, expression in (
            definition.get("Properties", {}).get("Parameters", {}).items()
        ):
            node.bindings[name] = ParameterBinding(name, expression, root_parameters)
        depends_on = definition.get("DependsOn", [])
        node.depends_on = [depends_on] if isinstance(depends_on, str) else depends_on
        nodes[title] = node
    return nodes


def link_nodes(root_stack: ShibStack, nodes: dict):
    """
    Checks every reference made by the bindings and sets the dependencies between stacks.

    :raises: UnresolvedReferenceError
    """
    root_parameters = root_stack.stack_template.parameters
    for node in nodes.values():
        for binding in node.bindings.values():
            for reference in binding.references:
                where = f"{node.name}.{binding.name}"
                if reference[0] == "Ref":
                    name = reference[1]
                    if name in root_parameters or name.startswith("AWS::"):
                        continue
                    if name not in nodes:
                        raise UnresolvedReferenceError(
                            f"{where} - Ref {name} is neither a parameter nor a stack of "
                            f"{root_stack.title}"
                        )
                    node.add_dependency(nodes[name])
                    continue
                logical_id, attribute = reference[1], reference[2]
                if logical_id not in nodes:
                    raise UnresolvedReferenceError(
                        f"{where} - GetAtt to {logical_id}, which is not a stack of "
                        f"{root_stack.title}. Stacks: {sorted(nodes)}"
                    )
                target = nodes[logical_id]
                output = attribute[len(OUTPUTS_PREFIX) :]
                if (
                    not attribute.startswith(OUTPUTS_PREFIX)
                    or output not in target.template.outputs
                ):
                    raise UnresolvedReferenceError(
                        f"{where} - {logical_id} has no output {output or attribute}. "
                        f"Outputs: {sorted(target.template.outputs)}"
                    )
                node.add_dependency(target)
        for name in node.depends_on:
            if name not in nodes:
                raise UnresolvedReferenceError(
                    f"{node.name} - DependsOn {name}, which is not a stack of {root_stack.title}"
                )
            node.add_dependency(nodes[name])


def check_parameters_sets(nodes: dict):
    """
    Every supplied parameter must be declared, every declared parameter without Default supplied.

    :raises: UnknownParameterError, MissingParameterError
    """
    for node in nodes.values():
        declared = node.template.parameters
        unknown = sorted(set(node.bindings) - set(declared))
        if unknown:
            raise UnknownParameterError(
                f"{node.name} - {unknown} are not declared by {node.stack.file_name}. "
                f"Declared: {sorted(declared)}"
            )
        missing = sorted(
            name
            for name, parameter in declared.items()
            if name not in node.bindings and "Default" not in parameter.properties
        )
        if missing:
            raise MissingParameterError(
                f"{node.name} - {missing} have no default and are not set"
            )


def find_cycle(nodes: dict, remaining) -> list:
    """
    Returns the first cycle found among the remaining stacks, as [A, B, ..., A]
    """
    path = []
    visited = set()

    def visit(name):
        if name in path:
            return path[path.index(name) :] + [name]
        if name in visited:
            return None
        path.append(name)
        for dependency in sorted(nodes[name].dependencies):
            if dependency in remaining:
                cycle = visit(dependency)
                if cycle:
                    return cycle
        path.pop()
        visited.add(name)
        return None

    for name in sorted(remaining):
        cycle = visit(name)
        if cycle:
            return cycle
    return sorted(remaining)


def sort_nodes(nodes: dict):
    """
    Kahn's algorithm, processing the stacks ready at the same time in name order.

    :return: the order and the waves
    :rtype: tuple[list, list]
    :raises: CyclicDependencyError
    """
    in_degree = {name: len(node.dependencies) for name, node in nodes.items()}
    ready = sorted(name for name, count in in_degree.items() if not count)
    order = []
    waves = []
    while ready:
        waves.append(ready)
        next_ready = []
        for name in ready:
            order.append(name)
            nodes[name].wave = len(waves) - 1
            for dependent in sorted(nodes[name].dependents):
                in_degree[dependent] -= 1
                if not in_degree[dependent]:
                    next_ready.append(dependent)
        ready = sorted(next_ready)
    if len(order) != len(nodes):
        cycle = find_cycle(nodes, set(nodes) - set(order))
        raise CyclicDependencyError(
            f"Cyclic dependency between stacks: {' -> '.join(cycle)}", cycle
        )
    return order, waves


def set_effective_values(plan: Plan):
    """
    Evaluates the bindings of each stack from the root values. Outputs of other stacks stay
    symbolic. Concrete values are validated against the nested template parameter definition.

    :raises: ParameterValidationError
    """
    root_template = plan.root_stack.stack_template

    def output_reference(logical_id, attribute):
        if logical_id in plan.nodes and attribute.startswith(OUTPUTS_PREFIX):
            return OutputReference(logical_id, attribute[len(OUTPUTS_PREFIX) :])
        return None

    evaluator = IntrinsicEvaluator(
        parameters=plan.parameter_values,
        pseudo_parameters=plan.pseudo_parameters,
        conditions=root_template.to_dict().get("Conditions", {}),
        resources=plan.nodes.keys(),
        stack_name=plan.root_stack.title,
        attribute_resolver=output_reference,
    )
    errors = {}
    for node in plan:
        values = {}
        for name, binding in node.bindings.items():
            value = evaluator.evaluate(binding.expression)
            parameter: CfnParameter = node.template.parameters[name]
            if is_symbolic(value):
                values[name] = value
                continue
            messages = validate_parameter_value(parameter, value)
            if messages:
                errors[f"{node.name}.{name}"] = messages
            values[name] = normalize_parameter_value(parameter.properties["Type"], value)
        node.effective_values = MappingProxyType(values)
    if errors:
        raise ParameterValidationError("Invalid values for nested stacks", errors)


def resolve_plan(
    root_stack: ShibStack, parameter_values: dict = None, pseudo_parameters: dict = None
) -> Plan:
    """
    Resolves the composition of the root stack. Nothing is rendered nor changed.

    :param ShibStack root_stack: the root stack with its nested stacks
    :param dict parameter_values: the root parameters values given by the user
    :param dict pseudo_parameters: the AWS:: pseudo parameters known before deployment
    :return: the plan
    :rtype: Plan
    """
    if not isinstance(root_stack, ShibStack):
        raise TypeError("root_stack is", type(root_stack), "expected", ShibStack)
    values = validate_root_parameters(
        root_stack.stack_template, parameter_values if parameter_values else {}
    )
    run_validators(root_stack, values)
    pseudo = dict(pseudo_parameters) if pseudo_parameters else {}
    pseudo.setdefault("AWS::StackName", root_stack.name)
    nodes = build_nodes(root_stack)
    link_nodes(root_stack, nodes)
    check_parameters_sets(nodes)
    order, waves = sort_nodes(nodes)
    plan = Plan(root_stack, values, pseudo, nodes, order, waves)
    set_effective_values(plan)
    LOG.info(
        f"{root_stack.title} - {len(order)} stacks in {len(waves)} waves: "
        + " | ".join(", ".join(wave) for wave in waves)
    )
    return plan
