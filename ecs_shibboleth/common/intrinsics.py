#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Local evaluation of the CloudFormation intrinsic functions used by the templates.

Works on the rendered form of the templates (``Template.to_dict()`` or ``encode_to_dict()``).
Values only the CloudFormation service knows once resources exist (resource IDs, attributes,
nested stacks outputs) are represented by symbols, which propagate through functions that
combine them.
"""

from __future__ import annotations

import re

from ecs_shibboleth.common.cfn_params import to_cfn_string
from ecs_shibboleth.exceptions import (
    ConditionEvaluationError,
    UnresolvedReferenceError,
)

SUB_VARIABLE_RE = re.compile(r"\$\{([^}]+)\}")
OUTPUTS_PREFIX = "Outputs."
AWS_NO_VALUE = "AWS::NoValue"

DEFAULT_PSEUDO_PARAMETERS = {
    "AWS::Partition": "aws",
    "AWS::URLSuffix": "amazonaws.com",
}

INTRINSIC_FUNCTIONS = [
    "Ref",
    "Condition",
    "Fn::GetAtt",
    "Fn::Sub",
    "Fn::Join",
    "Fn::Select",
    "Fn::Split",
    "Fn::If",
    "Fn::Equals",
    "Fn::Not",
    "Fn::And",
    "Fn::Or",
    "Fn::Base64",
    "Fn::GetAZs",
    "Fn::ImportValue",
    "Fn::FindInMap",
]


class NoValue:
    """Marker for AWS::NoValue. Removed from the evaluated properties."""

    def __repr__(self):
        return AWS_NO_VALUE


NO_VALUE = NoValue()


class Symbol:
    """
    A value the CloudFormation service only knows at deployment time.
    """

    def __init__(self, expression: str):
        self.expression = expression

    def _key(self):
        return (type(self).__name__, self.expression)

    def __eq__(self, other):
        return isinstance(other, Symbol) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f"<{self.expression}>"

    def __str__(self):
        return self.__repr__()


class Unresolved(Symbol):
    """Result of a function applied to at least one unknown value."""


class ResourceReference(Symbol):
    """Ref to a resource of a stack"""

    def __init__(self, stack: str, logical_id: str):
        self.stack = stack
        self.logical_id = logical_id
        super().__init__(f"{stack}.{logical_id}" if stack else logical_id)


class AttributeReference(Symbol):
    """GetAtt to a resource attribute"""

    def __init__(self, stack: str, logical_id: str, attribute: str):
        self.stack = stack
        self.logical_id = logical_id
        self.attribute = attribute
        prefix = f"{stack}." if stack else ""
        super().__init__(f"{prefix}{logical_id}.{attribute}")


class OutputReference(Symbol):
    """Output of another stack, not known until that stack is created"""

    def __init__(self, stack: str, output: str):
        self.stack = stack
        self.output = output
        super().__init__(f"{stack}.Outputs.{output}")


def is_symbolic(value) -> bool:
    """
    Whether the value, or any value it contains, is a Symbol
    """
    if isinstance(value, Symbol):
        return True
    if isinstance(value, dict):
        return any(is_symbolic(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(is_symbolic(item) for item in value)
    return False


def get_intrinsic(node):
    """
    Returns the (function, arguments) if the node is an intrinsic function, None otherwise.
    """
    if isinstance(node, dict) and len(node) == 1:
        key = list(node.keys())[0]
        if key in INTRINSIC_FUNCTIONS:
            return key, node[key]
    return None


def split_get_att(arguments):
    if isinstance(arguments, str):
        logical_id, attribute = arguments.split(".", 1)
        return logical_id, attribute
    return arguments[0], arguments[1]


def iter_references(node):
    """
    Generator of all the references made in the node: ("Ref", name) and ("GetAtt", logical_id, attribute),
    including the variables of Fn::Sub.
    """
    intrinsic = get_intrinsic(node)
    if intrinsic:
        function, arguments = intrinsic
        if function == "Ref":
            yield ("Ref", arguments)
            return
        elif function == "Fn::GetAtt":
            yield ("GetAtt",) + tuple(split_get_att(arguments))
            return
        elif function == "Fn::Sub":
            string, variables = (
                (arguments, {}) if isinstance(arguments, str) else arguments
            )
            for variable in SUB_VARIABLE_RE.findall(string):
                if variable.startswith("!") or variable in variables:
                    continue
                if "." in variable:
                    yield ("GetAtt",) + tuple(split_get_att(variable))
                else:
                    yield ("Ref", variable)
            for value in variables.values():
                yield from iter_references(value)
            return
    if isinstance(node, dict):
        for value in node.values():
            yield from iter_references(value)
    elif isinstance(node, (list, tuple)):
        for item in node:
            yield from iter_references(item)


class IntrinsicEvaluator:
    """
    Evaluates intrinsic functions from known parameter values.

    :ivar dict parameters: parameter name to value
    :ivar dict pseudo_parameters: pseudo parameter (AWS::*) to value
    :ivar dict conditions: condition name to its definition
    :ivar set resources: logical IDs of the template resources
    :ivar str stack_name: name of the stack the template belongs to, used for the symbols
    :ivar attribute_resolver: callable(logical_id, attribute) returning a value, or None when unknown
    """

    def __init__(
        self,
        parameters=None,
        pseudo_parameters=None,
        conditions=None,
        resources=None,
        stack_name=None,
        attribute_resolver=None,
    ):
        self.parameters = parameters if parameters else {}
        self.pseudo_parameters = dict(DEFAULT_PSEUDO_PARAMETERS)
        if pseudo_parameters:
            self.pseudo_parameters.update(pseudo_parameters)
        self.conditions = conditions if conditions else {}
        self.resources = set(resources) if resources else set()
        self.stack_name = stack_name
        self.attribute_resolver = attribute_resolver
        self.evaluated_conditions = {}

    def evaluate(self, node):
        """
        Evaluates the node, recursively.

        :param node: the encoded template node
        :return: the evaluated value
        """
        intrinsic = get_intrinsic(node)
        if intrinsic:
            function, arguments = intrinsic
            return getattr(self, f"fn_{function.replace('Fn::', '').lower()}")(
                arguments
            )
        if isinstance(node, dict):
            evaluated = {key: self.evaluate(value) for key, value in node.items()}
            return {
                key: value for key, value in evaluated.items() if value is not NO_VALUE
            }
        if isinstance(node, (list, tuple)):
            evaluated = [self.evaluate(item) for item in node]
            return [item for item in evaluated if item is not NO_VALUE]
        return node

    def evaluate_condition(self, name: str) -> bool:
        if name in self.evaluated_conditions:
            return self.evaluated_conditions[name]
        if name not in self.conditions:
            raise UnresolvedReferenceError(
                f"Condition {name} is not defined in {self.stack_name}"
            )
        result = self.evaluate_boolean(self.conditions[name])
        self.evaluated_conditions[name] = result
        return result

    def evaluate_boolean(self, node) -> bool:
        value = self.evaluate(node)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ["true", "false"]:
            return value.lower() == "true"
        raise ConditionEvaluationError(
            f"{self.stack_name} - Cannot evaluate {node} to a boolean. Got {value!r}"
        )

    def resolve_name(self, name: str):
        if name in self.parameters:
            return self.parameters[name]
        if name == AWS_NO_VALUE:
            return NO_VALUE
        if name.startswith("AWS::"):
            return self.pseudo_parameters.get(name, Unresolved(name))
        if name in self.resources:
            return ResourceReference(self.stack_name, name)
        raise UnresolvedReferenceError(
            f"{self.stack_name} - {name} is neither a parameter nor a resource"
        )

    def resolve_attribute(self, logical_id: str, attribute: str):
        if self.attribute_resolver:
            value = self.attribute_resolver(logical_id, attribute)
            if value is not None:
                return value
        if logical_id not in self.resources:
            raise UnresolvedReferenceError(
                f"{self.stack_name} - GetAtt to unknown resource {logical_id}"
            )
        return AttributeReference(self.stack_name, logical_id, attribute)

    def fn_ref(self, arguments):
        return self.resolve_name(arguments)

    def fn_condition(self, arguments):
        return self.evaluate_condition(arguments)

    def fn_getatt(self, arguments):
        logical_id, attribute = split_get_att(arguments)
        return self.resolve_attribute(logical_id, attribute)

    def fn_sub(self, arguments):
        string, variables = (arguments, {}) if isinstance(arguments, str) else arguments
        values = {key: self.evaluate(value) for key, value in variables.items()}
        symbolic = False

        def replace(match):
            nonlocal symbolic
            variable = match.group(1)
            if variable.startswith("!"):
                return f"${{{variable[1:]}}}"
            if variable in values:
                value = values[variable]
            elif "." in variable:
                value = self.resolve_attribute(*split_get_att(variable))
            else:
                value = self.resolve_name(variable)
            if is_symbolic(value):
                symbolic = True
                return f"${{{value.expression if isinstance(value, Symbol) else value}}}"
            return to_cfn_string(value)

        result = SUB_VARIABLE_RE.sub(replace, string)
        if symbolic:
            return Unresolved(result)
        return result

    def fn_join(self, arguments):
        delimiter, items = arguments
        values = self.evaluate(items)
        if isinstance(values, Symbol):
            return Unresolved(f"Join({delimiter!r}, {values.expression})")
        if is_symbolic(values):
            return Unresolved(delimiter.join(str(value) for value in values))
        return delimiter.join(to_cfn_string(value) for value in values)

    def fn_select(self, arguments):
        index, items = arguments
        index = self.evaluate(index)
        values = self.evaluate(items)
        if isinstance(values, Symbol) or isinstance(index, Symbol):
            return Unresolved(f"Select({index}, {values})")
        if isinstance(values, str):
            values = values.split(",")
        return values[int(index)]

    def fn_split(self, arguments):
        delimiter, string = arguments
        value = self.evaluate(string)
        if isinstance(value, Symbol):
            return Unresolved(f"Split({delimiter!r}, {value.expression})")
        return to_cfn_string(value).split(delimiter)

    def fn_if(self, arguments):
        condition_name, if_true, if_false = arguments
        if self.evaluate_condition(condition_name):
            return self.evaluate(if_true)
        return self.evaluate(if_false)

    def fn_equals(self, arguments):
        left, right = (self.evaluate(value) for value in arguments)
        if is_symbolic(left) or is_symbolic(right):
            raise ConditionEvaluationError(
                f"{self.stack_name} - Cannot compare unknown values {left!r} and {right!r}"
            )
        return to_cfn_string(left) == to_cfn_string(right)

    def fn_not(self, arguments):
        return not self.evaluate_boolean(arguments[0])

    def fn_and(self, arguments):
        return all(self.evaluate_boolean(condition) for condition in arguments)

    def fn_or(self, arguments):
        return any(self.evaluate_boolean(condition) for condition in arguments)

    def fn_base64(self, arguments):
        return self.evaluate(arguments)

    def fn_getazs(self, arguments):
        region = self.evaluate(arguments) if arguments else ""
        return Unresolved(f"GetAZs({region})")

    def fn_importvalue(self, arguments):
        return Unresolved(f"ImportValue({self.evaluate(arguments)})")

    def fn_findinmap(self, arguments):
        return Unresolved(f"FindInMap({self.evaluate(arguments)})")
