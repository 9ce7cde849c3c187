#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ecs-shibboleth
"""


class ShibbolethBaseException(Exception):
    """
    Top class for ecs-shibboleth Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class ParameterValidationError(ShibbolethBaseException):
    """
    One or more parameter values do not satisfy their constraints.
    ``errors`` maps each failing parameter to the list of its violations.
    """

    def __init__(self, msg, errors=None, *args):
        self.errors = errors if errors else {}
        super().__init__(msg, *args)

    def __str__(self):
        if not self.errors:
            return self.args[0]
        details = "; ".join(
            f"{name}: {', '.join(messages)}" for name, messages in self.errors.items()
        )
        return f"{self.args[0]} - {details}"


class UnresolvedReferenceError(ShibbolethBaseException):
    """
    A parameter references a stack, output or parameter that does not exist
    """


class MissingParameterError(ShibbolethBaseException):
    """
    A nested template declares a parameter without default that nothing supplies
    """


class UnknownParameterError(ShibbolethBaseException):
    """
    A value is supplied for a parameter the template does not declare
    """


class CyclicDependencyError(ShibbolethBaseException):
    """
    The stacks cross-references form a cycle
    """

    def __init__(self, msg, cycle=None, *args):
        self.cycle = cycle if cycle else []
        super().__init__(msg, *args)


class ConditionEvaluationError(ShibbolethBaseException):
    """
    A condition could not be evaluated to a boolean from the known values
    """


class StackMaterializationError(ShibbolethBaseException):
    """
    Materializing a stack of the plan failed. Dependents were not attempted.
    """

    def __init__(self, msg, stack_name=None, *args):
        self.stack_name = stack_name
        super().__init__(msg, *args)


class ParametersFileError(ShibbolethBaseException):
    """
    The parameters file cannot be read or does not match the parameters file schema
    """

    def __init__(self, msg, file_path=None, *args):
        self.file_path = file_path
        super().__init__(msg, *args)
