#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Leaf first execution of the plan, independent stacks concurrently, stopping at the first failure.
"""

from threading import Lock

from pytest import fixture, raises

from ecs_shibboleth.exceptions import StackMaterializationError
from ecs_shibboleth.orchestration import execute_plan
from ecs_shibboleth.resolver import resolve_plan


@fixture
def plan(root_stack, domain_parameters):
    return resolve_plan(root_stack, domain_parameters)


def test_dependencies_complete_first(plan):
    completed = []
    lock = Lock()

    def materialize(node, dependencies_results):
        assert set(dependencies_results) == node.dependencies
        for dependency in node.dependencies:
            assert dependency in completed
        with lock:
            completed.append(node.name)
        return f"{node.name}-result"

    results = execute_plan(plan, materialize, max_workers=4)
    assert list(results) == plan.order
    assert results["Service"] == "Service-result"
    assert sorted(completed) == sorted(plan.order)


def test_single_worker_follows_plan_order(plan):
    calls = []

    def materialize(node, dependencies_results):
        calls.append(node.name)
        return node.name

    execute_plan(plan, materialize, max_workers=1)
    assert calls == plan.order


def test_dependents_of_a_failure_are_not_attempted(plan):
    calls = []
    lock = Lock()

    def materialize(node, dependencies_results):
        with lock:
            calls.append(node.name)
        if node.name == "LoadBalancer":
            raise RuntimeError("Load balancer limit reached")
        return node.name

    with raises(StackMaterializationError) as error:
        execute_plan(plan, materialize)
    assert error.value.stack_name == "LoadBalancer"
    assert isinstance(error.value.__cause__, RuntimeError)
    assert set(calls) <= {"Secrets", "VPC", "LoadBalancer"}
    for dependent in ["Cluster", "Service", "DeploymentPipeline"]:
        assert dependent not in calls
