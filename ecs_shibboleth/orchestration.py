#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Execution of a plan, leaf stacks first, independent branches in parallel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ecs_shibboleth.resolver import Plan

from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait

from ecs_shibboleth.common.logging import LOG
from ecs_shibboleth.exceptions import StackMaterializationError


def submit_ready_nodes(executor, plan: Plan, materialize, pending, results, running):
    for name in list(pending):
        node = plan.nodes[name]
        if not all(dependency in results for dependency in node.dependencies):
            continue
        pending.remove(name)
        LOG.debug(f"{name} - submitted, dependencies: {sorted(node.dependencies)}")
        future = executor.submit(
            materialize,
            node,
            {dependency: results[dependency] for dependency in node.dependencies},
        )
        running[future] = name


def execute_plan(plan: Plan, materialize: Callable, max_workers: int = None) -> dict:
    """
    Materializes every stack of the plan once all of its dependencies are, handing it their results.
    On the first failure, no other stack is submitted and the ones already running are awaited.

    :param Plan plan: the resolved plan
    :param materialize: callable(node, dependencies_results) returning the stack result
    :param int max_workers: size of the thread pool
    :return: the result of each stack, in plan order
    :rtype: dict
    :raises: StackMaterializationError chained to the original exception
    """
    pending = list(plan.order)
    results = {}
    running = {}
    failure = None
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        submit_ready_nodes(executor, plan, materialize, pending, results, running)
        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                name = running.pop(future)
                try:
                    results[name] = future.result()
                    LOG.debug(f"{name} - completed")
                except Exception as error:
                    LOG.error(f"{name} - failed: {error}")
                    if failure is None:
                        failure = (name, error)
            if failure is None:
                submit_ready_nodes(
                    executor, plan, materialize, pending, results, running
                )
    if failure:
        name, error = failure
        if pending:
            LOG.warning(f"Not attempted after {name} failed: {pending}")
        raise StackMaterializationError(
            f"{name} - {error}", stack_name=name
        ) from error
    return {name: results[name] for name in plan.order}
