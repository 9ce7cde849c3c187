#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Resolution of the root stack composition: parameters, references and ordering.
"""

from pytest import fixture, raises
from troposphere import GetAtt, Output, Ref

from ecs_shibboleth.common import MASKED_VALUE
from ecs_shibboleth.common.cfn_params import Parameter
from ecs_shibboleth.common.intrinsics import OutputReference, Unresolved
from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    add_resource,
    init_template,
)
from ecs_shibboleth.exceptions import (
    CyclicDependencyError,
    MissingParameterError,
    ParameterValidationError,
    UnknownParameterError,
    UnresolvedReferenceError,
)
from ecs_shibboleth.resolver import (
    EXPRESSION,
    LITERAL,
    PSEUDO_PARAMETER,
    ROOT_PARAMETER,
    STACK_OUTPUT,
    resolve_plan,
)


def nested_stack(name, parameters=None, outputs=("Out",)):
    template = init_template(f"{name} test stack")
    add_parameters(
        template,
        parameters
        if parameters
        else [Parameter("In", Type="String", Default="none")],
    )
    add_outputs(template, [Output(output, Value="value") for output in outputs])
    return ShibStack(
        name,
        stack_template=template,
        TemplateURL=f"https://templates.example.com/{name}.yaml",
    )


def root_of(*stacks):
    template = init_template("Test root")
    for stack in stacks:
        add_resource(template, stack)
    root_stack = ShibStack("Root", stack_template=template)
    root_stack.mark_nested_stacks()
    return root_stack


def test_stacks_order(root_stack, domain_parameters):
    plan = resolve_plan(root_stack, domain_parameters)
    assert plan.order == [
        "Secrets",
        "VPC",
        "LoadBalancer",
        "Cluster",
        "Service",
        "DeploymentPipeline",
    ]
    assert plan.waves == [
        ["Secrets", "VPC"],
        ["LoadBalancer"],
        ["Cluster"],
        ["Service"],
        ["DeploymentPipeline"],
    ]
    assert plan["Service"].dependencies == {"Cluster", "LoadBalancer", "Secrets", "VPC"}
    assert plan["DeploymentPipeline"].dependencies == {"Cluster", "Secrets", "Service"}
    assert not plan["Secrets"].dependencies
    for node in plan:
        for dependency in node.dependencies:
            assert plan.order.index(dependency) < plan.order.index(node.name)


def test_every_output_reference_exists(root_stack, domain_parameters):
    plan = resolve_plan(root_stack, domain_parameters)
    for node in plan:
        for binding in node.bindings.values():
            if binding.kind != STACK_OUTPUT:
                continue
            _, stack_name, attribute = binding.references[0]
            assert attribute.split(".", 1)[1] in plan[stack_name].template.outputs


def test_bindings_kinds(root_stack, domain_parameters):
    plan = resolve_plan(root_stack, domain_parameters)
    service = plan["Service"].bindings
    assert service["Cluster"].kind == STACK_OUTPUT
    assert service["LaunchType"].kind == ROOT_PARAMETER
    assert service["Name"].kind == PSEUDO_PARAMETER
    assert service["DesiredCount"].kind == LITERAL
    assert service["ContainerImageURI"].kind == EXPRESSION
    assert service["Cluster"].source == "Cluster.Outputs.ClusterName"


def test_effective_values(root_stack, domain_parameters):
    plan = resolve_plan(
        root_stack,
        domain_parameters,
        {
            "AWS::StackName": "idp",
            "AWS::AccountId": "012345678912",
            "AWS::Region": "eu-west-1",
        },
    )
    service = plan["Service"].effective_values
    assert service["LaunchType"] == "Fargate"
    assert service["DesiredCount"] == "0"
    assert service["Name"] == "idp"
    assert service["Cluster"] == OutputReference("Cluster", "ClusterName")
    assert service["SealerKeyArn"] == OutputReference("Secrets", "SealerKeyArn")
    assert service["ContainerImageURI"] == (
        "012345678912.dkr.ecr.eu-west-1.amazonaws.com/shibboleth"
    )
    assert plan["LoadBalancer"].effective_values["CreateHTTPSListener"] == "true"
    assert plan["Secrets"].effective_values["SealerKeyVersionCount"] == "10"
    with raises(TypeError):
        plan["Service"].effective_values["LaunchType"] = "EC2"


def test_unknown_pseudo_parameters_stay_symbolic(root_stack, domain_parameters):
    plan = resolve_plan(root_stack, domain_parameters)
    assert plan.pseudo_parameters["AWS::StackName"] == root_stack.name
    assert isinstance(plan["Service"].effective_values["ContainerImageURI"], Unresolved)


def test_no_echo_values_are_masked(root_stack, domain_parameters):
    domain_parameters["LDAPReadOnlyPassword"] = "s3cr3t-p4ss"
    plan = resolve_plan(root_stack, domain_parameters)
    rows = plan.to_table()
    password_rows = [row for row in rows if row[2] == "LDAPReadOnlyPassword"]
    assert password_rows and password_rows[0][-1] == MASKED_VALUE
    assert all("s3cr3t-p4ss" not in str(row) for row in rows)


def test_missing_root_parameters(root_stack):
    with raises(ParameterValidationError) as error:
        resolve_plan(root_stack, {})
    assert set(error.value.errors) == {"ParentDomain", "FullyQualifiedDomainName"}


def test_invalid_root_parameters(root_stack, domain_parameters):
    domain_parameters.update(
        {
            "VpcCIDR": "bad-value",
            "LaunchType": "Windows",
            "CodeCommitRepoName": "a" * 101,
            "NotAParameter": "value",
        }
    )
    with raises(ParameterValidationError) as error:
        resolve_plan(root_stack, domain_parameters)
    assert set(error.value.errors) == {
        "VpcCIDR",
        "LaunchType",
        "CodeCommitRepoName",
        "NotAParameter",
    }


def test_valid_cidr_accepted(root_stack, domain_parameters):
    domain_parameters["VpcCIDR"] = "10.215.0.0/16"
    assert resolve_plan(root_stack, domain_parameters).parameter_values["VpcCIDR"] == (
        "10.215.0.0/16"
    )


def test_network_layout(root_stack, domain_parameters):
    domain_parameters.update(
        {
            "PublicSubnet2CIDR": "10.215.1.0/24",
            "PrivateSubnet1CIDR": "10.10.11.0/24",
        }
    )
    with raises(ParameterValidationError) as error:
        resolve_plan(root_stack, domain_parameters)
    assert set(error.value.errors) == {"PublicSubnet2CIDR", "PrivateSubnet1CIDR"}


def test_cycles_are_rejected():
    stack_a = nested_stack("A")
    stack_b = nested_stack("B")
    stack_b.set_parameters({"In": stack_a.output("Out")})
    stack_a.set_parameters({"In": stack_b.output("Out")})
    with raises(CyclicDependencyError) as error:
        resolve_plan(root_of(stack_a, stack_b))
    assert error.value.cycle == ["A", "B", "A"]


def test_depends_on_creates_edges():
    stack_a = nested_stack("A")
    stack_b = nested_stack("B")
    stack_b.add_dependencies("A")
    plan = resolve_plan(root_of(stack_b, stack_a))
    assert plan.order == ["A", "B"]
    assert plan.waves == [["A"], ["B"]]


def test_unknown_output_at_wiring():
    with raises(UnresolvedReferenceError):
        nested_stack("A").output("DoesNotExist")


def test_unresolved_references():
    stack_a = nested_stack("A")
    stack_b = nested_stack("B")
    stack_b.set_parameters({"In": GetAtt("A", "Outputs.DoesNotExist")})
    with raises(UnresolvedReferenceError):
        resolve_plan(root_of(stack_a, stack_b))
    stack_b.set_parameters({"In": GetAtt("Ghost", "Outputs.Out")})
    with raises(UnresolvedReferenceError):
        resolve_plan(root_of(stack_a, stack_b))
    stack_b.set_parameters({"In": Ref("Ghost")})
    with raises(UnresolvedReferenceError):
        resolve_plan(root_of(stack_a, stack_b))


def test_parameters_sets():
    stack = nested_stack("A", parameters=[Parameter("Required", Type="String")])
    with raises(MissingParameterError):
        resolve_plan(root_of(stack))
    stack.set_parameters({"Required": "value", "Extra": "value"})
    with raises(UnknownParameterError):
        resolve_plan(root_of(stack))


def test_nested_values_are_validated():
    stack = nested_stack(
        "A", parameters=[Parameter("Count", Type="Number", MinValue=1)]
    )
    stack.set_parameters({"Count": 0})
    with raises(ParameterValidationError) as error:
        resolve_plan(root_of(stack))
    assert list(error.value.errors) == ["A.Count"]


def test_root_stack_type():
    with raises(TypeError):
        resolve_plan("root")
