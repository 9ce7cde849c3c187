#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from pytest import fixture, raises
from troposphere import GetAtt, If, Join, Ref, Select, Split, Sub

from ecs_shibboleth.common.intrinsics import (
    AttributeReference,
    IntrinsicEvaluator,
    OutputReference,
    ResourceReference,
    Unresolved,
    is_symbolic,
    iter_references,
)
from ecs_shibboleth.exceptions import (
    ConditionEvaluationError,
    UnresolvedReferenceError,
)


def encode(function):
    return function.to_dict()


@fixture
def evaluator():
    return IntrinsicEvaluator(
        parameters={"Domain": "sso.example.com", "LaunchType": "Fargate", "Empty": ""},
        pseudo_parameters={"AWS::Region": "eu-west-1"},
        conditions={
            "IsFargate": {"Fn::Equals": [{"Ref": "LaunchType"}, "Fargate"]},
            "IsEC2": {"Fn::Not": [{"Condition": "IsFargate"}]},
            "HasValue": {"Fn::Not": [{"Fn::Equals": [{"Ref": "Empty"}, ""]}]},
            "OnResource": {"Fn::Equals": [{"Ref": "Bucket"}, "name"]},
        },
        resources=["Bucket"],
        stack_name="Test",
    )


def test_sub(evaluator):
    assert evaluator.evaluate(encode(Sub("https://${Domain}/idp/"))) == (
        "https://sso.example.com/idp/"
    )
    assert evaluator.evaluate(encode(Sub("${AWS::Region}.${AWS::URLSuffix}"))) == (
        "eu-west-1.amazonaws.com"
    )
    assert evaluator.evaluate(encode(Sub("${!Literal}-${Domain}"))) == (
        "${Literal}-sso.example.com"
    )
    assert evaluator.evaluate(encode(Sub("${Name}-x", Name=Ref("Domain")))) == (
        "sso.example.com-x"
    )


def test_sub_with_unknown_values(evaluator):
    value = evaluator.evaluate(encode(Sub("${AWS::AccountId}.dkr.ecr.${AWS::Region}")))
    assert isinstance(value, Unresolved)
    assert value.expression == "${AWS::AccountId}.dkr.ecr.eu-west-1"
    assert isinstance(evaluator.evaluate(encode(Sub("arn:${Bucket}"))), Unresolved)


def test_refs_and_attributes(evaluator):
    assert evaluator.evaluate({"Ref": "Domain"}) == "sso.example.com"
    assert evaluator.evaluate({"Ref": "Bucket"}) == ResourceReference("Test", "Bucket")
    assert evaluator.evaluate(encode(GetAtt("Bucket", "Arn"))) == AttributeReference(
        "Test", "Bucket", "Arn"
    )
    with raises(UnresolvedReferenceError):
        evaluator.evaluate({"Ref": "Nothing"})
    with raises(UnresolvedReferenceError):
        evaluator.evaluate(encode(GetAtt("Nothing", "Arn")))


def test_attribute_resolver():
    evaluator = IntrinsicEvaluator(
        attribute_resolver=lambda logical_id, attribute: OutputReference(
            logical_id, attribute.split(".", 1)[1]
        )
    )
    assert evaluator.evaluate(encode(GetAtt("VPC", "Outputs.VpcId"))) == (
        OutputReference("VPC", "VpcId")
    )


def test_conditions(evaluator):
    assert evaluator.evaluate_condition("IsFargate") is True
    assert evaluator.evaluate_condition("IsEC2") is False
    assert evaluator.evaluate_condition("HasValue") is False
    with raises(UnresolvedReferenceError):
        evaluator.evaluate_condition("Unknown")
    with raises(ConditionEvaluationError):
        evaluator.evaluate_condition("OnResource")


def test_if_only_evaluates_the_selected_branch(evaluator):
    node = encode(If("IsFargate", Ref("Domain"), Ref("DoesNotExist")))
    assert evaluator.evaluate(node) == "sso.example.com"
    node = encode(If("IsEC2", 1, 2))
    assert evaluator.evaluate(node) == 2


def test_no_value_is_dropped(evaluator):
    node = {
        "Keep": "value",
        "Drop": encode(If("IsEC2", "x", Ref("AWS::NoValue"))),
        "List": ["a", {"Ref": "AWS::NoValue"}],
    }
    assert evaluator.evaluate(node) == {"Keep": "value", "List": ["a"]}


def test_join_select_split(evaluator):
    assert evaluator.evaluate(encode(Join(",", ["a", Ref("Domain")]))) == (
        "a,sso.example.com"
    )
    assert evaluator.evaluate(encode(Select(1, Split(".", Ref("Domain"))))) == "example"
    joined = evaluator.evaluate(encode(Join(",", [Ref("Bucket"), "b"])))
    assert isinstance(joined, Unresolved)
    assert is_symbolic({"a": [joined]})
    assert isinstance(evaluator.evaluate({"Fn::GetAZs": ""}), Unresolved)


def test_iter_references():
    node = {
        "A": encode(Sub("${Domain}-${Bucket.Arn}-${!Skipped}")),
        "B": [encode(GetAtt("VPC", "Outputs.VpcId")), {"Ref": "AWS::Region"}],
    }
    assert sorted(iter_references(node)) == sorted(
        [
            ("Ref", "Domain"),
            ("GetAtt", "Bucket", "Arn"),
            ("GetAtt", "VPC", "Outputs.VpcId"),
            ("Ref", "AWS::Region"),
        ]
    )
