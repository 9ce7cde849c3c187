#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
What CloudFormation would create, per launch type.
"""

from pytest import raises

from ecs_shibboleth.common.intrinsics import (
    AttributeReference,
    ResourceReference,
    Unresolved,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_template import render_ecs_cluster_template
from ecs_shibboleth.exceptions import MissingParameterError, UnknownParameterError
from ecs_shibboleth.launch_types import EC2, FARGATE
from ecs_shibboleth.load_balancer.load_balancer_template import (
    render_load_balancer_template,
)
from ecs_shibboleth.preview import materialize_stack, preview_deployment
from ecs_shibboleth.resolver import resolve_plan

ECS_SERVICE = "AWS::ECS::Service"
VPC_VALUES = {
    "Subnets": "subnet-0123456789abcdef0,subnet-0123456789abcdef1",
    "VpcId": "vpc-0123456789abcdef0",
}
SEALER_KEY_ARN = AttributeReference("Secrets", "SecretsInitializer", "SealerKeyArn")
SEALER_KEY_READ = [
    "secretsmanager:GetResourcePolicy",
    "secretsmanager:GetSecretValue",
    "secretsmanager:DescribeSecret",
    "secretsmanager:ListSecretVersionIds",
]


def preview_for(root_stack, parameters):
    return preview_deployment(resolve_plan(root_stack, parameters))


def assert_service_contract(service, service_title, stack_name="ShibbolethIdP"):
    task = service.resources["TaskDefinition"]["Properties"]
    container = task["ContainerDefinitions"][0]
    assert container["Name"] == "shibboleth-idp"
    assert container["PortMappings"] == [{"ContainerPort": 443}]
    assert container["Environment"] == [
        {"Name": "SEALER_KEY_SECRET_ID", "Value": SEALER_KEY_ARN}
    ]
    log_options = container["LogConfiguration"]["Options"]
    assert container["LogConfiguration"]["LogDriver"] == "awslogs"
    assert log_options["awslogs-stream-prefix"] == stack_name
    assert log_options["awslogs-group"] == ResourceReference("Service", "LogGroup")

    assert task["TaskRoleArn"] == ResourceReference("Service", "TaskRole")
    task_role = service.resources["TaskRole"]["Properties"]
    assert "ManagedPolicyArns" not in task_role
    statements = [
        statement
        for policy in task_role["Policies"]
        for statement in policy["PolicyDocument"]["Statement"]
    ]
    assert len(statements) == 1
    assert statements[0]["Effect"] == "Allow"
    assert sorted(statements[0]["Action"]) == sorted(SEALER_KEY_READ)
    assert statements[0]["Resource"] == SEALER_KEY_ARN

    assert task["ExecutionRoleArn"] == ResourceReference("Service", "TaskExecutionRole")
    execution_role = service.resources["TaskExecutionRole"]["Properties"]
    assert execution_role["ManagedPolicyArns"] == [
        "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
    ]

    load_balancers = service.resources[service_title]["Properties"]["LoadBalancers"]
    assert len(load_balancers) == 1
    assert load_balancers[0]["ContainerName"] == "shibboleth-idp"
    assert load_balancers[0]["ContainerPort"] == 443


def test_fargate(root_stack, domain_parameters):
    preview = preview_for(root_stack, domain_parameters)
    assert preview.launch_type is FARGATE
    service = preview["Service"]
    assert list(service.resources_of_type(ECS_SERVICE)) == ["FargateService"]
    task = service.resources["TaskDefinition"]["Properties"]
    assert task["NetworkMode"] == "awsvpc"
    assert task["Memory"] == 4096
    assert task["Cpu"] == "2048"
    assert task["RequiresCompatibilities"] == ["FARGATE"]
    assert task["ContainerDefinitions"][0]["Memory"] == 4096
    assert_service_contract(service, "FargateService")
    fargate = service.resources["FargateService"]["Properties"]
    assert fargate["LaunchType"] == "FARGATE"
    assert fargate["NetworkConfiguration"]["AwsvpcConfiguration"][
        "AssignPublicIp"
    ] == ("DISABLED")
    assert service.outputs["Service"] == ResourceReference("Service", "FargateService")
    assert preview["DeploymentPipeline"].parameters["Service"] == (
        ResourceReference("Service", "FargateService")
    )
    target_group = preview["LoadBalancer"].resources["TargetGroup"]["Properties"]
    assert target_group["TargetType"] == "ip"
    assert not preview["Cluster"].resources_of_type(
        "AWS::AutoScaling::AutoScalingGroup"
    )


def test_ec2(root_stack, domain_parameters):
    domain_parameters["LaunchType"] = "EC2"
    preview = preview_for(root_stack, domain_parameters)
    assert preview.launch_type is EC2
    service = preview["Service"]
    assert list(service.resources_of_type(ECS_SERVICE)) == ["EC2Service"]
    task = service.resources["TaskDefinition"]["Properties"]
    assert task["NetworkMode"] == "bridge"
    assert task["Memory"] == 3884
    assert task["RequiresCompatibilities"] == ["EC2"]
    assert_service_contract(service, "EC2Service")
    assert "NetworkConfiguration" not in service.resources["EC2Service"]["Properties"]
    assert service.outputs["Service"] == ResourceReference("Service", "EC2Service")
    target_group = preview["LoadBalancer"].resources["TargetGroup"]["Properties"]
    assert target_group["TargetType"] == "instance"
    cluster = preview["Cluster"]
    assert list(cluster.resources_of_type("AWS::AutoScaling::AutoScalingGroup")) == [
        "AutoScalingGroup"
    ]
    launch_template = cluster.resources["LaunchTemplate"]["Properties"]
    assert isinstance(launch_template["LaunchTemplateData"]["ImageId"], Unresolved)


def test_root_outputs(root_stack, domain_parameters):
    preview = preview_for(root_stack, domain_parameters)
    assert preview.outputs["ServiceUrl"] == "https://sso.example.com/idp/"
    assert preview.outputs["LoadBalancerDNSName"] == AttributeReference(
        "LoadBalancer", "LoadBalancer", "DNSName"
    )
    assert set(preview.outputs) == {
        "LoadBalancerCanonicalHostedZoneID",
        "LoadBalancerDNSName",
        "ServiceUrl",
        "PipelineUrl",
    }
    assert [row[0] for row in preview.to_table()][0] == "Secrets"


def test_nested_stack_names(root_stack, domain_parameters):
    plan = resolve_plan(root_stack, domain_parameters, {"AWS::StackName": "idp"})
    preview = preview_deployment(plan, max_workers=1)
    log_group = preview["Service"].resources["LogGroup"]["Properties"]
    assert log_group["LogGroupName"] == "/ecs/idp"
    assert_service_contract(preview["Service"], "FargateService", "idp")


def test_https_listener():
    without = materialize_stack(render_load_balancer_template(), dict(VPC_VALUES))
    assert "HttpsListener" not in without.resources
    http = without.resources["HttpListener"]["Properties"]
    assert http["DefaultActions"][0]["Type"] == "forward"

    values = dict(VPC_VALUES)
    values["CertificateARN"] = (
        "arn:aws:acm:eu-west-1:012345678912:certificate/0a1b2c3d-ab12-cd34-ef56-0a1b2c3d4e5f"
    )
    with_https = materialize_stack(render_load_balancer_template(), values)
    assert with_https.conditions["UseHTTPSListener"] is True
    assert "HttpsListener" in with_https.resources
    http = with_https.resources["HttpListener"]["Properties"]
    assert http["DefaultActions"][0]["Type"] == "redirect"
    assert with_https.parameters["Subnets"] == [
        "subnet-0123456789abcdef0",
        "subnet-0123456789abcdef1",
    ]


def test_materialize_parameters():
    with raises(MissingParameterError):
        materialize_stack(render_load_balancer_template(), {})
    values = dict(VPC_VALUES)
    values["Unknown"] = "value"
    with raises(UnknownParameterError):
        materialize_stack(render_load_balancer_template(), values)
    with raises(TypeError):
        materialize_stack("template", {})


def test_ec2_hosts_only_for_ec2():
    values = {
        "Name": "idp",
        "SourceSecurityGroup": "sg-0123456789abcdef0",
        "Subnets": VPC_VALUES["Subnets"],
        "VpcId": VPC_VALUES["VpcId"],
    }
    fargate = materialize_stack(render_ecs_cluster_template(), values)
    assert list(fargate.resources) == ["Cluster"]
    values["LaunchType"] = "EC2"
    ec2 = materialize_stack(render_ecs_cluster_template(), values)
    assert {
        "Cluster",
        "HostsSecurityGroup",
        "InstanceRole",
        "InstanceProfile",
        "LaunchTemplate",
        "AutoScalingGroup",
    } == set(ec2.resources)
    assert ec2.outputs["ClusterName"] == ResourceReference(None, "Cluster")
