# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Root stack of the Shibboleth IdP, composing the six nested stacks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_shibboleth.common.settings import ShibbolethSettings

from troposphere import AWS_ACCOUNT_ID, AWS_REGION, AWS_STACK_NAME, Output, Ref, Sub

from ecs_shibboleth.common.cfn_params import LAUNCH_TYPE, Parameter, STACK_NAME_T
from ecs_shibboleth.common.settings import DEFAULT_TEMPLATE_BASE_URL
from ecs_shibboleth.common.stacks import ShibStack
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    add_resource,
    init_template,
    set_parameters_interface,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_params import (
    CLUSTER_NAME_OUTPUT_T,
    SOURCE_SECURITY_GROUP_T,
)
from ecs_shibboleth.ecs_cluster.ecs_cluster_stack import ClusterStack
from ecs_shibboleth.load_balancer.load_balancer_params import (
    CERTIFICATE_ARN,
    CREATE_HTTPS_LISTENER_T,
    DNS_NAME_OUTPUT_T,
    HOSTED_ZONE_OUTPUT_T,
    SECURITY_GROUP_OUTPUT_T,
)
from ecs_shibboleth.load_balancer.load_balancer_params import (
    TARGET_GROUP_T as LB_TARGET_GROUP_T,
)
from ecs_shibboleth.load_balancer.load_balancer_stack import (
    LB_STACK_T,
    LoadBalancerStack,
)
from ecs_shibboleth.pipeline import pipeline_params
from ecs_shibboleth.pipeline.pipeline_params import (
    CODECOMMIT_REPO_NAME,
    CODECOMMIT_REPO_NAME_T,
    FQDN,
    FQDN_T,
    PARENT_DOMAIN,
    PIPELINE_URL_T,
)
from ecs_shibboleth.pipeline.pipeline_stack import PIPELINE_STACK_T, PipelineStack
from ecs_shibboleth.secrets import secrets_params
from ecs_shibboleth.secrets.secrets_params import (
    LAMBDA_BUCKET_T,
    LAMBDA_FOLDER_T,
    LDAP_PARAMETERS,
    SEALER_KEY_VERSION_COUNT,
)
from ecs_shibboleth.secrets.secrets_stack import SecretsStack
from ecs_shibboleth.service import service_params
from ecs_shibboleth.service.service_stack import ServiceStack
from ecs_shibboleth.vpc.vpc_maths import validate_network_layout
from ecs_shibboleth.vpc.vpc_params import (
    PRIVATE_SUBNETS_CIDRS,
    PRIVATE_SUBNETS_T,
    PUBLIC_SUBNETS_CIDRS,
    SUBNETS_T,
    VPC_CIDR,
    VPC_ID_T,
)
from ecs_shibboleth.vpc.vpc_stack import VpcStack

ROOT_STACK_T = "ShibbolethIdP"
ROOT_TEMPLATE_FILE = "shibboleth-idp.yaml"
ROOT_DESCRIPTION = (
    "Shibboleth Identity Provider on Amazon ECS, with its VPC, load balancer, secrets "
    "and continuous deployment pipeline"
)

STACK_SETTINGS = "CloudFormation Stack Configuration"

TEMPLATE_BUCKET_T = "TemplateBucket"
TEMPLATE_BUCKET = Parameter(
    TEMPLATE_BUCKET_T,
    group_label=STACK_SETTINGS,
    label="Template Bucket",
    Type="String",
    Default="aws-refarch-shibboleth-us-east-1",
    Description="The S3 bucket from which to fetch the templates used by this stack. "
    "We recommend that you store your CloudFormation templates in your own S3 bucket "
    "instead of using the one provided with this reference architecture.",
)

TEMPLATE_FOLDER_T = "TemplateFolder"
TEMPLATE_FOLDER = Parameter(
    TEMPLATE_FOLDER_T,
    group_label=STACK_SETTINGS,
    label="Template Folder",
    Type="String",
    Default="",
    AllowedPattern="(.*/)?",
    ConstraintDescription="Must be empty or end with a '/'",
    Description="The optional path to a folder in the TemplateBucket that contains the "
    "CloudFormation templates. If not left blank, it must end with a '/'.",
)

ROOT_PARAMETERS = (
    [
        LAUNCH_TYPE,
        TEMPLATE_BUCKET,
        TEMPLATE_FOLDER,
        CODECOMMIT_REPO_NAME,
        SEALER_KEY_VERSION_COUNT,
        PARENT_DOMAIN,
        FQDN,
        CERTIFICATE_ARN,
        VPC_CIDR,
    ]
    + PUBLIC_SUBNETS_CIDRS
    + PRIVATE_SUBNETS_CIDRS
    + LDAP_PARAMETERS
)

PARAMETER_GROUPS_ORDER = [
    "IdP Domain Information",
    "ECS Cluster Configuration",
    STACK_SETTINGS,
    "CodeCommit Configuration",
    "Elastic Load Balancer Configuration",
    "Shibboleth Configuration",
    "VPC Settings",
    "LDAP Settings",
]

CONTAINER_IMAGE_URI = Sub(
    f"${{{AWS_ACCOUNT_ID}}}.dkr.ecr.${{{AWS_REGION}}}.amazonaws.com/"
    f"${{{CODECOMMIT_REPO_NAME_T}}}"
)


def add_nested_stacks(template, template_base_url: str) -> dict:
    """
    Creates the nested stacks and wires their parameters to the root parameters and to each other outputs.

    :param troposphere.Template template: the root template
    :param str template_base_url: URL prefix of the nested templates
    :return: the nested stacks, by title
    :rtype: dict
    """
    vpc = VpcStack(
        template_base_url,
        stack_parameters={
            STACK_NAME_T: Ref(AWS_STACK_NAME),
            VPC_CIDR.title: Ref(VPC_CIDR),
            **{
                cidr.title: Ref(cidr)
                for cidr in PUBLIC_SUBNETS_CIDRS + PRIVATE_SUBNETS_CIDRS
            },
        },
    )
    load_balancer = LoadBalancerStack(
        template_base_url,
        stack_parameters={
            LAUNCH_TYPE.title: Ref(LAUNCH_TYPE),
            SUBNETS_T: vpc.output(SUBNETS_T),
            VPC_ID_T: vpc.output(VPC_ID_T),
            CREATE_HTTPS_LISTENER_T: True,
            CERTIFICATE_ARN.title: Ref(CERTIFICATE_ARN),
        },
    )
    cluster = ClusterStack(
        template_base_url,
        stack_parameters={
            STACK_NAME_T: Ref(AWS_STACK_NAME),
            LAUNCH_TYPE.title: Ref(LAUNCH_TYPE),
            SOURCE_SECURITY_GROUP_T: load_balancer.output(SECURITY_GROUP_OUTPUT_T),
            SUBNETS_T: vpc.output(PRIVATE_SUBNETS_T),
            VPC_ID_T: vpc.output(VPC_ID_T),
        },
    )
    secrets = SecretsStack(
        template_base_url,
        stack_parameters={
            STACK_NAME_T: Ref(AWS_STACK_NAME),
            LAMBDA_BUCKET_T: Ref(TEMPLATE_BUCKET),
            LAMBDA_FOLDER_T: Ref(TEMPLATE_FOLDER),
            SEALER_KEY_VERSION_COUNT.title: Ref(SEALER_KEY_VERSION_COUNT),
            **{parameter.title: Ref(parameter) for parameter in LDAP_PARAMETERS},
        },
    )
    service = ServiceStack(
        template_base_url,
        stack_parameters={
            STACK_NAME_T: Ref(AWS_STACK_NAME),
            service_params.CLUSTER_T: cluster.output(CLUSTER_NAME_OUTPUT_T),
            service_params.DESIRED_COUNT_T: 0,
            LAUNCH_TYPE.title: Ref(LAUNCH_TYPE),
            service_params.TARGET_GROUP_T: load_balancer.output(LB_TARGET_GROUP_T),
            SOURCE_SECURITY_GROUP_T: load_balancer.output(SECURITY_GROUP_OUTPUT_T),
            SUBNETS_T: vpc.output(PRIVATE_SUBNETS_T),
            service_params.CONTAINER_IMAGE_URI_T: CONTAINER_IMAGE_URI,
            service_params.SEALER_KEY_ARN_T: secrets.output(
                secrets_params.SEALER_KEY_ARN_T
            ),
        },
    )
    pipeline = PipelineStack(
        template_base_url,
        stack_parameters={
            STACK_NAME_T: Ref(AWS_STACK_NAME),
            service_params.CLUSTER_T: cluster.output(CLUSTER_NAME_OUTPUT_T),
            pipeline_params.SERVICE_T: service.output(service_params.SERVICE_OUTPUT_T),
            CODECOMMIT_REPO_NAME_T: Ref(CODECOMMIT_REPO_NAME),
            PARENT_DOMAIN.title: Ref(PARENT_DOMAIN),
            FQDN_T: Ref(FQDN),
            pipeline_params.SIGNING_ARN_T: secrets.output(secrets_params.SIGNING_ARN_T),
            pipeline_params.BACKCHANNEL_ARN_T: secrets.output(
                secrets_params.BACKCHANNEL_ARN_T
            ),
            pipeline_params.ENCRYPTION_ARN_T: secrets.output(
                secrets_params.ENCRYPTION_ARN_T
            ),
            pipeline_params.LDAP_SETTINGS_ARN_T: secrets.output(
                secrets_params.LDAP_SETTINGS_ARN_T
            ),
            pipeline_params.SEALER_KEY_ARN_T: secrets.output(
                secrets_params.SEALER_KEY_ARN_T
            ),
            pipeline_params.REPO_SOURCE_BUCKET_T: Ref(TEMPLATE_BUCKET),
            pipeline_params.REPO_SOURCE_FOLDER_T: Ref(TEMPLATE_FOLDER),
        },
    )
    stacks = {}
    for stack in [secrets, cluster, pipeline, load_balancer, vpc, service]:
        add_resource(template, stack)
        stacks[stack.title] = stack
    return stacks


def add_root_outputs(template, stacks: dict):
    load_balancer = stacks[LB_STACK_T]
    pipeline = stacks[PIPELINE_STACK_T]
    add_outputs(
        template,
        [
            Output(
                "LoadBalancerCanonicalHostedZoneID",
                Description="The load balancer identifier",
                Value=load_balancer.output(HOSTED_ZONE_OUTPUT_T).get_att,
            ),
            Output(
                "LoadBalancerDNSName",
                Description="Value to set your fully qualified domain names CNAME entry to "
                "in you DNS provider",
                Value=load_balancer.output(DNS_NAME_OUTPUT_T).get_att,
            ),
            Output(
                "ServiceUrl",
                Description="The URL of the IdP.",
                Value=Sub(f"https://${{{FQDN_T}}}/idp/"),
            ),
            Output(
                PIPELINE_URL_T,
                Description="The continuous deployment pipeline in the AWS Management Console.",
                Value=pipeline.output(PIPELINE_URL_T).get_att,
            ),
        ],
    )


def generate_root_stack(settings: ShibbolethSettings = None) -> ShibStack:
    """
    Function to generate the root stack and its nested stacks.

    :param ShibbolethSettings settings: execution settings. The template base URL and the parameter
        values provided by the user are taken from it when set.
    :return: the root stack
    :rtype: ShibStack
    """
    template_base_url = (
        settings.template_base_url if settings else DEFAULT_TEMPLATE_BASE_URL
    )
    template = init_template(ROOT_DESCRIPTION)
    add_parameters(template, ROOT_PARAMETERS)
    set_parameters_interface(template, PARAMETER_GROUPS_ORDER)
    stacks = add_nested_stacks(template, template_base_url)
    add_root_outputs(template, stacks)
    root_stack = ShibStack(
        ROOT_STACK_T,
        stack_template=template,
        stack_parameters=dict(settings.parameters) if settings else None,
        file_name=ROOT_TEMPLATE_FILE,
    )
    root_stack.validators.append(validate_network_layout)
    root_stack.mark_nested_stacks()
    return root_stack
