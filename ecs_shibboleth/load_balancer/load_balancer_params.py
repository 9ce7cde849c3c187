# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters and titles of the LoadBalancer template
"""

from ecs_shibboleth.common.cfn_params import Parameter

ELB_SETTINGS = "Elastic Load Balancer Configuration"

LB_T = "LoadBalancer"
LB_SG_T = "LoadBalancerSecurityGroup"
TARGET_GROUP_T = "TargetGroup"
HTTPS_LISTENER_T = "HttpsListener"
HTTP_LISTENER_T = "HttpListener"

USE_HTTPS_LISTENER_CON_T = "UseHTTPSListener"

IDP_PORT = 443
HEALTH_CHECK_PATH = "/idp/status"

CREATE_HTTPS_LISTENER_T = "CreateHTTPSListener"
CREATE_HTTPS_LISTENER = Parameter(
    CREATE_HTTPS_LISTENER_T,
    group_label=ELB_SETTINGS,
    Type="String",
    Default="true",
    AllowedValues=["true", "false"],
    Description="Whether to create the HTTPS listener. Requires the certificate ARN.",
)

CERTIFICATE_ARN_T = "CertificateARN"
CERTIFICATE_ARN = Parameter(
    CERTIFICATE_ARN_T,
    group_label=ELB_SETTINGS,
    label="Certificate ARN for HTTPS Listener",
    Type="String",
    Default="",
    Description="Specify the ARN of the SSL certificate to be used on HTTPS listener",
)

SECURITY_GROUP_OUTPUT_T = "SecurityGroup"
DNS_NAME_OUTPUT_T = "DNSName"
HOSTED_ZONE_OUTPUT_T = "CanonicalHostedZoneID"
LB_URL_OUTPUT_T = "LoadBalancerUrl"
