# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the Secrets template.

The certificates and sealer key secrets are created empty. The initializer Lambda function, invoked through
the custom resource, generates their values. Dependents read the secrets ARNs from the custom resource so that
they wait for the initialization.
"""

from troposphere import GetAtt, Output, Ref, Sub
from troposphere.awslambda import Code, Function
from troposphere.cloudformation import CustomResource
from troposphere.iam import Policy, Role
from troposphere.secretsmanager import Secret

from ecs_shibboleth.common.cfn_params import STACK_NAME, STACK_NAME_T
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.iam import aws_managed_policy, service_role_trust_policy
from ecs_shibboleth.secrets.secrets_params import (
    BACKCHANNEL_ARN_T,
    BACKCHANNEL_SECRET_T,
    ENCRYPTION_ARN_T,
    ENCRYPTION_SECRET_T,
    INITIALIZER_CODE_KEY,
    INITIALIZER_FUNCTION_T,
    INITIALIZER_ROLE_T,
    INITIALIZER_T,
    LAMBDA_BUCKET,
    LAMBDA_FOLDER,
    LAMBDA_FOLDER_T,
    LDAP_BASE_DN_T,
    LDAP_PARAMETERS,
    LDAP_READ_ONLY_PASSWORD_T,
    LDAP_READ_ONLY_USER_T,
    LDAP_SETTINGS_ARN_T,
    LDAP_SETTINGS_SECRET_T,
    LDAP_URL_T,
    SEALER_KEY_ARN_T,
    SEALER_KEY_SECRET_T,
    SEALER_KEY_VERSION_COUNT,
    SIGNING_ARN_T,
    SIGNING_SECRET_T,
)

LDAP_SETTINGS_TEMPLATE = (
    "{"
    f'"url": "${{{LDAP_URL_T}}}", '
    f'"baseDN": "${{{LDAP_BASE_DN_T}}}", '
    f'"readOnlyUser": "${{{LDAP_READ_ONLY_USER_T}}}", '
    f'"readOnlyPassword": "${{{LDAP_READ_ONLY_PASSWORD_T}}}"'
    "}"
)

GENERATED_SECRETS = {
    SIGNING_SECRET_T: ("idp-signing", "Shibboleth IdP signing certificate and key"),
    BACKCHANNEL_SECRET_T: (
        "idp-backchannel",
        "Shibboleth IdP back-channel certificate and key",
    ),
    ENCRYPTION_SECRET_T: (
        "idp-encryption",
        "Shibboleth IdP encryption certificate and key",
    ),
    SEALER_KEY_SECRET_T: ("idp-sealer-key", "Shibboleth IdP data sealer keystore"),
}

SECRETS_OUTPUTS = {
    SIGNING_ARN_T: SIGNING_SECRET_T,
    BACKCHANNEL_ARN_T: BACKCHANNEL_SECRET_T,
    ENCRYPTION_ARN_T: ENCRYPTION_SECRET_T,
    LDAP_SETTINGS_ARN_T: LDAP_SETTINGS_SECRET_T,
    SEALER_KEY_ARN_T: SEALER_KEY_SECRET_T,
}


class ShibbolethSecrets(CustomResource):
    """
    Custom resource initializing the IdP secrets
    """

    resource_type = "Custom::ShibbolethSecrets"

    props = {
        "ServiceToken": (str, True),
        "SigningSecretArn": (str, True),
        "BackchannelSecretArn": (str, True),
        "EncryptionSecretArn": (str, True),
        "SealerKeySecretArn": (str, True),
        "LDAPSettingsSecretArn": (str, True),
        "SealerKeyVersionCount": (str, False),
    }


def add_secrets(template) -> dict:
    """
    Adds the IdP secrets

    :return: the secrets, by title
    :rtype: dict
    """
    secrets = {}
    for title, (suffix, description) in GENERATED_SECRETS.items():
        secrets[title] = Secret(
            title,
            template=template,
            Name=Sub(f"${{{STACK_NAME_T}}}/shibboleth/{suffix}"),
            Description=description,
        )
    secrets[LDAP_SETTINGS_SECRET_T] = Secret(
        LDAP_SETTINGS_SECRET_T,
        template=template,
        Name=Sub(f"${{{STACK_NAME_T}}}/shibboleth/ldap-settings"),
        Description="Shibboleth IdP LDAP connection settings",
        SecretString=Sub(LDAP_SETTINGS_TEMPLATE),
    )
    return secrets


def add_initializer(template, secrets):
    """
    Adds the initializer function, its IAM role scoped to the secrets, and the custom resource invoking it.

    :return: the custom resource
    :rtype: ShibbolethSecrets
    """
    role = Role(
        INITIALIZER_ROLE_T,
        template=template,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("lambda"),
        ManagedPolicyArns=[
            aws_managed_policy("service-role/AWSLambdaBasicExecutionRole")
        ],
        Policies=[
            Policy(
                PolicyName="InitializeSecrets",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": [
                                "secretsmanager:DescribeSecret",
                                "secretsmanager:GetSecretValue",
                                "secretsmanager:PutSecretValue",
                                "secretsmanager:UpdateSecretVersionStage",
                                "secretsmanager:ListSecretVersionIds",
                            ],
                            "Resource": [Ref(secret) for secret in secrets.values()],
                        }
                    ],
                },
            )
        ],
    )
    function = Function(
        INITIALIZER_FUNCTION_T,
        template=template,
        Description=Sub(f"Initializes the Shibboleth IdP secrets of ${{{STACK_NAME_T}}}"),
        Code=Code(
            S3Bucket=Ref(LAMBDA_BUCKET),
            S3Key=Sub(f"${{{LAMBDA_FOLDER_T}}}{INITIALIZER_CODE_KEY}"),
        ),
        Handler="index.handler",
        Runtime="python3.9",
        MemorySize=256,
        Timeout=300,
        Role=GetAtt(role, "Arn"),
    )
    return ShibbolethSecrets(
        INITIALIZER_T,
        template=template,
        ServiceToken=GetAtt(function, "Arn"),
        SigningSecretArn=Ref(secrets[SIGNING_SECRET_T]),
        BackchannelSecretArn=Ref(secrets[BACKCHANNEL_SECRET_T]),
        EncryptionSecretArn=Ref(secrets[ENCRYPTION_SECRET_T]),
        SealerKeySecretArn=Ref(secrets[SEALER_KEY_SECRET_T]),
        LDAPSettingsSecretArn=Ref(secrets[LDAP_SETTINGS_SECRET_T]),
        SealerKeyVersionCount=Ref(SEALER_KEY_VERSION_COUNT),
    )


def render_secrets_template():
    """
    Function to create the Secrets template.

    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - Secrets")
    add_parameters(
        template,
        [STACK_NAME, LAMBDA_BUCKET, LAMBDA_FOLDER, SEALER_KEY_VERSION_COUNT]
        + LDAP_PARAMETERS,
    )
    secrets = add_secrets(template)
    initializer = add_initializer(template, secrets)
    add_outputs(
        template,
        [
            Output(
                output_name,
                Description=f"ARN of the {secret_title} secret",
                Value=GetAtt(initializer, output_name),
            )
            for output_name, secret_title in SECRETS_OUTPUTS.items()
        ],
    )
    return template
