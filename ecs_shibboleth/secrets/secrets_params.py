# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters and titles of the Secrets template
"""

from ecs_shibboleth.common.cfn_params import Parameter

SHIBBOLETH_SETTINGS = "Shibboleth Configuration"
LDAP_SETTINGS = "LDAP Settings"

SIGNING_SECRET_T = "SigningSecret"
BACKCHANNEL_SECRET_T = "BackchannelSecret"
ENCRYPTION_SECRET_T = "EncryptionSecret"
SEALER_KEY_SECRET_T = "SealerKeySecret"
LDAP_SETTINGS_SECRET_T = "LDAPSettingsSecret"
INITIALIZER_ROLE_T = "SecretsInitializerRole"
INITIALIZER_FUNCTION_T = "SecretsInitializerFunction"
INITIALIZER_T = "SecretsInitializer"

INITIALIZER_CODE_KEY = "lambda/secrets-initializer.zip"

SIGNING_ARN_T = "SigningArn"
BACKCHANNEL_ARN_T = "BackchannelArn"
ENCRYPTION_ARN_T = "EncryptionArn"
LDAP_SETTINGS_ARN_T = "LDAPSettingsArn"
SEALER_KEY_ARN_T = "SealerKeyArn"

LAMBDA_BUCKET_T = "LambdaBucket"
LAMBDA_BUCKET = Parameter(
    LAMBDA_BUCKET_T,
    Type="String",
    Description="The S3 bucket containing the secrets initializer Lambda code",
)

LAMBDA_FOLDER_T = "LambdaFolder"
LAMBDA_FOLDER = Parameter(
    LAMBDA_FOLDER_T,
    Type="String",
    Default="",
    Description="The folder of the Lambda code in the bucket. If not blank, it must end with a '/'",
)

SEALER_KEY_VERSION_COUNT_T = "SealerKeyVersionCount"
SEALER_KEY_VERSION_COUNT = Parameter(
    SEALER_KEY_VERSION_COUNT_T,
    group_label=SHIBBOLETH_SETTINGS,
    label="Sealer Key Version Count",
    Type="Number",
    Default=10,
    Description="The number of versions of the sealer key to support",
)

LDAP_URL_T = "LDAPUrl"
LDAP_URL = Parameter(
    LDAP_URL_T,
    group_label=LDAP_SETTINGS,
    label="LDAP server URL",
    Type="String",
    Default="ldaps://ad-ldap.example.com:636",
    Description="The URL of the LDAP server.",
)

LDAP_BASE_DN_T = "LDAPBaseDN"
LDAP_BASE_DN = Parameter(
    LDAP_BASE_DN_T,
    group_label=LDAP_SETTINGS,
    label="LDAP base DN",
    Type="String",
    Default="CN=Users,DC=example,DC=org",
    Description="The base DN of the LDAP server.",
)

LDAP_READ_ONLY_USER_T = "LDAPReadOnlyUser"
LDAP_READ_ONLY_USER = Parameter(
    LDAP_READ_ONLY_USER_T,
    group_label=LDAP_SETTINGS,
    label="LDAP user",
    Type="String",
    Default="readonlyuser@example.com",
    Description="The username of a read-only user for connecting to the LDAP server.",
)

LDAP_READ_ONLY_PASSWORD_T = "LDAPReadOnlyPassword"
LDAP_READ_ONLY_PASSWORD = Parameter(
    LDAP_READ_ONLY_PASSWORD_T,
    group_label=LDAP_SETTINGS,
    label="LDAP password",
    Type="String",
    NoEcho=True,
    Default="EnterYourPasswordHere",
    Description="The password of a read-only user for connecting to the LDAP server.",
)

LDAP_PARAMETERS = [
    LDAP_URL,
    LDAP_BASE_DN,
    LDAP_READ_ONLY_USER,
    LDAP_READ_ONLY_PASSWORD,
]
