# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters and titles of the DeploymentPipeline template
"""

from ecs_shibboleth.common.cfn_params import Parameter

DOMAIN_SETTINGS = "IdP Domain Information"
CODECOMMIT_SETTINGS = "CodeCommit Configuration"

IMAGE_REPOSITORY_T = "ImageRepository"
CODE_REPOSITORY_T = "CodeRepository"
ARTIFACT_BUCKET_T = "ArtifactBucket"
CODEBUILD_ROLE_T = "CodeBuildServiceRole"
CODEPIPELINE_ROLE_T = "CodePipelineServiceRole"
CODEBUILD_PROJECT_T = "CodeBuildProject"
PIPELINE_T = "Pipeline"

PIPELINE_URL_T = "PipelineUrl"
REPOSITORY_CLONE_URL_T = "RepositoryCloneUrl"

REPOSITORY_SEED_FILE = "shibboleth-idp.zip"
IMAGE_DEFINITIONS_FILE = "images.json"
CODEBUILD_IMAGE = "aws/codebuild/standard:5.0"

SERVICE_T = "Service"
SERVICE = Parameter(SERVICE_T, Type="String", Description="The IdP ECS service")

CODECOMMIT_REPO_NAME_T = "CodeCommitRepoName"
CODECOMMIT_REPO_NAME = Parameter(
    CODECOMMIT_REPO_NAME_T,
    group_label=CODECOMMIT_SETTINGS,
    label="CodeCommit Repository Name",
    Type="String",
    Default="shibboleth",
    MaxLength=100,
    AllowedPattern=r"(^[A-Za-z0-9_\.-]+)",
    ConstraintDescription="Must conform with the permitted CodeCommit repository name pattern.",
    Description="Name of the CodeCommit repository to create. Please verify Pattern and maxlength",
)

PARENT_DOMAIN_T = "ParentDomain"
PARENT_DOMAIN = Parameter(
    PARENT_DOMAIN_T,
    group_label=DOMAIN_SETTINGS,
    label="Base Domain",
    Type="String",
    Description="The base domain for the IdP such as 'example.com'",
)

FQDN_T = "FullyQualifiedDomainName"
FQDN = Parameter(
    FQDN_T,
    group_label=DOMAIN_SETTINGS,
    label="Fully Qualified Domain Name",
    Type="String",
    Description="The fully qualified domain name for the IdP such as 'sso.example.com'",
)

SIGNING_ARN_T = "SecretsManagerSigningARN"
BACKCHANNEL_ARN_T = "SecretsManagerBackchannelARN"
ENCRYPTION_ARN_T = "SecretsManagerEncryptionARN"
LDAP_SETTINGS_ARN_T = "SecretsManagerLDAPSettingsARN"
SEALER_KEY_ARN_T = "SecretsManagerSealerKeyARN"

SECRETS_ARNS = {
    title: Parameter(title, Type="String", Description=f"{description} secret ARN")
    for title, description in [
        (SIGNING_ARN_T, "Signing certificate"),
        (BACKCHANNEL_ARN_T, "Back-channel certificate"),
        (ENCRYPTION_ARN_T, "Encryption certificate"),
        (LDAP_SETTINGS_ARN_T, "LDAP settings"),
        (SEALER_KEY_ARN_T, "Sealer key"),
    ]
}

REPO_SOURCE_BUCKET_T = "RepoSourceBucket"
REPO_SOURCE_BUCKET = Parameter(
    REPO_SOURCE_BUCKET_T,
    Type="String",
    Description="The S3 bucket containing the IdP source to seed the repository with",
)

REPO_SOURCE_FOLDER_T = "RepoSourceFolder"
REPO_SOURCE_FOLDER = Parameter(
    REPO_SOURCE_FOLDER_T,
    Type="String",
    Default="",
    Description="The folder of the IdP source in the bucket. If not blank, it must end with a '/'",
)

BRANCH_NAME_T = "BranchName"
BRANCH_NAME = Parameter(
    BRANCH_NAME_T,
    Type="String",
    Default="master",
    Description="The branch of the repository the pipeline deploys",
)
