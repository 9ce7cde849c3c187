# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the DeploymentPipeline template.

The CodeCommit repository is seeded with the IdP source. Each commit to the branch builds the IdP image,
pushes it to ECR and deploys it to the ECS service.
"""

from troposphere import AWS_ACCOUNT_ID, AWS_REGION, GetAtt, Output, Ref, Sub
from troposphere.codebuild import Artifacts
from troposphere.codebuild import Environment as BuildEnvironment
from troposphere.codebuild import EnvironmentVariable, Project
from troposphere.codebuild import Source as BuildSource
from troposphere.codecommit import Code as RepositoryCode
from troposphere.codecommit import Repository as CodeRepository
from troposphere.codecommit import S3 as RepositorySeed
from troposphere.codepipeline import (
    Actions,
    ActionTypeId,
    ArtifactStore,
    InputArtifacts,
    OutputArtifacts,
    Pipeline,
    Stages,
)
from troposphere.ecr import Repository as ImageRepository
from troposphere.iam import Policy, Role
from troposphere.s3 import Bucket

from ecs_shibboleth.common.cfn_params import STACK_NAME
from ecs_shibboleth.common.troposphere_tools import (
    add_outputs,
    add_parameters,
    init_template,
)
from ecs_shibboleth.iam import service_role_trust_policy
from ecs_shibboleth.pipeline.pipeline_params import (
    ARTIFACT_BUCKET_T,
    BRANCH_NAME,
    CODE_REPOSITORY_T,
    CODEBUILD_IMAGE,
    CODEBUILD_PROJECT_T,
    CODEBUILD_ROLE_T,
    CODECOMMIT_REPO_NAME,
    CODEPIPELINE_ROLE_T,
    FQDN,
    IMAGE_DEFINITIONS_FILE,
    IMAGE_REPOSITORY_T,
    PARENT_DOMAIN,
    PIPELINE_T,
    PIPELINE_URL_T,
    REPO_SOURCE_BUCKET,
    REPO_SOURCE_FOLDER,
    REPO_SOURCE_FOLDER_T,
    REPOSITORY_CLONE_URL_T,
    REPOSITORY_SEED_FILE,
    SECRETS_ARNS,
    SERVICE,
)
from ecs_shibboleth.service.service_params import CLUSTER, CONTAINER_NAME

BUILD_SPEC = f"""version: 0.2
phases:
  pre_build:
    commands:
      - aws ecr get-login-password --region $AWS_DEFAULT_REGION | docker login --username AWS --password-stdin $REPOSITORY_URI
      - IMAGE_TAG=$(echo $CODEBUILD_RESOLVED_SOURCE_VERSION | cut -c 1-7)
  build:
    commands:
      - docker build --build-arg PARENT_DOMAIN --build-arg FULLY_QUALIFIED_DOMAIN_NAME -t $REPOSITORY_URI:latest .
      - docker tag $REPOSITORY_URI:latest $REPOSITORY_URI:$IMAGE_TAG
  post_build:
    commands:
      - docker push $REPOSITORY_URI:latest
      - docker push $REPOSITORY_URI:$IMAGE_TAG
      - printf '[{{"name":"%s","imageUri":"%s"}}]' $CONTAINER_NAME $REPOSITORY_URI:$IMAGE_TAG > {IMAGE_DEFINITIONS_FILE}
artifacts:
  files: {IMAGE_DEFINITIONS_FILE}
"""


def add_repositories(template):
    """
    Adds the ECR repository, named after the CodeCommit repository as the Service image URI expects,
    and the CodeCommit repository seeded from the IdP source archive.

    :return: tuple with the image repository and the code repository
    """
    image_repository = ImageRepository(
        IMAGE_REPOSITORY_T,
        template=template,
        RepositoryName=Ref(CODECOMMIT_REPO_NAME),
    )
    code_repository = CodeRepository(
        CODE_REPOSITORY_T,
        template=template,
        RepositoryName=Ref(CODECOMMIT_REPO_NAME),
        RepositoryDescription="Shibboleth IdP configuration and docker image source",
        Code=RepositoryCode(
            BranchName=Ref(BRANCH_NAME),
            S3=RepositorySeed(
                Bucket=Ref(REPO_SOURCE_BUCKET),
                Key=Sub(f"${{{REPO_SOURCE_FOLDER_T}}}{REPOSITORY_SEED_FILE}"),
            ),
        ),
    )
    return image_repository, code_repository


def add_roles(template, artifact_bucket, image_repository, code_repository):
    """
    Adds the CodeBuild and CodePipeline service roles

    :return: tuple with the CodeBuild role and the CodePipeline role
    """
    artifacts_statement = {
        "Effect": "Allow",
        "Action": ["s3:GetObject", "s3:PutObject", "s3:GetObjectVersion"],
        "Resource": Sub(f"arn:${{AWS::Partition}}:s3:::${{{artifact_bucket.title}}}/*"),
    }
    build_role = Role(
        CODEBUILD_ROLE_T,
        template=template,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("codebuild"),
        Policies=[
            Policy(
                PolicyName="CodeBuildAccess",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": [
                                "logs:CreateLogGroup",
                                "logs:CreateLogStream",
                                "logs:PutLogEvents",
                            ],
                            "Resource": "*",
                        },
                        {
                            "Effect": "Allow",
                            "Action": ["ecr:GetAuthorizationToken"],
                            "Resource": "*",
                        },
                        {
                            "Effect": "Allow",
                            "Action": [
                                "ecr:BatchCheckLayerAvailability",
                                "ecr:CompleteLayerUpload",
                                "ecr:InitiateLayerUpload",
                                "ecr:PutImage",
                                "ecr:UploadLayerPart",
                                "ecr:BatchGetImage",
                                "ecr:GetDownloadUrlForLayer",
                            ],
                            "Resource": GetAtt(image_repository, "Arn"),
                        },
                        {
                            "Effect": "Allow",
                            "Action": ["secretsmanager:GetSecretValue"],
                            "Resource": [Ref(arn) for arn in SECRETS_ARNS.values()],
                        },
                        artifacts_statement,
                    ],
                },
            )
        ],
    )
    pipeline_role = Role(
        CODEPIPELINE_ROLE_T,
        template=template,
        Path="/",
        AssumeRolePolicyDocument=service_role_trust_policy("codepipeline"),
        Policies=[
            Policy(
                PolicyName="CodePipelineAccess",
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        artifacts_statement,
                        {
                            "Effect": "Allow",
                            "Action": [
                                "codecommit:GetBranch",
                                "codecommit:GetCommit",
                                "codecommit:UploadArchive",
                                "codecommit:GetUploadArchiveStatus",
                                "codecommit:CancelUploadArchive",
                            ],
                            "Resource": GetAtt(code_repository, "Arn"),
                        },
                        {
                            "Effect": "Allow",
                            "Action": [
                                "codebuild:StartBuild",
                                "codebuild:BatchGetBuilds",
                            ],
                            "Resource": "*",
                        },
                        {
                            "Effect": "Allow",
                            "Action": [
                                "ecs:DescribeServices",
                                "ecs:DescribeTaskDefinition",
                                "ecs:DescribeTasks",
                                "ecs:ListTasks",
                                "ecs:RegisterTaskDefinition",
                                "ecs:UpdateService",
                                "iam:PassRole",
                            ],
                            "Resource": "*",
                        },
                    ],
                },
            )
        ],
    )
    return build_role, pipeline_role


def add_build_project(template, build_role, image_repository):
    """
    Adds the CodeBuild project building and pushing the IdP image
    """
    variables = [
        EnvironmentVariable(
            Name="REPOSITORY_URI",
            Value=Sub(
                f"${{{AWS_ACCOUNT_ID}}}.dkr.ecr.${{{AWS_REGION}}}.amazonaws.com/"
                f"${{{image_repository.title}}}"
            ),
        ),
        EnvironmentVariable(Name="CONTAINER_NAME", Value=CONTAINER_NAME),
        EnvironmentVariable(Name="PARENT_DOMAIN", Value=Ref(PARENT_DOMAIN)),
        EnvironmentVariable(Name="FULLY_QUALIFIED_DOMAIN_NAME", Value=Ref(FQDN)),
    ]
    variables += [
        EnvironmentVariable(Name=title, Value=Ref(parameter))
        for title, parameter in SECRETS_ARNS.items()
    ]
    return Project(
        CODEBUILD_PROJECT_T,
        template=template,
        ServiceRole=Ref(build_role),
        Artifacts=Artifacts(Type="CODEPIPELINE"),
        Source=BuildSource(Type="CODEPIPELINE", BuildSpec=BUILD_SPEC),
        Environment=BuildEnvironment(
            ComputeType="BUILD_GENERAL1_MEDIUM",
            Image=CODEBUILD_IMAGE,
            Type="LINUX_CONTAINER",
            PrivilegedMode=True,
            EnvironmentVariables=variables,
        ),
    )


def add_pipeline(template, pipeline_role, artifact_bucket, code_repository, project):
    """
    Adds the three stages pipeline: source from CodeCommit, build with CodeBuild, deploy to ECS.
    """
    return Pipeline(
        PIPELINE_T,
        template=template,
        RoleArn=GetAtt(pipeline_role, "Arn"),
        ArtifactStore=ArtifactStore(Type="S3", Location=Ref(artifact_bucket)),
        Stages=[
            Stages(
                Name="Source",
                Actions=[
                    Actions(
                        Name="Source",
                        ActionTypeId=ActionTypeId(
                            Category="Source",
                            Owner="AWS",
                            Provider="CodeCommit",
                            Version="1",
                        ),
                        Configuration={
                            "RepositoryName": GetAtt(code_repository, "Name"),
                            "BranchName": Ref(BRANCH_NAME),
                        },
                        OutputArtifacts=[OutputArtifacts(Name="SourceOutput")],
                        RunOrder=1,
                    )
                ],
            ),
            Stages(
                Name="Build",
                Actions=[
                    Actions(
                        Name="Build",
                        ActionTypeId=ActionTypeId(
                            Category="Build",
                            Owner="AWS",
                            Provider="CodeBuild",
                            Version="1",
                        ),
                        Configuration={"ProjectName": Ref(project)},
                        InputArtifacts=[InputArtifacts(Name="SourceOutput")],
                        OutputArtifacts=[OutputArtifacts(Name="BuildOutput")],
                        RunOrder=1,
                    )
                ],
            ),
            Stages(
                Name="Deploy",
                Actions=[
                    Actions(
                        Name="Deploy",
                        ActionTypeId=ActionTypeId(
                            Category="Deploy",
                            Owner="AWS",
                            Provider="ECS",
                            Version="1",
                        ),
                        Configuration={
                            "ClusterName": Ref(CLUSTER),
                            "ServiceName": Ref(SERVICE),
                            "FileName": IMAGE_DEFINITIONS_FILE,
                        },
                        InputArtifacts=[InputArtifacts(Name="BuildOutput")],
                        RunOrder=1,
                    )
                ],
            ),
        ],
    )


def render_pipeline_template():
    """
    Function to create the DeploymentPipeline template.

    :rtype: troposphere.Template
    """
    template = init_template("Shibboleth IdP - Continuous deployment pipeline")
    add_parameters(
        template,
        [
            STACK_NAME,
            CLUSTER,
            SERVICE,
            CODECOMMIT_REPO_NAME,
            PARENT_DOMAIN,
            FQDN,
        ]
        + list(SECRETS_ARNS.values())
        + [REPO_SOURCE_BUCKET, REPO_SOURCE_FOLDER, BRANCH_NAME],
    )
    image_repository, code_repository = add_repositories(template)
    artifact_bucket = Bucket(
        ARTIFACT_BUCKET_T, template=template, DeletionPolicy="Retain"
    )
    build_role, pipeline_role = add_roles(
        template, artifact_bucket, image_repository, code_repository
    )
    project = add_build_project(template, build_role, image_repository)
    pipeline = add_pipeline(
        template, pipeline_role, artifact_bucket, code_repository, project
    )
    add_outputs(
        template,
        [
            Output(
                PIPELINE_URL_T,
                Description="The continuous deployment pipeline in the AWS Management Console.",
                Value=Sub(
                    "https://console.aws.amazon.com/codepipeline/home?region="
                    f"${{{AWS_REGION}}}#/view/${{{pipeline.title}}}"
                ),
            ),
            Output(
                REPOSITORY_CLONE_URL_T,
                Value=GetAtt(code_repository, "CloneUrlHttp"),
            ),
            Output(IMAGE_REPOSITORY_T, Value=Ref(image_repository)),
        ],
    )
    return template
