#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the CodePipeline moving the image pushed to ECR to the ECS Service:

* Source: ECR image push
* Build: CodeBuild generates imagedefinitions.json
* Deploy: ECS rolling update of the service
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.codebuild import Project
    from troposphere.ecs import Cluster, Service
    from ecs_pipeline.ecr.ecr_repository import EcrRepository

from troposphere import GetAtt, Output, Ref, Sub
from troposphere.codepipeline import ArtifactStore, Pipeline
from troposphere.iam import Policy, Role
from troposphere.s3 import (
    Bucket,
    BucketEncryption,
    PublicAccessBlockConfiguration,
    ServerSideEncryptionByDefault,
    ServerSideEncryptionRule,
)

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.common.troposphere_tools import add_outputs, add_resource
from ecs_pipeline.iam import service_role_trust_policy
from ecs_pipeline.pipeline.image_definitions import IMAGE_DEFINITIONS_FILE
from ecs_pipeline.pipeline.pipeline_model import (
    Artifact,
    PipelineDefinition,
    PipelineStage,
    StageAction,
)
from ecs_pipeline.pipeline.pipeline_params import (
    ARTIFACTS_BUCKET_T,
    BUILD_ACTION,
    BUILD_ARTIFACT,
    BUILD_STAGE,
    DEPLOY_ACTION,
    DEPLOY_STAGE,
    PIPELINE_NAME_OUTPUT_T,
    PIPELINE_ROLE_T,
    PIPELINE_T,
    SOURCE_ACTION,
    SOURCE_ARTIFACT,
    SOURCE_STAGE,
)


def add_artifacts_bucket(template: Template) -> Bucket:
    """
    Adds the private, encrypted, bucket for the pipeline artifacts.

    :param troposphere.Template template:
    :rtype: troposphere.s3.Bucket
    """
    return add_resource(
        template,
        Bucket(
            ARTIFACTS_BUCKET_T,
            DeletionPolicy="Retain",
            UpdateReplacePolicy="Retain",
            BucketEncryption=BucketEncryption(
                ServerSideEncryptionConfiguration=[
                    ServerSideEncryptionRule(
                        ServerSideEncryptionByDefault=ServerSideEncryptionByDefault(
                            SSEAlgorithm="AES256"
                        )
                    )
                ]
            ),
            PublicAccessBlockConfiguration=PublicAccessBlockConfiguration(
                BlockPublicAcls=True,
                BlockPublicPolicy=True,
                IgnorePublicAcls=True,
                RestrictPublicBuckets=True,
            ),
        ),
    )


def add_pipeline_role(
    template: Template,
    artifacts_bucket: Bucket,
    build_project: Project,
    repository: EcrRepository,
) -> Role:
    """
    Adds the IAM role CodePipeline uses to run the actions of the three stages

    :param troposphere.Template template:
    :param troposphere.s3.Bucket artifacts_bucket:
    :param troposphere.codebuild.Project build_project:
    :param EcrRepository repository:
    :rtype: troposphere.iam.Role
    """
    return add_resource(
        template,
        Role(
            PIPELINE_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("codepipeline"),
            Policies=[
                Policy(
                    PolicyName="PipelineAccess",
                    PolicyDocument={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Sid": "ArtifactsAccess",
                                "Effect": "Allow",
                                "Action": [
                                    "s3:GetObject",
                                    "s3:GetObjectVersion",
                                    "s3:GetBucketVersioning",
                                    "s3:PutObject",
                                    "s3:PutObjectAcl",
                                ],
                                "Resource": [
                                    GetAtt(artifacts_bucket, "Arn"),
                                    Sub(f"${{{artifacts_bucket.title}.Arn}}/*"),
                                ],
                            },
                            {
                                "Sid": "EcrSource",
                                "Effect": "Allow",
                                "Action": ["ecr:DescribeImages"],
                                "Resource": [repository.arn],
                            },
                            {
                                "Sid": "CodeBuildBuild",
                                "Effect": "Allow",
                                "Action": [
                                    "codebuild:BatchGetBuilds",
                                    "codebuild:StartBuild",
                                    "codebuild:StopBuild",
                                ],
                                "Resource": [GetAtt(build_project, "Arn")],
                            },
                            {
                                "Sid": "EcsDeploy",
                                "Effect": "Allow",
                                "Action": [
                                    "ecs:DescribeServices",
                                    "ecs:DescribeTaskDefinition",
                                    "ecs:DescribeTasks",
                                    "ecs:ListTasks",
                                    "ecs:RegisterTaskDefinition",
                                    "ecs:TagResource",
                                    "ecs:UpdateService",
                                ],
                                "Resource": ["*"],
                            },
                            {
                                "Sid": "PassRolesToTasks",
                                "Effect": "Allow",
                                "Action": ["iam:PassRole"],
                                "Resource": ["*"],
                                "Condition": {
                                    "StringEqualsIfExists": {
                                        "iam:PassedToService": [
                                            "ecs-tasks.amazonaws.com"
                                        ]
                                    }
                                },
                            },
                        ],
                    },
                )
            ],
        ),
    )


def define_pipeline(
    pipeline_name: str,
    repository: EcrRepository,
    image_tag: str,
    build_project: Project,
    cluster: Cluster,
    service: Service,
) -> PipelineDefinition:
    """
    Defines the Source, Build and Deploy stages, wired together by their artifacts.

    :param str pipeline_name:
    :param EcrRepository repository: the source repository
    :param str image_tag: the image tag which triggers the pipeline
    :param troposphere.codebuild.Project build_project:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.Service service:
    :rtype: PipelineDefinition
    """
    source_output = Artifact(SOURCE_ARTIFACT)
    build_output = Artifact(BUILD_ARTIFACT)
    definition = PipelineDefinition(
        pipeline_name,
        [
            PipelineStage(
                SOURCE_STAGE,
                [
                    StageAction(
                        SOURCE_ACTION,
                        category="Source",
                        provider="ECR",
                        configuration={
                            "RepositoryName": repository.repository_name,
                            "ImageTag": image_tag,
                        },
                        outputs=[source_output],
                    )
                ],
            ),
            PipelineStage(
                BUILD_STAGE,
                [
                    StageAction(
                        BUILD_ACTION,
                        category="Build",
                        provider="CodeBuild",
                        configuration={"ProjectName": Ref(build_project)},
                        inputs=[source_output],
                        outputs=[build_output],
                    )
                ],
            ),
            PipelineStage(
                DEPLOY_STAGE,
                [
                    StageAction(
                        DEPLOY_ACTION,
                        category="Deploy",
                        provider="ECS",
                        configuration={
                            "ClusterName": Ref(cluster),
                            "ServiceName": GetAtt(service, "Name"),
                            "FileName": IMAGE_DEFINITIONS_FILE,
                        },
                        inputs=[build_output],
                    )
                ],
            ),
        ],
    )
    definition.validate()
    return definition


def add_pipeline(
    template: Template,
    definition: PipelineDefinition,
    role: Role,
    artifacts_bucket: Bucket,
) -> Pipeline:
    """
    Adds the CodePipeline from its validated definition

    :param troposphere.Template template:
    :param PipelineDefinition definition:
    :param troposphere.iam.Role role:
    :param troposphere.s3.Bucket artifacts_bucket:
    :rtype: troposphere.codepipeline.Pipeline
    """
    LOG.info(f"Declaring pipeline {definition}")
    pipeline = add_resource(
        template,
        Pipeline(
            PIPELINE_T,
            Name=definition.name,
            RoleArn=GetAtt(role, "Arn"),
            ArtifactStore=ArtifactStore(Type="S3", Location=Ref(artifacts_bucket)),
            Stages=definition.to_stages(),
            RestartExecutionOnUpdate=False,
        ),
    )
    add_outputs(
        template,
        [
            Output(
                PIPELINE_NAME_OUTPUT_T,
                Description="Name of the ECR to ECS pipeline",
                Value=Ref(pipeline),
            )
        ],
    )
    return pipeline
