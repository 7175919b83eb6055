#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the CodeBuild project of the Build stage and its IAM role.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.s3 import Bucket

from troposphere import AWS_ACCOUNT_ID, AWS_REGION, GetAtt, Ref, Sub
from troposphere.codebuild import Artifacts, Environment, EnvironmentVariable
from troposphere.codebuild import Project, Source
from troposphere.iam import Policy, Role

from ecs_pipeline.common.troposphere_tools import add_resource
from ecs_pipeline.iam import service_role_trust_policy
from ecs_pipeline.pipeline.buildspec import buildspec_to_yaml, render_buildspec
from ecs_pipeline.pipeline.pipeline_params import (
    BUILD_COMPUTE_TYPE,
    BUILD_IMAGE,
    BUILD_PROJECT_T,
    BUILD_ROLE_T,
)

ECR_BUILD_ACTIONS = [
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
    "ecr:BatchCheckLayerAvailability",
    "ecr:PutImage",
    "ecr:GetAuthorizationToken",
]


def add_build_role(template: Template, artifacts_bucket: Bucket) -> Role:
    """
    Adds the IAM role of the CodeBuild project

    :param troposphere.Template template:
    :param troposphere.s3.Bucket artifacts_bucket: the pipeline artifacts bucket
    :rtype: troposphere.iam.Role
    """
    return add_resource(
        template,
        Role(
            BUILD_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("codebuild"),
            Policies=[
                Policy(
                    PolicyName="EcrAccess",
                    PolicyDocument={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": ECR_BUILD_ACTIONS,
                                "Resource": ["*"],
                            }
                        ],
                    },
                ),
                Policy(
                    PolicyName="LogsAccess",
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
                                "Resource": [
                                    Sub(
                                        "arn:${AWS::Partition}:logs:${AWS::Region}:${AWS::AccountId}:"
                                        "log-group:/aws/codebuild/*"
                                    )
                                ],
                            }
                        ],
                    },
                ),
                Policy(
                    PolicyName="ArtifactsAccess",
                    PolicyDocument={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": [
                                    "s3:GetObject",
                                    "s3:GetObjectVersion",
                                    "s3:PutObject",
                                    "s3:GetBucketAcl",
                                    "s3:GetBucketLocation",
                                ],
                                "Resource": [
                                    GetAtt(artifacts_bucket, "Arn"),
                                    Sub(f"${{{artifacts_bucket.title}.Arn}}/*"),
                                ],
                            }
                        ],
                    },
                ),
            ],
        ),
    )


def add_build_project(
    template: Template,
    containers: list,
    pipeline_config: dict,
    artifacts_bucket: Bucket,
) -> Project:
    """
    Adds the CodeBuild project generating imagedefinitions.json. Privileged mode is on for docker commands.

    :param troposphere.Template template:
    :param list[ecs_pipeline.ecs.ecs_container.ServiceContainer] containers:
    :param dict pipeline_config: the Pipeline section of the topology
    :param troposphere.s3.Bucket artifacts_bucket:
    :rtype: troposphere.codebuild.Project
    """
    role = add_build_role(template, artifacts_bucket)
    return add_resource(
        template,
        Project(
            BUILD_PROJECT_T,
            Description=Sub("Generates the image definitions for ${AWS::StackName}"),
            ServiceRole=GetAtt(role, "Arn"),
            Artifacts=Artifacts(Type="CODEPIPELINE"),
            Environment=Environment(
                ComputeType=pipeline_config.get("ComputeType", BUILD_COMPUTE_TYPE),
                Image=pipeline_config.get("BuildImage", BUILD_IMAGE),
                Type="LINUX_CONTAINER",
                PrivilegedMode=True,
                EnvironmentVariables=[
                    EnvironmentVariable(
                        Name="AWS_DEFAULT_REGION", Type="PLAINTEXT", Value=Ref(AWS_REGION)
                    ),
                    EnvironmentVariable(
                        Name="AWS_ACCOUNT_ID",
                        Type="PLAINTEXT",
                        Value=Ref(AWS_ACCOUNT_ID),
                    ),
                ],
            ),
            Source=Source(
                Type="CODEPIPELINE",
                BuildSpec=buildspec_to_yaml(render_buildspec(containers)),
            ),
        ),
    )
