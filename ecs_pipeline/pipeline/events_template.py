#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to add the EventBridge rule that starts the pipeline when the image tag is pushed to ECR.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.codepipeline import Pipeline
    from ecs_pipeline.ecr.ecr_repository import EcrRepository

from troposphere import GetAtt, Sub
from troposphere.events import Rule, Target
from troposphere.iam import Policy, Role

from ecs_pipeline.common.troposphere_tools import add_resource
from ecs_pipeline.iam import service_role_trust_policy
from ecs_pipeline.pipeline.pipeline_params import TRIGGER_ROLE_T, TRIGGER_RULE_T


def pipeline_arn(pipeline: Pipeline) -> Sub:
    return Sub(
        f"arn:${{AWS::Partition}}:codepipeline:${{AWS::Region}}:${{AWS::AccountId}}:${{{pipeline.title}}}"
    )


def ecr_push_event_pattern(repository: EcrRepository, image_tag: str) -> dict:
    """
    Event pattern matching a successful push of the image tag into the repository

    :param EcrRepository repository:
    :param str image_tag:
    :rtype: dict
    """
    return {
        "source": ["aws.ecr"],
        "detail-type": ["ECR Image Action"],
        "detail": {
            "action-type": ["PUSH"],
            "result": ["SUCCESS"],
            "repository-name": [repository.repository_name],
            "image-tag": [image_tag],
        },
    }


def add_pipeline_trigger(
    template: Template, pipeline: Pipeline, repository: EcrRepository, image_tag: str
) -> Rule:
    """
    Adds the rule, and the role it uses, to start the pipeline execution on image push.

    :param troposphere.Template template:
    :param troposphere.codepipeline.Pipeline pipeline:
    :param EcrRepository repository:
    :param str image_tag:
    :rtype: troposphere.events.Rule
    """
    role = add_resource(
        template,
        Role(
            TRIGGER_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("events"),
            Policies=[
                Policy(
                    PolicyName="StartPipelineExecution",
                    PolicyDocument={
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Action": ["codepipeline:StartPipelineExecution"],
                                "Resource": [pipeline_arn(pipeline)],
                            }
                        ],
                    },
                )
            ],
        ),
    )
    return add_resource(
        template,
        Rule(
            TRIGGER_RULE_T,
            Description=f"Starts the pipeline on push of {repository.repository_name}:{image_tag}",
            EventPattern=ecr_push_event_pattern(repository, image_tag),
            State="ENABLED",
            Targets=[
                Target(
                    Id="CodePipeline",
                    Arn=pipeline_arn(pipeline),
                    RoleArn=GetAtt(role, "Arn"),
                )
            ],
        ),
    )
