#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles and names for the pipeline resources, stages, actions and artifacts.
This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.
"""

PIPELINE_T = "EcrToEcsPipeline"
PIPELINE_ROLE_T = "EcrToEcsPipelineRole"
ARTIFACTS_BUCKET_T = "PipelineArtifactsBucket"
BUILD_PROJECT_T = "ImageDefinitionsBuildProject"
BUILD_ROLE_T = "ImageDefinitionsBuildProjectRole"
TRIGGER_RULE_T = "EcrImagePushTrigger"
TRIGGER_ROLE_T = "EcrImagePushTriggerRole"

PIPELINE_NAME_OUTPUT_T = "PipelineName"

SOURCE_STAGE = "Source"
BUILD_STAGE = "Build"
DEPLOY_STAGE = "Deploy"
STAGE_ORDER = (SOURCE_STAGE, BUILD_STAGE, DEPLOY_STAGE)

SOURCE_ACTION = "ECR_Source"
BUILD_ACTION = "Generate_Image_Definitions"
DEPLOY_ACTION = "ECS_Deploy"

SOURCE_ARTIFACT = "SourceArtifact"
BUILD_ARTIFACT = "BuildArtifact"

BUILD_IMAGE = "aws/codebuild/standard:5.0"
BUILD_COMPUTE_TYPE = "BUILD_GENERAL1_SMALL"
