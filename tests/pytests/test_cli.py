#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

from pytest import raises

from ecs_pipeline.cli import main_parser
from ecs_pipeline.common.settings import PipelineSettings


def test_render_arguments():
    args = main_parser().parse_args(
        [
            "render",
            "-n",
            "test",
            "--vpc-id",
            "vpc-0123456789abcdef0",
            "--ecr-repository-uri",
            "123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app",
            "--format",
            "yaml",
            "-d",
            "/tmp/ecs-pipeline",
        ]
    )
    kwargs = vars(args)
    assert kwargs[PipelineSettings.command_arg] == "render"
    assert kwargs[PipelineSettings.name_arg] == "test"
    assert kwargs[PipelineSettings.vpc_id_arg] == "vpc-0123456789abcdef0"
    assert kwargs[PipelineSettings.format_arg] == "yaml"
    assert kwargs[PipelineSettings.output_dir_arg] == "/tmp/ecs-pipeline"
    assert kwargs["DisableRollback"] is False


def test_status_arguments():
    args = main_parser().parse_args(
        ["status", "--pipeline-name", "MyEcrToEcsPipeline", "--region", "eu-west-1"]
    )
    kwargs = vars(args)
    assert kwargs[PipelineSettings.pipeline_name_arg] == "MyEcrToEcsPipeline"
    assert kwargs[PipelineSettings.region_arg] == "eu-west-1"


def test_invalid_arguments():
    parser = main_parser()
    with raises(SystemExit):
        parser.parse_args(["render"])
    with raises(SystemExit):
        parser.parse_args(["up", "-n", "test", "--format", "xml"])
    with raises(SystemExit):
        parser.parse_args(["destroy"])
