#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

import json
from os import path

import boto3
import placebo
from pytest import fixture, raises
from troposphere import Template
from troposphere.ecs import Cluster

from ecs_pipeline.common.aws import define_change_type, stack_api_params
from ecs_pipeline.common.files import StackFile
from ecs_pipeline.common.settings import PipelineSettings
from ecs_pipeline.common.stacks import TopologyStack
from ecs_pipeline.utils.init_s3 import create_bucket

HERE = path.abspath(path.dirname(__file__))


def playback_session(data_dir: str):
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=f"{HERE}/{data_dir}")
    pill.playback()
    return session


@fixture()
def template():
    template = Template()
    template.add_resource(Cluster("EcsCluster"))
    return template


def get_settings(tmp_path, command, **kwargs):
    return PipelineSettings(
        session=boto3.session.Session(region_name="eu-west-1"),
        **{
            PipelineSettings.name_arg: "my-app",
            PipelineSettings.command_arg: command,
            PipelineSettings.output_dir_arg: str(tmp_path),
        },
        **kwargs,
    )


def test_define_change_type():
    assert (
        define_change_type(
            playback_session("stack_status/not_found").client("cloudformation"),
            "my-app",
        )
        == "CREATE"
    )
    assert (
        define_change_type(
            playback_session("stack_status/updatable").client("cloudformation"),
            "my-app",
        )
        == "UPDATE"
    )
    assert (
        define_change_type(
            playback_session("stack_status/rolling_back").client("cloudformation"),
            "my-app",
        )
        is None
    )


def test_render_cannot_deploy(tmp_path, template):
    settings = get_settings(tmp_path, PipelineSettings.render_arg)
    root_stack = TopologyStack("my-app", stack_template=template)
    root_stack.render(settings, validate=False)
    assert root_stack.TemplateURL == f"{tmp_path}/myapp.json"
    with raises(RuntimeError):
        stack_api_params(settings, root_stack)


def test_local_template_url_cannot_deploy(tmp_path, template):
    settings = get_settings(
        tmp_path, PipelineSettings.create_arg, **{PipelineSettings.bucket_arg: "abcd"}
    )
    root_stack = TopologyStack("my-app", stack_template=template)
    root_stack.TemplateURL = f"{tmp_path}/myapp.json"
    with raises(ValueError):
        stack_api_params(settings, root_stack)
    root_stack.TemplateURL = "https://s3.amazonaws.com/abcd/myapp.json"
    params = stack_api_params(settings, root_stack)
    assert params["StackName"] == "my-app"
    assert params["Capabilities"] == ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


def test_stack_files(tmp_path, template):
    settings = get_settings(
        tmp_path,
        PipelineSettings.render_arg,
        **{PipelineSettings.format_arg: "yaml"},
    )
    template_file = StackFile("my-app", settings, template=template)
    assert template_file.file_name == "my-app.yaml"
    assert template_file.mime == "application/x-yaml"
    assert "AWS::ECS::Cluster" in template_file.body

    root_stack = TopologyStack(
        "my-app", stack_template=template, stack_parameters={"EcsAmiId": "ami-1234"}
    )
    root_stack.render(settings, validate=False)
    with open(f"{tmp_path}/myapp.params.json") as params_fd:
        assert json.load(params_fd) == [
            {"ParameterKey": "EcsAmiId", "ParameterValue": "ami-1234"}
        ]
    assert path.exists(f"{tmp_path}/myapp.config.json")
    assert path.exists(f"{tmp_path}/myapp.yaml")

    with raises(ValueError):
        StackFile("my-app", settings)
    with raises(ValueError):
        StackFile("my-app", settings, template=template, file_format="txt")
    with raises(TypeError):
        StackFile("my-app", settings, template={"Resources": {}})


def test_create_bucket():
    assert create_bucket(
        "ecs-pipeline-012345678912-eu-west-1", playback_session("init_s3/new_bucket")
    )
    assert not create_bucket(
        "ecs-pipeline-012345678912-eu-west-1",
        playback_session("init_s3/owned_bucket"),
    )
