#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

import boto3
from jsonschema import ValidationError
from pytest import fixture, raises

from ecs_pipeline.common.settings import PipelineSettings, merge_definitions


@fixture()
def session():
    return boto3.session.Session(region_name="ap-northeast-2")


@fixture()
def repository_uri():
    return "123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app"


def test_default_settings(session, repository_uri):
    settings = PipelineSettings(
        session=session,
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.vpc_id_arg: "vpc-0123456789abcdef0",
            PipelineSettings.repository_uri_arg: repository_uri,
        },
    )
    assert settings.aws_region == "ap-northeast-2"
    assert settings.vpc_id == "vpc-0123456789abcdef0"
    assert settings.pipeline_name == "MyEcrToEcsPipeline"
    assert settings.image_tag == "latest"
    assert settings.capacity.desired_capacity == 2
    assert settings.capacity.instance_type == "t2.micro"
    assert settings.capacity.key_name == "dev-test"
    assert settings.container.name == "MyContainer"
    assert settings.container.image_uri == f"{repository_uri}:latest"
    assert settings.container.memory == 512
    assert settings.container.cpu == 256
    assert settings.container.container_port == 80
    assert settings.repository.repository_name == "my-app"
    assert not settings.upload
    assert not settings.deploy


def test_topology_file(session, repository_uri, tmp_path):
    topology_file = tmp_path / "topology.yaml"
    topology_file.write_text(
        f"""
Network:
  VpcId: vpc-0123456789abcdef0
Registry:
  RepositoryUri: {repository_uri}
Capacity:
  InstanceType: t3.small
  DesiredCapacity: 3
  KeyName: null
Pipeline:
  PipelineName: AnotherPipeline
"""
    )
    settings = PipelineSettings(
        session=session,
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.input_file_arg: str(topology_file),
            PipelineSettings.pipeline_name_arg: "OverridePipeline",
        },
    )
    assert settings.capacity.instance_type == "t3.small"
    assert settings.capacity.desired_capacity == 3
    assert settings.capacity.key_name is None
    assert settings.pipeline_name == "OverridePipeline"
    assert settings.pipeline_config["ComputeType"] == "BUILD_GENERAL1_SMALL"
    assert settings.container.name == "MyContainer"


def test_no_repository(session):
    settings = PipelineSettings(session=session, Name="test")
    assert settings.container is None
    assert settings.repository is None


def test_invalid_topology(session, repository_uri):
    for content in [
        {"Capacity": {"DesiredCapacity": 0}},
        {"Capacity": {"Unknown": True}},
        {"Network": {"VpcId": "subnet-abcd"}},
        {"Pipeline": {"ComputeType": "BUILD_GENERAL1_HUGE"}},
        {"Registry": {"ImageTag": "release 1"}},
        {"Registry": {"ImageTag": "-latest"}},
        {"Container": {"Name": "my container"}},
        {"Unknown": {}},
    ]:
        with raises(ValidationError):
            PipelineSettings(content=content, session=session, Name="test")
    with raises(ValueError):
        PipelineSettings(
            session=session, Name="test", EcrRepositoryUri=f"{repository_uri}:latest"
        )


def test_commands(session):
    settings = PipelineSettings(session=session, Name="test", command="up")
    assert settings.deploy and settings.upload
    settings = PipelineSettings(session=session, Name="test", command="plan")
    assert settings.plan and settings.upload and not settings.deploy
    settings = PipelineSettings(session=session, Name="test", command="create")
    assert settings.upload and not settings.deploy
    settings = PipelineSettings(session=session, Name="test", command="render")
    assert settings.no_upload
    with raises(ValueError):
        PipelineSettings(session=session, Name="test", command="destroy")


def test_merge_definitions():
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = merge_definitions(base, {"a": {"c": 4}, "e": 5})
    assert merged == {"a": {"b": 1, "c": 4}, "d": 3, "e": 5}
    assert base == {"a": {"b": 1, "c": 2}, "d": 3}
