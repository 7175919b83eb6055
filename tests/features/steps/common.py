#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

import json
from os import path
from tempfile import mkdtemp

import boto3
import placebo
from behave import given, then, when
from troposphere.autoscaling import AutoScalingGroup
from troposphere.codepipeline import Pipeline

from ecs_pipeline.common.settings import PipelineSettings
from ecs_pipeline.ecs_pipeline import generate_full_template
from ecs_pipeline.exceptions import ResolutionNotFound
from ecs_pipeline.pipeline.image_definitions import render_image_definitions
from ecs_pipeline.vpc.vpc_lookup import VpcHandle


def here():
    return path.abspath(path.dirname(__file__))


def playback_session(data_dir):
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(
        session, data_path=f"{here()}/../../pytests/vpc_lookup/{data_dir}"
    )
    pill.playback()
    return session


@given("I use {repository_uri} as my ECR repository")
def step_impl(context, repository_uri):
    context.repository_uri = repository_uri
    context.content = {"Registry": {"RepositoryUri": repository_uri}}
    context.session = boto3.session.Session(region_name="ap-northeast-2")


@given("I use an existing VPC with private subnets")
def step_impl(context):
    context.vpc = VpcHandle(
        "vpc-0123456789abcdef0",
        cidr_block="10.0.0.0/16",
        public_subnets=["subnet-0aaaaaaaaaaaaaaa1", "subnet-0aaaaaaaaaaaaaaa2"],
        private_subnets=["subnet-0bbbbbbbbbbbbbbb1", "subnet-0bbbbbbbbbbbbbbb2"],
    )
    context.content["Network"] = {"VpcId": context.vpc.vpc_id}


@given("I use VPC {vpc_id} which does not exist")
def step_impl(context, vpc_id):
    context.vpc = None
    context.session = playback_session("nonexisting")
    context.content["Network"] = {"VpcId": vpc_id}


@given("I want {desired_capacity:d} hosts in the cluster")
def step_impl(context, desired_capacity):
    context.content["Capacity"] = {"DesiredCapacity": desired_capacity}


@when("I generate the topology")
def step_impl(context):
    context.settings = PipelineSettings(
        content=context.content,
        session=context.session,
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.command_arg: PipelineSettings.render_arg,
            PipelineSettings.format_arg: "yaml",
            PipelineSettings.output_dir_arg: mkdtemp(),
        },
    )
    context.root_stack = None
    context.error = None
    try:
        context.root_stack = generate_full_template(context.settings, context.vpc)
    except ResolutionNotFound as error:
        context.error = error


@then("the build stage writes {image_definitions}")
def step_impl(context, image_definitions):
    assert context.error is None
    content = render_image_definitions([context.settings.container])
    assert content == image_definitions.strip(), content
    assert json.loads(content)[0]["name"] == context.settings.container.name


@then("the pipeline stages are Source, Build, Deploy")
def step_impl(context):
    template = context.root_stack.stack_template
    pipelines = [
        resource
        for resource in template.resources.values()
        if isinstance(resource, Pipeline)
    ]
    assert len(pipelines) == 1
    stages = pipelines[0].to_dict()["Properties"]["Stages"]
    assert [stage["Name"] for stage in stages] == ["Source", "Build", "Deploy"]


@then("the cluster has exactly {desired_capacity:d} hosts")
def step_impl(context, desired_capacity):
    template = context.root_stack.stack_template
    for resource in template.resources.values():
        if isinstance(resource, AutoScalingGroup):
            props = resource.to_dict()["Properties"]
            for prop in ["MinSize", "MaxSize", "DesiredCapacity"]:
                assert str(props[prop]) == str(desired_capacity)
            break
    else:
        raise AssertionError("No AutoScalingGroup found")


@then("I render all files to verify execution")
def step_impl(context):
    template_file = context.root_stack.render(context.settings, validate=False)
    assert path.exists(template_file.file_path)


@then("the generation fails before defining any stage")
def step_impl(context):
    assert isinstance(context.error, ResolutionNotFound)
    assert context.root_stack is None
