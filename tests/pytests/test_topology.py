#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

import json
from os import path

import boto3
import placebo
from pytest import fixture, raises
from troposphere.autoscaling import AutoScalingGroup

from ecs_pipeline.common.settings import PipelineSettings
from ecs_pipeline.compute.compute_params import ASG_T, NODES_SG_T
from ecs_pipeline.ecs.ecs_params import SERVICE_T, TASK_T
from ecs_pipeline.ecs_pipeline import generate_full_template
from ecs_pipeline.elbv2.elbv2_params import LB_SG_T, LB_TO_HOSTS_INGRESS_T, LISTENER_T
from ecs_pipeline.exceptions import ResolutionNotFound
from ecs_pipeline.pipeline.codebuild_template import ECR_BUILD_ACTIONS
from ecs_pipeline.pipeline.image_definitions import render_image_definitions
from ecs_pipeline.pipeline.pipeline_params import BUILD_PROJECT_T, PIPELINE_T
from ecs_pipeline.vpc.vpc_lookup import VpcHandle

HERE = path.abspath(path.dirname(__file__))
REPOSITORY_URI = "123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app"


@fixture()
def vpc():
    return VpcHandle(
        "vpc-0123456789abcdef0",
        cidr_block="10.0.0.0/16",
        public_subnets=["subnet-0aaaaaaaaaaaaaaa1", "subnet-0aaaaaaaaaaaaaaa2"],
        private_subnets=["subnet-0bbbbbbbbbbbbbbb1", "subnet-0bbbbbbbbbbbbbbb2"],
    )


@fixture()
def settings(tmp_path):
    return PipelineSettings(
        session=boto3.session.Session(region_name="ap-northeast-2"),
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.vpc_id_arg: "vpc-0123456789abcdef0",
            PipelineSettings.repository_uri_arg: REPOSITORY_URI,
            PipelineSettings.output_dir_arg: str(tmp_path),
        },
    )


def test_fixed_capacity(settings, vpc):
    template = generate_full_template(settings, vpc).stack_template
    asgs = [
        resource
        for resource in template.resources.values()
        if isinstance(resource, AutoScalingGroup)
    ]
    assert len(asgs) == 1
    props = template.resources[ASG_T].to_dict()["Properties"]
    assert props["DesiredCapacity"] == "2"
    assert str(props["MinSize"]) == "2"
    assert str(props["MaxSize"]) == "2"
    assert props["VPCZoneIdentifier"] == list(vpc.private_subnets)


def test_container_name_matches_image_definitions(settings, vpc):
    template = generate_full_template(settings, vpc).stack_template
    task_props = template.resources[TASK_T].to_dict()["Properties"]
    assert task_props["NetworkMode"] == "bridge"
    assert task_props["RequiresCompatibilities"] == ["EC2"]
    containers = task_props["ContainerDefinitions"]
    assert len(containers) == 1
    manifest = json.loads(render_image_definitions([settings.container]))
    assert containers[0]["Name"] == manifest[0]["name"] == "MyContainer"
    assert containers[0]["Image"] == manifest[0]["imageUri"] == f"{REPOSITORY_URI}:latest"
    assert containers[0]["PortMappings"] == [
        {"ContainerPort": 80, "HostPort": 0, "Protocol": "tcp"}
    ]
    assert containers[0]["LogConfiguration"]["Options"]["awslogs-stream-prefix"] == "ecs"

    service_props = template.resources[SERVICE_T].to_dict()
    assert service_props["DependsOn"] == [LISTENER_T]
    assert service_props["Properties"]["LoadBalancers"][0]["ContainerName"] == "MyContainer"
    assert service_props["Properties"]["LaunchType"] == "EC2"


def test_pipeline_stages(settings, vpc):
    template = generate_full_template(settings, vpc).stack_template
    pipeline_props = template.resources[PIPELINE_T].to_dict()["Properties"]
    assert pipeline_props["Name"] == "MyEcrToEcsPipeline"
    stages = pipeline_props["Stages"]
    assert [stage["Name"] for stage in stages] == ["Source", "Build", "Deploy"]
    source_action = stages[0]["Actions"][0]
    assert source_action["Configuration"] == {
        "RepositoryName": "my-app",
        "ImageTag": "latest",
    }
    assert source_action["OutputArtifacts"] == [{"Name": "SourceArtifact"}]
    assert stages[1]["Actions"][0]["InputArtifacts"] == [{"Name": "SourceArtifact"}]
    assert stages[1]["Actions"][0]["OutputArtifacts"] == [{"Name": "BuildArtifact"}]
    deploy_action = stages[2]["Actions"][0]
    assert deploy_action["InputArtifacts"] == [{"Name": "BuildArtifact"}]
    assert deploy_action["Configuration"]["FileName"] == "imagedefinitions.json"
    assert deploy_action["Configuration"]["ServiceName"] == {
        "Fn::GetAtt": [SERVICE_T, "Name"]
    }

    project_props = template.resources[BUILD_PROJECT_T].to_dict()["Properties"]
    environment = project_props["Environment"]
    assert environment["Image"] == "aws/codebuild/standard:5.0"
    assert environment["ComputeType"] == "BUILD_GENERAL1_SMALL"
    assert environment["PrivilegedMode"] is True
    assert [env["Name"] for env in environment["EnvironmentVariables"]] == [
        "AWS_DEFAULT_REGION",
        "AWS_ACCOUNT_ID",
    ]
    assert (
        """printf '[{"name":"MyContainer","imageUri":"%s"}]' $REPOSITORY_URI:latest > imagedefinitions.json"""
        in project_props["Source"]["BuildSpec"]
    )
    template_content = json.loads(template.to_json())
    role_actions = [
        action
        for policy in template_content["Resources"]["ImageDefinitionsBuildProjectRole"][
            "Properties"
        ]["Policies"]
        for statement in policy["PolicyDocument"]["Statement"]
        for action in statement["Action"]
    ]
    for action in ECR_BUILD_ACTIONS:
        assert action in role_actions


def test_load_balancer_to_hosts(settings, vpc):
    template = generate_full_template(settings, vpc).stack_template
    ingress = template.resources[LB_TO_HOSTS_INGRESS_T].to_dict()["Properties"]
    assert ingress["FromPort"] == 32768
    assert ingress["ToPort"] == 65535
    assert ingress["GroupId"] == {"Fn::GetAtt": [NODES_SG_T, "GroupId"]}
    assert ingress["SourceSecurityGroupId"] == {"Fn::GetAtt": [LB_SG_T, "GroupId"]}
    hosts_sg = template.resources[NODES_SG_T].to_dict()["Properties"]
    assert "SecurityGroupIngress" not in hosts_sg
    outputs = template.to_dict()["Outputs"]
    for output in [
        "LoadBalancerDnsName",
        "ServiceUrl",
        "EcsClusterName",
        "EcsServiceName",
        "PipelineName",
    ]:
        assert output in outputs


def test_render_template(settings, vpc):
    root_stack = generate_full_template(settings, vpc)
    template_file = root_stack.render(settings, validate=False)
    assert path.exists(template_file.file_path)
    with open(template_file.file_path) as template_fd:
        content = json.load(template_fd)
    assert content["AWSTemplateFormatVersion"] == "2010-09-09"
    assert PIPELINE_T in content["Resources"]
    assert "EcsAmiId" in content["Parameters"]


def test_fail_before_any_stage():
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=f"{HERE}/vpc_lookup/nonexisting")
    pill.playback()
    settings = PipelineSettings(
        session=session,
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.vpc_id_arg: "vpc-0000000000000dead",
            PipelineSettings.repository_uri_arg: REPOSITORY_URI,
        },
    )
    with raises(ResolutionNotFound):
        generate_full_template(settings)


def test_missing_repository(vpc):
    settings = PipelineSettings(
        session=boto3.session.Session(region_name="ap-northeast-2"),
        Name="test",
        VpcId=vpc.vpc_id,
    )
    with raises(ResolutionNotFound):
        generate_full_template(settings, vpc)


def test_topology_parameter_values(tmp_path, vpc):
    settings = PipelineSettings(
        content={
            "Capacity": {
                "AmiSsmParameter": "/aws/service/ecs/optimized-ami/amazon-linux-2023/recommended/image_id"
            },
            "Container": {"LogRetentionInDays": 14},
        },
        session=boto3.session.Session(region_name="ap-northeast-2"),
        **{
            PipelineSettings.name_arg: "test",
            PipelineSettings.vpc_id_arg: "vpc-0123456789abcdef0",
            PipelineSettings.repository_uri_arg: REPOSITORY_URI,
            PipelineSettings.output_dir_arg: str(tmp_path),
        },
    )
    root_stack = generate_full_template(settings, vpc)
    expected = [
        {
            "ParameterKey": "EcsAmiId",
            "ParameterValue": "/aws/service/ecs/optimized-ami/amazon-linux-2023/recommended/image_id",
        },
        {"ParameterKey": "ServiceLogGroupRetentionPeriod", "ParameterValue": "14"},
    ]
    assert root_stack.render_parameters_list_cfn() == expected
    root_stack.render(settings, validate=False)
    with open(f"{tmp_path}/test.params.json") as params_fd:
        assert json.load(params_fd) == expected
    with open(f"{tmp_path}/test.config.json") as config_fd:
        assert json.load(config_fd)["Parameters"]["ServiceLogGroupRetentionPeriod"] == "14"


def test_no_parameter_values(settings, vpc, tmp_path):
    root_stack = generate_full_template(settings, vpc)
    assert root_stack.render_parameters_list_cfn() == []
    root_stack.render(settings, validate=False)
    assert not path.exists(f"{tmp_path}/test.params.json")
