#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

from pytest import raises
from troposphere import Ref, Template
from troposphere.ecs import Cluster

from ecs_pipeline.common.stacks import TopologyStack, render_codepipeline_config_file
from ecs_pipeline.common.troposphere_tools import (
    add_parameters,
    add_resource,
    init_template,
)
from ecs_pipeline.compute import CapacityGroup
from ecs_pipeline.compute.compute_params import ECS_AMI_ID
from ecs_pipeline.ecs.ecs_params import LOG_GROUP_RETENTION


def test_add_resource_duplicate():
    template = Template()
    add_resource(template, Cluster("Test"))
    with raises(KeyError):
        add_resource(template, Cluster("Test"))
    replacement = add_resource(template, Cluster("Test", ClusterName="new"), replace=True)
    assert template.resources["Test"] is replacement


def test_add_parameters_groups():
    template = init_template("test")
    add_parameters(template, [ECS_AMI_ID, LOG_GROUP_RETENTION, ECS_AMI_ID])
    assert list(template.parameters.keys()) == ["EcsAmiId", "ServiceLogGroupRetentionPeriod"]
    interface = template.metadata["AWS::CloudFormation::Interface"]
    assert [group["Parameters"] for group in interface["ParameterGroups"]] == [
        ["EcsAmiId"],
        ["ServiceLogGroupRetentionPeriod"],
    ]
    assert "EcsAmiId" in interface["ParameterLabels"]


def test_stack_parameters():
    stack = TopologyStack(
        "my-stack",
        stack_template=Template(),
        stack_parameters={
            "EcsAmiId": "ami-1234",
            "VpcId": Ref("AWS::NoValue"),
            "ServiceLogGroupRetentionPeriod": 14,
        },
    )
    assert stack.title == "mystack"
    params = stack.render_parameters_list_cfn()
    assert params == [
        {"ParameterKey": "EcsAmiId", "ParameterValue": "ami-1234"},
        {"ParameterKey": "ServiceLogGroupRetentionPeriod", "ParameterValue": "14"},
    ]
    assert render_codepipeline_config_file(params)["Parameters"] == {
        "EcsAmiId": "ami-1234",
        "ServiceLogGroupRetentionPeriod": "14",
    }
    with raises(TypeError):
        TopologyStack("test", stack_template={})
    with raises(TypeError):
        TopologyStack("test", stack_template=Template(), stack_parameters=["abcd"])


def test_capacity_group():
    capacity = CapacityGroup()
    assert capacity.desired_capacity == 2
    assert capacity.instance_type == "t2.micro"
    for value in [0, -1, "2", 1.5]:
        with raises(ValueError):
            CapacityGroup(desired_capacity=value)
