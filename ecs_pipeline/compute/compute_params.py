#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2021 John Mille <john@compose-x.io>

"""
Compute parameters for CFN
This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.

You can change the names *values* so you like so long as you keep it [a-zA-Z0-9]
"""

from ecs_pipeline.common.cfn_params import Parameter

HOST_ROLE_T = "EcsHostsRole"
HOST_PROFILE_T = "EcsHostsInstanceProfile"
NODES_SG_T = "EcsHostsSg"
ECS_SG_T = "EcsSecurityGroup"
LAUNCH_TEMPLATE_T = "EcsHostsLaunchTemplate"
ASG_T = "EcsHostsAutoScalingGroup"

COMPUTE_SETTINGS = "ECS Compute Settings"

ECS_AMI_ID_T = "EcsAmiId"
ECS_AMI_ID = Parameter(
    ECS_AMI_ID_T,
    group_label=COMPUTE_SETTINGS,
    label="ECS Optimized AMI for the cluster hosts",
    Type="AWS::SSM::Parameter::Value<AWS::EC2::Image::Id>",
    Default="/aws/service/ecs/optimized-ami/amazon-linux-2/recommended/image_id",
)
