#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the IAM roles, the log group and the Task Definition of the service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from ecs_pipeline.ecs.ecs_container import ServiceContainer

from troposphere import AWS_STACK_NAME, GetAtt, Ref, Sub
from troposphere.ecs import TaskDefinition
from troposphere.iam import Role
from troposphere.logs import LogGroup

from ecs_pipeline.common.troposphere_tools import add_parameters, add_resource
from ecs_pipeline.ecs.ecs_params import (
    EXEC_ROLE_T,
    LAUNCH_TYPE,
    LOG_GROUP_RETENTION,
    LOG_GROUP_T,
    NETWORK_MODE,
    TASK_ROLE_T,
    TASK_T,
)
from ecs_pipeline.iam import aws_managed_policy, service_role_trust_policy

EXECUTION_ROLE_MANAGED_POLICIES = [
    "service-role/AmazonECSTaskExecutionRolePolicy",
    "AmazonEC2ContainerRegistryReadOnly",
]


def add_task_roles(template: Template) -> tuple:
    """
    Adds the Execution Role, used by the ECS Agent to pull the image and ship logs, and the Task Role,
    used by the application.

    :param troposphere.Template template:
    :return: execution role, task role
    :rtype: tuple[troposphere.iam.Role, troposphere.iam.Role]
    """
    exec_role = add_resource(
        template,
        Role(
            EXEC_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
            Description=Sub(f"Execution role for the tasks in ${{{AWS_STACK_NAME}}}"),
            ManagedPolicyArns=[
                aws_managed_policy(policy) for policy in EXECUTION_ROLE_MANAGED_POLICIES
            ],
        ),
    )
    task_role = add_resource(
        template,
        Role(
            TASK_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("ecs-tasks"),
            Description=Sub(f"Task role for the tasks in ${{{AWS_STACK_NAME}}}"),
        ),
    )
    return exec_role, task_role


def add_log_group(template: Template) -> LogGroup:
    add_parameters(template, [LOG_GROUP_RETENTION])
    return add_resource(
        template,
        LogGroup(
            LOG_GROUP_T,
            RetentionInDays=Ref(LOG_GROUP_RETENTION),
        ),
    )


def add_task_definition(template: Template, container: ServiceContainer) -> TaskDefinition:
    """
    Adds the Task Definition for the EC2 launch type, in bridge network mode, with the one container

    :param troposphere.Template template:
    :param ServiceContainer container: the container configuration, shared with the build stage
    :return: the task definition
    :rtype: troposphere.ecs.TaskDefinition
    """
    exec_role, task_role = add_task_roles(template)
    log_group = add_log_group(template)
    return add_resource(
        template,
        TaskDefinition(
            TASK_T,
            Family=Ref(AWS_STACK_NAME),
            NetworkMode=NETWORK_MODE,
            RequiresCompatibilities=[LAUNCH_TYPE],
            ExecutionRoleArn=GetAtt(exec_role, "Arn"),
            TaskRoleArn=GetAtt(task_role, "Arn"),
            ContainerDefinitions=[container.container_definition(log_group)],
        ),
    )


def get_task_containers(task_definition: TaskDefinition) -> dict:
    """
    Maps the containers of the task definition by name to their image

    :param troposphere.ecs.TaskDefinition task_definition:
    :return: container name to image mapping
    :rtype: dict
    """
    return {
        container_def.Name: container_def.Image
        for container_def in task_definition.ContainerDefinitions
    }
