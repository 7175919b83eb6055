#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to define the ECS Service, running the Task Definition on the cluster hosts behind the load balancer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecs import Cluster, TaskDefinition
    from troposphere.elasticloadbalancingv2 import Listener, TargetGroup
    from ecs_pipeline.ecs.ecs_container import ServiceContainer

from troposphere import GetAtt, Output, Ref
from troposphere.ecs import DeploymentConfiguration, DeploymentController
from troposphere.ecs import LoadBalancer as EcsLoadBalancer
from troposphere.ecs import PlacementStrategy, Service

from ecs_pipeline.common.troposphere_tools import add_outputs, add_resource
from ecs_pipeline.ecs.ecs_params import LAUNCH_TYPE, SERVICE_NAME_OUTPUT_T, SERVICE_T


def define_placement_strategies() -> list:
    """
    Spreads the tasks across the AZs, then the hosts

    :rtype: list[troposphere.ecs.PlacementStrategy]
    """
    return [
        PlacementStrategy(Field="attribute:ecs.availability-zone", Type="spread"),
        PlacementStrategy(Field="instanceId", Type="spread"),
    ]


def add_ecs_service(
    template: Template,
    cluster: Cluster,
    task_definition: TaskDefinition,
    container: ServiceContainer,
    target_group: TargetGroup,
    listener: Listener,
    service_config: dict,
) -> Service:
    """
    Function to add the ECS Service. The service depends on the listener so that the target group is attached
    to the load balancer before the tasks get registered into it.

    :param troposphere.Template template:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.TaskDefinition task_definition:
    :param ServiceContainer container: the container the load balancer sends traffic to
    :param troposphere.elasticloadbalancingv2.TargetGroup target_group:
    :param troposphere.elasticloadbalancingv2.Listener listener:
    :param dict service_config: the Service section of the topology
    :return: the ECS Service
    :rtype: troposphere.ecs.Service
    """
    service = add_resource(
        template,
        Service(
            SERVICE_T,
            DependsOn=[listener.title],
            Cluster=Ref(cluster),
            TaskDefinition=Ref(task_definition),
            LaunchType=LAUNCH_TYPE,
            DesiredCount=service_config["DesiredCount"],
            DeploymentController=DeploymentController(Type="ECS"),
            DeploymentConfiguration=DeploymentConfiguration(
                MinimumHealthyPercent=50, MaximumPercent=200
            ),
            HealthCheckGracePeriodSeconds=service_config[
                "HealthCheckGracePeriodSeconds"
            ],
            LoadBalancers=[
                EcsLoadBalancer(
                    TargetGroupArn=Ref(target_group),
                    ContainerName=container.name,
                    ContainerPort=container.container_port,
                )
            ],
            PlacementStrategies=define_placement_strategies(),
            EnableECSManagedTags=True,
            PropagateTags="SERVICE",
        ),
    )
    add_outputs(
        template,
        [
            Output(
                SERVICE_NAME_OUTPUT_T,
                Description="Name of the ECS Service",
                Value=GetAtt(service, "Name"),
            )
        ],
    )
    return service
