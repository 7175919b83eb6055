#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Main module to generate the full topology template: cluster, hosts, service and pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_pipeline.common.settings import PipelineSettings

from ecs_pipeline.common import NONALPHANUM
from ecs_pipeline.common.logging import LOG
from ecs_pipeline.common.stacks import TopologyStack
from ecs_pipeline.common.troposphere_tools import init_template
from ecs_pipeline.compute.hosts_template import add_hosts_resources
from ecs_pipeline.ecs.ecs_cluster import add_ecs_cluster
from ecs_pipeline.ecs.ecs_service import add_ecs_service
from ecs_pipeline.ecs.ecs_task import add_task_definition, get_task_containers
from ecs_pipeline.elbv2.elbv2_template import add_service_load_balancer
from ecs_pipeline.exceptions import ResolutionNotFound
from ecs_pipeline.pipeline.codebuild_template import add_build_project
from ecs_pipeline.pipeline.codepipeline_template import (
    add_artifacts_bucket,
    add_pipeline,
    add_pipeline_role,
    define_pipeline,
)
from ecs_pipeline.pipeline.events_template import add_pipeline_trigger
from ecs_pipeline.pipeline.image_definitions import (
    check_container_contract,
    parse_image_definitions,
    render_image_definitions,
)
from ecs_pipeline.vpc.vpc_lookup import VpcHandle, lookup_vpc


def resolve_handles(settings: PipelineSettings, vpc: VpcHandle = None) -> VpcHandle:
    """
    Resolves the existing VPC and checks the repository is defined, before anything gets declared.

    :param PipelineSettings settings:
    :param VpcHandle vpc: an already resolved VPC, skips the lookup.
    :raises: ResolutionNotFound
    :rtype: VpcHandle
    """
    if settings.container is None:
        raise ResolutionNotFound(
            "The ECR repository URI must be set, via Registry.RepositoryUri or --ecr-repository-uri"
        )
    if vpc is None:
        vpc = lookup_vpc(settings.vpc_id, settings.session)
    if settings.repository.region != settings.aws_region:
        LOG.warning(
            f"Repository {settings.repository} is in {settings.repository.region}"
            f" but the stack deploys to {settings.aws_region}."
            " ECR source actions require the repository in the same region."
        )
    return vpc


def create_root_stack(settings: PipelineSettings) -> TopologyStack:
    """
    Initializes the root stack template and TopologyStack

    :param PipelineSettings settings: The settings for the execution
    """
    template = init_template("Root template generated via ECS Pipeline")
    return TopologyStack(
        NONALPHANUM.sub("", settings.name.title()),
        stack_template=template,
        stack_parameters=settings.stack_parameters,
        file_name=settings.name,
    )


def generate_full_template(
    settings: PipelineSettings, vpc: VpcHandle = None
) -> TopologyStack:
    """
    Function to generate the root template, in dependency order

    * Resolves the VPC and repository, fails before declaring anything if not found
    * ECS Cluster and its fixed capacity of EC2 hosts
    * Task definition, load balancer and service
    * Pipeline, from ECR through CodeBuild to the ECS service

    :param PipelineSettings settings: The settings for the execution
    :param VpcHandle vpc: an already resolved VPC
    :return: the root stack
    :rtype: TopologyStack
    """
    vpc = resolve_handles(settings, vpc)
    root_stack = create_root_stack(settings)
    template = root_stack.stack_template
    container = settings.container

    cluster = add_ecs_cluster(template)
    hosts_sg, asg = add_hosts_resources(template, cluster, settings.capacity, vpc)
    LOG.debug(f"Hosts {asg.title} - {settings.capacity}")

    task_definition = add_task_definition(template, container)
    tgt, listener = add_service_load_balancer(
        template, vpc, container, hosts_sg, settings.service_config
    )
    service = add_ecs_service(
        template,
        cluster,
        task_definition,
        container,
        tgt,
        listener,
        settings.service_config,
    )

    check_container_contract(
        parse_image_definitions(render_image_definitions([container])),
        get_task_containers(task_definition),
    )
    artifacts_bucket = add_artifacts_bucket(template)
    build_project = add_build_project(
        template, [container], settings.pipeline_config, artifacts_bucket
    )
    definition = define_pipeline(
        settings.pipeline_name,
        settings.repository,
        settings.image_tag,
        build_project,
        cluster,
        service,
    )
    role = add_pipeline_role(template, artifacts_bucket, build_project, settings.repository)
    pipeline = add_pipeline(template, definition, role, artifacts_bucket)
    add_pipeline_trigger(template, pipeline, settings.repository, settings.image_tag)
    return root_stack
