#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to add the ECS Cluster to the template.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template

from troposphere import AWS_STACK_NAME, Output, Ref, Tags
from troposphere.ecs import Cluster

from ecs_pipeline.common.troposphere_tools import add_outputs, add_resource
from ecs_pipeline.ecs.ecs_params import CLUSTER_NAME_OUTPUT_T, CLUSTER_T


def add_ecs_cluster(template: Template) -> Cluster:
    """
    Function to add the cluster to the template

    :param troposphere.Template template: the root template
    :return: the cluster
    :rtype: troposphere.ecs.Cluster
    """
    cluster = add_resource(
        template,
        Cluster(
            CLUSTER_T,
            Tags=Tags(StackName=Ref(AWS_STACK_NAME)),
        ),
    )
    add_outputs(
        template,
        [
            Output(
                CLUSTER_NAME_OUTPUT_T,
                Description="Name of the ECS Cluster",
                Value=Ref(cluster),
            )
        ],
    )
    return cluster
