#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to render the CodeBuild buildspec which generates imagedefinitions.json from the pushed image.
"""

from __future__ import annotations

import yaml

try:
    from yaml import CDumper as Dumper
except ImportError:
    from yaml import Dumper

from ecs_pipeline.pipeline.image_definitions import (
    IMAGE_DEFINITIONS_FILE,
    image_definitions_printf_command,
    repository_uri_variable,
)

BUILDSPEC_VERSION = "0.2"

ECR_LOGIN_COMMANDS = [
    "echo Logging in to Amazon ECR...",
    "export AWS_ACCOUNT_ID=$(aws sts get-caller-identity --query Account --output text)",
]


def ecr_login_commands(containers: list) -> list:
    """Docker login to the registry of each repository, once per registry."""
    registries = {}
    for container in containers:
        registries.setdefault(
            container.repository.registry, container.repository.region
        )
    return [
        f"aws ecr get-login-password --region {region} | docker login --username AWS"
        f" --password-stdin {registry}"
        for registry, region in registries.items()
    ]


def render_buildspec(containers: list) -> dict:
    """
    Renders the buildspec for the containers of the service.
    Docker logs in to each repository registry, in the repository region.

    :param list[ecs_pipeline.ecs.ecs_container.ServiceContainer] containers:
    :return: the buildspec
    :rtype: dict
    """
    uri_exports = [
        f"{repository_uri_variable(index, len(containers))}={container.repository.uri}"
        for index, container in enumerate(containers)
    ]
    return {
        "version": BUILDSPEC_VERSION,
        "phases": {
            "pre_build": {
                "commands": ECR_LOGIN_COMMANDS
                + ecr_login_commands(containers)
                + uri_exports
            },
            "build": {
                "commands": [
                    "echo Build started on `date`",
                    f"echo Generating {IMAGE_DEFINITIONS_FILE} file...",
                    image_definitions_printf_command(containers),
                ]
            },
        },
        "artifacts": {"files": IMAGE_DEFINITIONS_FILE},
    }


def buildspec_to_yaml(buildspec: dict) -> str:
    return yaml.dump(buildspec, Dumper=Dumper, sort_keys=False, width=1024)
