#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to render and check the imagedefinitions.json file the ECS deploy action consumes.

The file is a JSON array of objects with two string properties, `name` and `imageUri`, where `name`
must be the name of a container of the service Task Definition.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_pipeline.ecs.ecs_container import ServiceContainer

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.exceptions import ContainerContractError, ImageDefinitionsError

IMAGE_DEFINITIONS_FILE = "imagedefinitions.json"
IMAGE_DEFINITION_KEYS = {"name", "imageUri"}
REPOSITORY_URI_VARIABLE = "REPOSITORY_URI"
JSON_SEPARATORS = (",", ":")


def render_image_definitions(containers: list) -> str:
    """
    Renders the imagedefinitions.json content for the containers, in compact JSON.

    :param list[ServiceContainer] containers:
    :rtype: str
    """
    if not containers:
        raise ImageDefinitionsError("At least one container is required")
    content = json.dumps(
        [container.image_definition for container in containers],
        separators=JSON_SEPARATORS,
    )
    parse_image_definitions(content)
    return content


def parse_image_definitions(content: str) -> list:
    """
    Parses imagedefinitions.json content and checks its shape.

    :param str content:
    :return: the image definitions
    :rtype: list[dict]
    :raises: ImageDefinitionsError
    """
    try:
        definitions = json.loads(content)
    except (TypeError, json.JSONDecodeError) as error:
        raise ImageDefinitionsError(
            "Image definitions are not valid JSON", str(error)
        ) from error
    if not isinstance(definitions, list) or not definitions:
        raise ImageDefinitionsError(
            "Image definitions must be a non-empty JSON array. Got", definitions
        )
    names = []
    for definition in definitions:
        if not isinstance(definition, dict) or set(definition) != IMAGE_DEFINITION_KEYS:
            raise ImageDefinitionsError(
                f"Image definitions entries must have exactly {sorted(IMAGE_DEFINITION_KEYS)}. Got",
                definition,
            )
        for key in IMAGE_DEFINITION_KEYS:
            if not isinstance(definition[key], str) or not definition[key]:
                raise ImageDefinitionsError(
                    f"Image definition {key} must be a non empty string. Got",
                    definition[key],
                )
        if definition["name"] in names:
            raise ImageDefinitionsError(
                f"Container {definition['name']} is defined more than once"
            )
        names.append(definition["name"])
    return definitions


def repository_uri_variable(index: int, containers_count: int) -> str:
    """
    Name of the shell variable holding the repository URI of a container in the buildspec.

    :param int index: the container index
    :param int containers_count: total number of containers
    :rtype: str
    """
    if containers_count == 1:
        return REPOSITORY_URI_VARIABLE
    return f"{REPOSITORY_URI_VARIABLE}_{index}"


def image_definitions_printf_command(containers: list) -> str:
    """
    Shell command writing the imagedefinitions.json file at build time, from the repository URI variables.

    :param list[ServiceContainer] containers:
    :rtype: str
    """
    if not containers:
        raise ImageDefinitionsError("At least one container is required")
    pattern = json.dumps(
        [{"name": container.name, "imageUri": "%s"} for container in containers],
        separators=JSON_SEPARATORS,
    )
    args = [
        f"${repository_uri_variable(index, len(containers))}:{container.image_tag}"
        for index, container in enumerate(containers)
    ]
    return f"printf '{pattern}' {' '.join(args)} > {IMAGE_DEFINITIONS_FILE}"


def check_container_contract(image_definitions: list, task_containers: dict) -> None:
    """
    Checks that every container in the image definitions exists in the Task Definition, with the same image.

    :param list[dict] image_definitions: the parsed image definitions
    :param dict task_containers: the task definition containers name to image mapping
    :raises: ContainerContractError
    """
    for definition in image_definitions:
        name = definition["name"]
        if name not in task_containers:
            raise ContainerContractError(
                f"Container {name} from {IMAGE_DEFINITIONS_FILE} is not in the Task Definition. Containers are",
                list(task_containers.keys()),
            )
        if task_containers[name] != definition["imageUri"]:
            raise ContainerContractError(
                f"Container {name} image {definition['imageUri']} does not match"
                f" the Task Definition image {task_containers[name]}"
            )
    LOG.debug(f"Image definitions match the Task Definition containers {task_containers}")
