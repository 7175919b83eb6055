#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

import json

from pytest import fixture, raises

from ecs_pipeline.ecr.ecr_repository import EcrRepository
from ecs_pipeline.ecs.ecs_container import ServiceContainer
from ecs_pipeline.exceptions import ContainerContractError, ImageDefinitionsError
from ecs_pipeline.pipeline.image_definitions import (
    check_container_contract,
    image_definitions_printf_command,
    parse_image_definitions,
    render_image_definitions,
)


@fixture()
def container():
    return ServiceContainer(
        EcrRepository("123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app")
    )


def test_render_single_container(container):
    content = render_image_definitions([container])
    assert (
        content
        == '[{"name":"MyContainer","imageUri":"123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app:latest"}]'
    )
    definitions = parse_image_definitions(content)
    assert len(definitions) == 1
    assert definitions[0]["name"] == container.name
    assert definitions[0]["imageUri"].endswith(":latest")


def test_printf_command(container):
    assert (
        image_definitions_printf_command([container])
        == """printf '[{"name":"MyContainer","imageUri":"%s"}]' $REPOSITORY_URI:latest > imagedefinitions.json"""
    )


def test_printf_command_multiple_containers(container):
    other = ServiceContainer(
        EcrRepository("123456789.dkr.ecr.ap-northeast-2.amazonaws.com/sidecar"),
        name="sidecar",
        image_tag="v1",
    )
    command = image_definitions_printf_command([container, other])
    assert "$REPOSITORY_URI_0:latest $REPOSITORY_URI_1:v1" in command
    pattern = command.split("'")[1]
    assert json.loads(pattern) == [
        {"name": "MyContainer", "imageUri": "%s"},
        {"name": "sidecar", "imageUri": "%s"},
    ]


def test_invalid_image_definitions():
    for content in [
        "",
        "not json",
        "{}",
        "[]",
        '[{"name":"MyContainer"}]',
        '[{"name":"MyContainer","imageUri":""}]',
        '[{"name":"MyContainer","imageUri":"a:latest","extra":"b"}]',
        '[{"name":"a","imageUri":"a:latest"},{"name":"a","imageUri":"b:latest"}]',
        '["MyContainer"]',
    ]:
        with raises(ImageDefinitionsError):
            parse_image_definitions(content)
    with raises(ImageDefinitionsError):
        render_image_definitions([])


def test_container_contract(container):
    definitions = parse_image_definitions(render_image_definitions([container]))
    check_container_contract(definitions, {container.name: container.image_uri})
    with raises(ContainerContractError):
        check_container_contract(definitions, {"web": container.image_uri})
    with raises(ContainerContractError):
        check_container_contract(
            definitions, {container.name: f"{container.repository.uri}:v2"}
        )
