#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille<john@compose-x.io>

from pytest import fixture, raises

from ecs_pipeline.ecr.ecr_repository import EcrRepository


@fixture()
def repository_uri():
    return "123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app"


def test_parse_repository_uri(repository_uri):
    repository = EcrRepository.from_uri(repository_uri)
    assert repository.account_id == "123456789"
    assert repository.region == "ap-northeast-2"
    assert repository.repository_name == "my-app"
    assert repository.registry == "123456789.dkr.ecr.ap-northeast-2.amazonaws.com"
    assert repository.uri == repository_uri
    assert repository.image_uri("latest") == f"{repository_uri}:latest"
    assert repository.arn.to_dict() == {
        "Fn::Sub": "arn:${AWS::Partition}:ecr:ap-northeast-2:123456789:repository/my-app"
    }


def test_nested_repository_name():
    repository = EcrRepository(
        "012345678912.dkr.ecr.eu-west-1.amazonaws.com/team/backend/api"
    )
    assert repository.repository_name == "team/backend/api"
    assert repository.account_id == "012345678912"


def test_repository_equality(repository_uri):
    assert EcrRepository(repository_uri) == EcrRepository.from_uri(repository_uri)
    assert len({EcrRepository(repository_uri), EcrRepository(repository_uri)}) == 1


def test_invalid_repository_uris(repository_uri):
    for uri in [
        f"{repository_uri}:latest",
        "123456789.dkr.ecr.ap-northeast-2.amazonaws.com",
        "123456789.dkr.ecr.ap-northeast-2.amazonaws.com/",
        "https://123456789.dkr.ecr.ap-northeast-2.amazonaws.com/my-app",
        "docker.io/library/nginx",
        "my-app",
        "",
    ]:
        with raises(ValueError):
            EcrRepository(uri)
    with raises(TypeError):
        EcrRepository(None)


def test_invalid_image_tag(repository_uri):
    with raises(ValueError):
        EcrRepository(repository_uri).image_uri("")
    for tag in ["release 1", "-latest", ".hidden", "v1;ls", "a" * 129, None]:
        with raises(ValueError):
            EcrRepository(repository_uri).image_uri(tag)
    assert EcrRepository(repository_uri).image_uri("v1.2.3_rc-1").endswith(
        "/my-app:v1.2.3_rc-1"
    )
