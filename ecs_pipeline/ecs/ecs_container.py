# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The container configuration shared by the Task Definition and the build stage image definitions.

Both the ECS container definition and the imagedefinitions.json entry are rendered from the same
ServiceContainer, so the container name and image URI cannot drift apart.
"""

from __future__ import annotations

from troposphere import AWS_REGION, Ref
from troposphere.ecs import ContainerDefinition, LogConfiguration, PortMapping

from ecs_pipeline.ecr.ecr_repository import EcrRepository

DEFAULT_CONTAINER_NAME = "MyContainer"
DEFAULT_IMAGE_TAG = "latest"


class ServiceContainer:
    """
    Immutable definition of the single container of the service.
    """

    def __init__(
        self,
        repository: EcrRepository,
        name: str = DEFAULT_CONTAINER_NAME,
        image_tag: str = DEFAULT_IMAGE_TAG,
        memory: int = 512,
        cpu: int = 256,
        container_port: int = 80,
        log_stream_prefix: str = "ecs",
    ):
        if not isinstance(repository, EcrRepository):
            raise TypeError(
                "repository must be", EcrRepository, "Got", type(repository)
            )
        if not name or not isinstance(name, str):
            raise ValueError("Container name must be a non empty string. Got", name)
        self._repository = repository
        self._name = name
        self._image_tag = image_tag
        self._memory = int(memory)
        self._cpu = int(cpu)
        self._container_port = int(container_port)
        self._log_stream_prefix = log_stream_prefix
        self._image_uri = repository.image_uri(image_tag)

    def __repr__(self):
        return f"{self._name}({self._image_uri})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def repository(self) -> EcrRepository:
        return self._repository

    @property
    def image_tag(self) -> str:
        return self._image_tag

    @property
    def image_uri(self) -> str:
        return self._image_uri

    @property
    def memory(self) -> int:
        return self._memory

    @property
    def cpu(self) -> int:
        return self._cpu

    @property
    def container_port(self) -> int:
        return self._container_port

    @property
    def log_stream_prefix(self) -> str:
        return self._log_stream_prefix

    @property
    def image_definition(self) -> dict:
        """
        The entry for this container in imagedefinitions.json
        """
        return {"name": self._name, "imageUri": self._image_uri}

    def container_definition(self, log_group) -> ContainerDefinition:
        """
        Renders the ECS ContainerDefinition. The host port is left to 0 for dynamic port mapping in bridge mode.

        :param troposphere.logs.LogGroup log_group: the log group the awslogs driver sends logs to
        :rtype: troposphere.ecs.ContainerDefinition
        """
        return ContainerDefinition(
            Name=self._name,
            Image=self._image_uri,
            Memory=self._memory,
            Cpu=self._cpu,
            Essential=True,
            PortMappings=[
                PortMapping(
                    ContainerPort=self._container_port, HostPort=0, Protocol="tcp"
                )
            ],
            LogConfiguration=LogConfiguration(
                LogDriver="awslogs",
                Options={
                    "awslogs-group": Ref(log_group),
                    "awslogs-region": Ref(AWS_REGION),
                    "awslogs-stream-prefix": self._log_stream_prefix,
                },
            ),
        )
