#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import re

from troposphere import Sub

ECR_REPOSITORY_URI_RE = re.compile(
    r"^(?P<account_id>\d+)\.dkr\.ecr\.(?P<region>[a-z0-9-]+)\.amazonaws\.com(?:\.cn)?/"
    r"(?P<repo_name>[a-z0-9](?:[a-z0-9._/-]*[a-z0-9])?)$"
)
ECR_IMAGE_TAG_RE = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9_.-]{0,127}$")


class EcrRepository:
    """
    Read-only handle on an existing ECR repository, defined from its URI.
    The URI must not contain a tag or digest.
    """

    def __init__(self, uri: str):
        if not isinstance(uri, str):
            raise TypeError("Repository URI must be", str, "Got", type(uri))
        parts = ECR_REPOSITORY_URI_RE.match(uri)
        if not parts:
            raise ValueError(
                f"{uri} is not a valid ECR repository URI. Must match",
                ECR_REPOSITORY_URI_RE.pattern,
            )
        self._uri = uri
        self._account_id = parts.group("account_id")
        self._region = parts.group("region")
        self._repository_name = parts.group("repo_name")

    @classmethod
    def from_uri(cls, uri: str):
        return cls(uri)

    def __repr__(self):
        return self._uri

    def __eq__(self, other):
        return isinstance(other, EcrRepository) and other.uri == self._uri

    def __hash__(self):
        return hash(self._uri)

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def region(self) -> str:
        return self._region

    @property
    def repository_name(self) -> str:
        return self._repository_name

    @property
    def registry(self) -> str:
        """The registry host, used to docker login"""
        return self._uri.split("/", 1)[0]

    @property
    def arn(self) -> Sub:
        return Sub(
            f"arn:${{AWS::Partition}}:ecr:{self._region}:{self._account_id}:"
            f"repository/{self._repository_name}"
        )

    def image_uri(self, tag: str) -> str:
        """
        :param str tag: the image tag
        :return: the fully qualified image URI
        """
        if not isinstance(tag, str) or not ECR_IMAGE_TAG_RE.match(tag):
            raise ValueError(
                f"Image tag {tag} is not valid. Must match", ECR_IMAGE_TAG_RE.pattern
            )
        return f"{self._uri}:{tag}"
