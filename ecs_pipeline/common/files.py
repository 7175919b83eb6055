#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Output files of the topology: the CloudFormation template and its parameters files,
written locally and optionally uploaded to the templates bucket.
"""

from __future__ import annotations

import json
from os import makedirs
from os.path import abspath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_pipeline.common.settings import PipelineSettings

import yaml

try:
    from yaml import CDumper as Dumper
except ImportError:
    from yaml import Dumper

from botocore.exceptions import ClientError
from troposphere import Template

from ecs_pipeline.common import FILE_PREFIX
from ecs_pipeline.common.logging import LOG

FORMATS_MIMES = {"json": "application/json", "yaml": "application/x-yaml"}
MAX_TEMPLATE_BODY_SIZE = 51200


def upload_to_bucket(settings: PipelineSettings, key: str, body: str, mime: str) -> str:
    """
    Puts the file into the templates bucket, encrypted.

    :param PipelineSettings settings:
    :param str key: the object key
    :param str body:
    :param str mime:
    :return: the URL CloudFormation can read the file from
    :rtype: str
    """
    client = settings.session.client("s3")
    try:
        client.put_object(
            Bucket=settings.bucket_name,
            Key=key,
            Body=body,
            ContentEncoding="utf-8",
            ContentType=mime,
            ServerSideEncryption="AES256",
        )
    except ClientError as error:
        LOG.error(f"Failed to upload {key} to s3://{settings.bucket_name}")
        LOG.error(error)
        raise
    return f"https://s3.amazonaws.com/{settings.bucket_name}/{key}"


class StackFile:
    """
    A file of the stack, either its template or a parameters mapping.

    :ivar str file_name: name of the file, with its extension
    :ivar str file_path: local path the file is written to
    :ivar str url: S3 URL of the file, once uploaded
    """

    def __init__(
        self,
        file_name: str,
        settings: PipelineSettings,
        template: Template = None,
        content=None,
        file_format: str = None,
    ):
        if (template is None) == (content is None):
            raise ValueError(f"{file_name} - Set one of template or content")
        if template is not None and not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        self.template = template
        self.content = content
        self.file_format = file_format if file_format else settings.format
        if self.file_format not in FORMATS_MIMES:
            raise ValueError(
                f"Format {self.file_format} is not supported. Use one of",
                list(FORMATS_MIMES.keys()),
            )
        self.file_name = f"{file_name}.{self.file_format}"
        self.file_path = f"{settings.output_dir}/{self.file_name}"
        self.url = None
        self.body = self.render_body()

    def __repr__(self):
        return self.file_path

    @property
    def mime(self) -> str:
        return FORMATS_MIMES[self.file_format]

    def render_body(self) -> str:
        if self.template is not None:
            if self.file_format == "yaml":
                return self.template.to_yaml()
            return self.template.to_json()
        if self.file_format == "yaml":
            return yaml.dump(self.content, Dumper=Dumper)
        return json.dumps(self.content, indent=4)

    def write(self, settings: PipelineSettings) -> None:
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as file_fd:
            file_fd.write(self.body)
        LOG.info(f"{self.file_name} written to {abspath(self.file_path)}")

    def upload(self, settings: PipelineSettings) -> None:
        self.url = upload_to_bucket(
            settings, f"{FILE_PREFIX}/{self.file_name}", self.body, self.mime
        )
        LOG.info(f"{self.file_name} uploaded to {self.url}")

    def validate(self, settings: PipelineSettings) -> None:
        """
        Validates the template with CloudFormation, from S3 once uploaded, from its body otherwise.
        Bodies over the API size limit can only be validated once uploaded.
        """
        client = settings.session.client("cloudformation")
        if self.url:
            params = {"TemplateURL": self.url}
        elif len(self.body) < MAX_TEMPLATE_BODY_SIZE:
            params = {"TemplateBody": self.body}
        else:
            LOG.warning(
                f"{self.file_name} is too big to validate without uploading it. Skipping."
            )
            return
        try:
            client.validate_template(**params)
        except ClientError as error:
            LOG.error(error)
            LOG.error(f"Template failing validation is at {self.file_path}")
            raise
        LOG.info(f"{self.file_name} validated by CloudFormation")
