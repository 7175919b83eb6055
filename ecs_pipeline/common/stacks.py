#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
The topology stack: its template in memory, its parameter values, and rendering them to files.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_pipeline.common.settings import PipelineSettings

from troposphere import AWSHelperFn, Template
from troposphere.cloudformation import Stack

from ecs_pipeline.common import NONALPHANUM
from ecs_pipeline.common.files import StackFile
from ecs_pipeline.common.logging import LOG


def render_codepipeline_config_file(parameters: list) -> dict:
    """
    Converts a CFN parameters list to the template configuration format CodePipeline
    CloudFormation actions use.

    :param list[dict] parameters:
    :rtype: dict
    """
    return {
        "Parameters": {
            param["ParameterKey"]: param["ParameterValue"] for param in parameters
        },
        "Tags": {},
    }


class TopologyStack(Stack):
    """
    Keeps track of the template along with the stack it gets deployed as.

    :ivar str name: name of the stack
    :ivar troposphere.Template stack_template:
    :ivar str file_name: base name of the files rendered for the stack
    :ivar str TemplateURL: where the rendered template is, local path or S3 URL
    """

    def __init__(
        self,
        name: str,
        stack_template: Template,
        stack_parameters: dict = None,
        file_name: str = None,
    ):
        if not isinstance(stack_template, Template):
            raise TypeError(
                "stack_template is", type(stack_template), "expected", Template
            )
        if stack_parameters is not None and not isinstance(stack_parameters, dict):
            raise TypeError("parameters is", type(stack_parameters), "expected", dict)
        self.name = name
        self.stack_template = stack_template
        title = NONALPHANUM.sub("", name)
        self.file_name = file_name if file_name else title
        super().__init__(
            title, Parameters=dict(stack_parameters) if stack_parameters else {}
        )

    def render_parameters_list_cfn(self) -> list:
        """
        Parameters with a literal value, in the CloudFormation API format.
        Intrinsic functions and None values are left to the template defaults.

        :rtype: list[dict]
        """
        params = []
        for name, value in self.Parameters.items():
            if value is None or isinstance(value, AWSHelperFn):
                LOG.debug(f"{self.title} - {name} has no literal value. Skipping")
                continue
            if isinstance(value, list):
                value = ",".join(value)
            params.append({"ParameterKey": name, "ParameterValue": str(value)})
        return params

    def write_config_files(self, settings: PipelineSettings) -> None:
        """
        Writes the parameters as given to the CloudFormation API, and as the CodePipeline config file.
        """
        params = self.render_parameters_list_cfn()
        if not params:
            return
        for file_name, content in [
            (f"{self.file_name}.params", params),
            (f"{self.file_name}.config", render_codepipeline_config_file(params)),
        ]:
            config_file = StackFile(
                file_name, settings, content=content, file_format="json"
            )
            config_file.write(settings)
            if settings.upload:
                config_file.upload(settings)

    def render(self, settings: PipelineSettings, validate: bool = True) -> StackFile:
        """
        Writes the template, uploads it when the command requires it, then validates it.

        :param PipelineSettings settings:
        :param bool validate: Whether to validate the template with the CloudFormation API
        :return: the template file
        :rtype: StackFile
        """
        LOG.debug(f"Rendering {self.title}")
        template_file = StackFile(
            self.file_name, settings, template=self.stack_template
        )
        template_file.write(settings)
        self.TemplateURL = template_file.file_path
        if settings.upload:
            template_file.upload(settings)
            self.TemplateURL = template_file.url
        if validate:
            template_file.validate(settings)
        self.write_config_files(settings)
        return template_file
