#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Helpers to manipulate the troposphere templates consistently
"""

from __future__ import annotations

from troposphere import AWSObject, Output, Template

from ecs_pipeline import __version__
from ecs_pipeline.common.cfn_params import Parameter
from ecs_pipeline.common.logging import LOG


def init_template(description: str = None) -> Template:
    """
    Creates a new template with the standard metadata

    :param str description: Description of the template
    :rtype: troposphere.Template
    """
    template = Template(
        Description=description if description else "Template generated by ECS Pipeline"
    )
    template.set_metadata(
        {
            "Type": "ECS Pipeline",
            "Version": __version__,
            "Author": "ecs-pipeline",
        }
    )
    template.set_version()
    return template


def add_parameters(template: Template, parameters: list) -> None:
    """
    Adds the parameters to the template, skipping those already set, and updates the parameter groups interface

    :param troposphere.Template template:
    :param list[Parameter] parameters:
    """
    for param in parameters:
        if param.title in template.parameters:
            LOG.debug(f"Parameter {param.title} already in template")
            continue
        template.add_parameter(param)
        if isinstance(param, Parameter):
            add_parameter_to_group(template, param)


def add_parameter_to_group(template: Template, parameter: Parameter) -> None:
    """
    Sets the AWS::CloudFormation::Interface parameter groups and labels

    :param troposphere.Template template:
    :param Parameter parameter:
    """
    interface = template.metadata.setdefault(
        "AWS::CloudFormation::Interface",
        {"ParameterGroups": [], "ParameterLabels": {}},
    )
    groups = interface["ParameterGroups"]
    for group in groups:
        if group["Label"]["default"] == parameter.group_label:
            if parameter.title not in group["Parameters"]:
                group["Parameters"].append(parameter.title)
            break
    else:
        groups.append(
            {
                "Label": {"default": parameter.group_label},
                "Parameters": [parameter.title],
            }
        )
    if parameter.label:
        interface["ParameterLabels"][parameter.title] = {"default": parameter.label}


def add_resource(template: Template, resource: AWSObject, replace: bool = False):
    """
    Adds the resource to the template. Raises if the title is already used, unless replace is True.

    :param troposphere.Template template:
    :param troposphere.AWSObject resource:
    :param bool replace:
    :return: the resource
    """
    if resource.title in template.resources and not replace:
        raise KeyError(
            f"Resource {resource.title} already defined in template",
            template.resources[resource.title],
        )
    if replace and resource.title in template.resources:
        del template.resources[resource.title]
    return template.add_resource(resource)


def add_outputs(template: Template, outputs: list) -> None:
    """
    Adds outputs to the template, skipping those already set.

    :param troposphere.Template template:
    :param list[troposphere.Output] outputs:
    """
    for output in outputs:
        if not isinstance(output, Output):
            raise TypeError("Output must be of type", Output, "Got", type(output))
        if output.title in template.outputs:
            continue
        template.add_output(output)
