#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ECS Pipeline
"""


class EcsPipelineException(Exception):
    """
    Top class for ECS Pipeline Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class ResolutionNotFound(EcsPipelineException):
    """
    Exception when an existing resource to look up (i.e. the VPC) cannot be found
    """


class PipelineDefinitionError(EcsPipelineException):
    """
    Exception when the pipeline stages or their artifacts are not wired in the expected order
    """


class ArtifactMissing(PipelineDefinitionError):
    """
    Exception when a stage consumes an artifact no earlier stage produced
    """


class ContainerContractError(EcsPipelineException):
    """
    Exception when the image definitions emitted by the build do not match the task definition containers
    """


class ImageDefinitionsError(EcsPipelineException):
    """
    Exception when an imagedefinitions.json content does not have the expected shape
    """


class InvalidStateTransition(EcsPipelineException):
    """
    Exception when a pipeline execution is moved to a state it cannot reach from its current one
    """
