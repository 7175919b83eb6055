#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Model of the pipeline: artifacts, stage actions and stages, validated before being rendered into
the AWS::CodePipeline::Pipeline properties.
"""

from __future__ import annotations

import re

from troposphere.codepipeline import (
    Actions,
    ActionTypeId,
    InputArtifacts,
    OutputArtifacts,
    Stages,
)

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.exceptions import ArtifactMissing, PipelineDefinitionError
from ecs_pipeline.pipeline.pipeline_params import STAGE_ORDER

ARTIFACT_NAME_RE = re.compile(r"^[a-zA-Z0-9_\-]{1,100}$")
ACTION_CATEGORIES = ["Source", "Build", "Deploy", "Test", "Invoke", "Approval"]


class Artifact:
    """
    Named artifact, produced by one action and consumed by one downstream action.
    """

    def __init__(self, name: str):
        if not isinstance(name, str) or not ARTIFACT_NAME_RE.match(name):
            raise ValueError(
                "Artifact name must match", ARTIFACT_NAME_RE.pattern, "Got", name
            )
        self._name = name

    def __repr__(self):
        return self._name

    def __eq__(self, other):
        return isinstance(other, Artifact) and other.name == self._name

    def __hash__(self):
        return hash(self._name)

    @property
    def name(self) -> str:
        return self._name


class StageAction:
    """
    An action of a pipeline stage.

    :ivar str name:
    :ivar str category: Source, Build, Deploy etc.
    :ivar str provider: ECR, CodeBuild, ECS etc.
    :ivar dict configuration: the provider specific configuration
    :ivar tuple[Artifact] inputs:
    :ivar tuple[Artifact] outputs:
    """

    def __init__(
        self,
        name: str,
        category: str,
        provider: str,
        configuration: dict,
        inputs: list = None,
        outputs: list = None,
        owner: str = "AWS",
        version: str = "1",
        run_order: int = 1,
    ):
        if category not in ACTION_CATEGORIES:
            raise ValueError(
                f"Action {name} - category must be one of", ACTION_CATEGORIES
            )
        self.name = name
        self.category = category
        self.provider = provider
        self.configuration = configuration
        self.inputs = tuple(inputs) if inputs else ()
        self.outputs = tuple(outputs) if outputs else ()
        self.owner = owner
        self.version = version
        self.run_order = run_order

    def __repr__(self):
        return f"{self.name}({self.category}/{self.provider})"

    def to_action(self) -> Actions:
        """
        :rtype: troposphere.codepipeline.Actions
        """
        action_props = {
            "Name": self.name,
            "ActionTypeId": ActionTypeId(
                Category=self.category,
                Owner=self.owner,
                Provider=self.provider,
                Version=self.version,
            ),
            "Configuration": self.configuration,
            "RunOrder": self.run_order,
        }
        if self.inputs:
            action_props["InputArtifacts"] = [
                InputArtifacts(Name=artifact.name) for artifact in self.inputs
            ]
        if self.outputs:
            action_props["OutputArtifacts"] = [
                OutputArtifacts(Name=artifact.name) for artifact in self.outputs
            ]
        return Actions(**action_props)


class PipelineStage:
    def __init__(self, name: str, actions: list):
        self.name = name
        self.actions = tuple(actions) if actions else ()

    def __repr__(self):
        return self.name

    @property
    def produced(self) -> list:
        return [artifact for action in self.actions for artifact in action.outputs]

    @property
    def consumed(self) -> list:
        return [artifact for action in self.actions for artifact in action.inputs]

    def to_stage(self) -> Stages:
        return Stages(
            Name=self.name, Actions=[action.to_action() for action in self.actions]
        )


class PipelineDefinition:
    """
    Ordered stages of the pipeline. Stages are always Source, Build, then Deploy.
    """

    def __init__(self, name: str, stages: list):
        self.name = name
        self.stages = tuple(stages) if stages else ()

    def __repr__(self):
        return f"{self.name}({' > '.join(stage.name for stage in self.stages)})"

    def validate(self) -> None:
        """
        Validates the stages order and that each artifact is produced once then consumed once downstream.

        :raises: PipelineDefinitionError
        :raises: ArtifactMissing
        """
        stages_names = tuple(stage.name for stage in self.stages)
        if stages_names != STAGE_ORDER:
            raise PipelineDefinitionError(
                f"Pipeline {self.name} - stages must be {STAGE_ORDER}. Got",
                stages_names,
            )
        produced = set()
        consumptions = {}
        for stage in self.stages:
            if not stage.actions:
                raise PipelineDefinitionError(
                    f"Pipeline {self.name} - stage {stage.name} has no action"
                )
            for artifact in stage.consumed:
                if artifact not in produced:
                    raise ArtifactMissing(
                        f"Pipeline {self.name} - stage {stage.name} consumes {artifact.name}"
                        " which no earlier stage produces"
                    )
                consumptions[artifact] = consumptions.get(artifact, 0) + 1
            for artifact in stage.produced:
                if artifact in produced or stage.produced.count(artifact) > 1:
                    raise PipelineDefinitionError(
                        f"Pipeline {self.name} - artifact {artifact.name} is produced more than once"
                    )
            produced.update(stage.produced)
        for artifact in produced:
            count = consumptions.get(artifact, 0)
            if count != 1:
                raise PipelineDefinitionError(
                    f"Pipeline {self.name} - artifact {artifact.name} must be consumed exactly once."
                    f" Consumed {count} times"
                )
        LOG.debug(f"Pipeline {self} is valid")

    def to_stages(self) -> list:
        """
        Validates the pipeline then renders the stages

        :rtype: list[troposphere.codepipeline.Stages]
        """
        self.validate()
        return [stage.to_stage() for stage in self.stages]
