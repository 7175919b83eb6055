#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
State of a pipeline execution, moving through the stages in order.

::

    Pending -> SourceRunning -> BuildRunning -> DeployRunning -> Succeeded
                     |               |                |
                     +---------------+----------------+--> Failed

Succeeded and Failed are terminal. There is no retry and no rollback.
"""

from __future__ import annotations

from boto3.session import Session
from botocore.exceptions import ClientError
from compose_x_common.compose_x_common import keyisset

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.exceptions import InvalidStateTransition
from ecs_pipeline.pipeline.pipeline_params import (
    BUILD_STAGE,
    DEPLOY_STAGE,
    SOURCE_STAGE,
    STAGE_ORDER,
)

PENDING = "Pending"
SOURCE_RUNNING = "SourceRunning"
BUILD_RUNNING = "BuildRunning"
DEPLOY_RUNNING = "DeployRunning"
SUCCEEDED = "Succeeded"
FAILED = "Failed"

TRANSITIONS = {
    PENDING: (SOURCE_RUNNING,),
    SOURCE_RUNNING: (BUILD_RUNNING, FAILED),
    BUILD_RUNNING: (DEPLOY_RUNNING, FAILED),
    DEPLOY_RUNNING: (SUCCEEDED, FAILED),
    SUCCEEDED: (),
    FAILED: (),
}

STAGES_RUNNING_STATES = {
    SOURCE_STAGE: SOURCE_RUNNING,
    BUILD_STAGE: BUILD_RUNNING,
    DEPLOY_STAGE: DEPLOY_RUNNING,
}

STAGE_IN_PROGRESS_STATUSES = ["InProgress", "Stopping"]
STAGE_FAILED_STATUSES = ["Failed", "Stopped", "Cancelled"]


class PipelineExecution:
    """
    Tracks the state of one pipeline execution

    :ivar str execution_id: the CodePipeline execution ID, if known
    :ivar list[str] history: the states the execution went through
    """

    def __init__(self, execution_id: str = None):
        self.execution_id = execution_id
        self._state = PENDING
        self.history = [PENDING]

    def __repr__(self):
        return f"{self.execution_id}({self._state})"

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self._state]

    def transition(self, new_state: str) -> None:
        """
        Moves the execution to the new state

        :param str new_state:
        :raises: InvalidStateTransition
        """
        if new_state not in TRANSITIONS[self._state]:
            raise InvalidStateTransition(
                f"Cannot move pipeline execution {self.execution_id} from {self._state} to {new_state}."
                " Allowed",
                TRANSITIONS[self._state],
            )
        LOG.debug(f"Pipeline execution {self.execution_id}: {self._state} -> {new_state}")
        self._state = new_state
        self.history.append(new_state)

    def start(self) -> None:
        """Triggered by the image push"""
        self.transition(SOURCE_RUNNING)

    def stage_succeeded(self, stage_name: str) -> None:
        """
        The running stage completed, moves to the next stage, or to Succeeded after the last one.

        :param str stage_name:
        """
        self._check_running_stage(stage_name)
        stage_index = STAGE_ORDER.index(stage_name)
        if stage_index == len(STAGE_ORDER) - 1:
            self.transition(SUCCEEDED)
        else:
            self.transition(STAGES_RUNNING_STATES[STAGE_ORDER[stage_index + 1]])

    def stage_failed(self, stage_name: str) -> None:
        self._check_running_stage(stage_name)
        self.transition(FAILED)

    def _check_running_stage(self, stage_name: str) -> None:
        if stage_name not in STAGES_RUNNING_STATES:
            raise InvalidStateTransition(
                f"{stage_name} is not a stage of the pipeline. Stages are", STAGE_ORDER
            )
        if STAGES_RUNNING_STATES[stage_name] != self._state:
            raise InvalidStateTransition(
                f"Stage {stage_name} is not running. Pipeline execution {self.execution_id} is {self._state}"
            )


def replay_stages_states(stages_states: list) -> PipelineExecution:
    """
    Derives the state of the latest execution from the stages states, as returned by GetPipelineState.
    The latest execution is the one the Source stage last ran.

    :param list[dict] stages_states:
    :rtype: PipelineExecution
    """
    states = {stage["stageName"]: stage for stage in stages_states}
    source_state = states.get(SOURCE_STAGE, {})
    if not keyisset("latestExecution", source_state):
        return PipelineExecution()
    execution = PipelineExecution(
        source_state["latestExecution"].get("pipelineExecutionId")
    )
    execution.start()
    for stage_name in STAGE_ORDER:
        latest = states.get(stage_name, {}).get("latestExecution")
        if not latest or latest.get("pipelineExecutionId") != execution.execution_id:
            break
        status = latest.get("status")
        if status in STAGE_IN_PROGRESS_STATUSES:
            break
        elif status == "Succeeded":
            execution.stage_succeeded(stage_name)
        elif status in STAGE_FAILED_STATUSES:
            execution.stage_failed(stage_name)
            break
        else:
            LOG.warning(f"Stage {stage_name} - unknown status {status}")
            break
    return execution


def get_pipeline_stages_states(session: Session, pipeline_name: str) -> list:
    """
    :param boto3.session.Session session:
    :param str pipeline_name:
    :return: the stageStates of the pipeline
    :rtype: list[dict]
    """
    client = session.client("codepipeline")
    try:
        state_r = client.get_pipeline_state(name=pipeline_name)
    except ClientError as error:
        LOG.error(f"Failed to retrieve the state of pipeline {pipeline_name}")
        LOG.error(error)
        raise
    return state_r["stageStates"] if keyisset("stageStates", state_r) else []


def get_pipeline_execution_state(
    session: Session, pipeline_name: str
) -> PipelineExecution:
    """
    Function to get the current state of the pipeline latest execution

    :param boto3.session.Session session:
    :param str pipeline_name:
    :rtype: PipelineExecution
    """
    return replay_stages_states(get_pipeline_stages_states(session, pipeline_name))
