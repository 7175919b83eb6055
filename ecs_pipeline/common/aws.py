# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Session helpers and the CloudFormation operations to deploy the topology stack.
"""

from __future__ import annotations

import secrets
from string import ascii_lowercase
from time import sleep
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_pipeline.common.settings import PipelineSettings
    from ecs_pipeline.common.stacks import TopologyStack

from botocore.exceptions import ClientError
from compose_x_common.aws import get_assume_role_session
from compose_x_common.compose_x_common import keyisset
from tabulate import tabulate

from ecs_pipeline.common.logging import LOG

CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]
UPDATABLE_STATUSES = [
    "CREATE_COMPLETE",
    "ROLLBACK_COMPLETE",
    "UPDATE_COMPLETE",
    "UPDATE_ROLLBACK_COMPLETE",
]
CHANGE_SET_PENDING = [
    "CREATE_PENDING",
    "CREATE_IN_PROGRESS",
    "DELETE_PENDING",
    "DELETE_IN_PROGRESS",
]
CHANGE_SET_FAILED = ["DELETE_FAILED", "FAILED"]
YES_ANSWERS = ["y", "Y", "yes", "Yes", "YES"]


def get_cross_role_session(session, arn, region_name=None, session_name=None):
    """
    Function to override the settings session with an assumed role session

    :param boto3.session.Session session: The original session fetching the credentials for X-Role
    :param str arn:
    :param str region_name: Name of region for session
    :param str session_name: Override name of the session
    :return: boto3 session from the assumed role
    :rtype: boto3.session.Session
    """
    try:
        return get_assume_role_session(
            session,
            arn,
            session_name=session_name if session_name else "EcsPipeline@AssumeRole",
            region=region_name,
        )
    except ClientError:
        LOG.error(f"Failed to use the Role ARN {arn}")
        raise


def get_stack_status(client, stack_name: str):
    """
    :param client: boto3 cloudformation client
    :param str stack_name:
    :return: the stack status, None if the stack does not exist
    :rtype: str
    """
    try:
        stacks_r = client.describe_stacks(StackName=stack_name)
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and "does not exist" in error.response["Error"]["Message"]
        ):
            return None
        raise
    if not keyisset("Stacks", stacks_r):
        return None
    return stacks_r["Stacks"][0]["StackStatus"]


def define_change_type(client, stack_name: str):
    """
    Whether the stack is to be created or updated.

    :return: CREATE, UPDATE, or None when the stack is in a state that allows neither
    :rtype: str
    """
    status = get_stack_status(client, stack_name)
    LOG.info(f"Stack {stack_name} - status {status}")
    if status is None or status == "REVIEW_IN_PROGRESS":
        return "CREATE"
    elif status in UPDATABLE_STATUSES:
        return "UPDATE"
    return None


def stack_api_params(settings: PipelineSettings, root_stack: TopologyStack) -> dict:
    if not settings.upload:
        raise RuntimeError("You selected render, which is incompatible with deploying.")
    if not root_stack.TemplateURL.startswith("https://"):
        raise ValueError(
            f"The URL for the stack is incorrect.: {root_stack.TemplateURL}",
            "TemplateURL must be a s3 URL",
        )
    return {
        "StackName": settings.name,
        "Capabilities": CAPABILITIES,
        "Parameters": root_stack.render_parameters_list_cfn(),
        "TemplateURL": root_stack.TemplateURL,
    }


def deploy(settings: PipelineSettings, root_stack: TopologyStack):
    """
    Creates the stack, or updates it if it already exists.

    :param PipelineSettings settings:
    :param TopologyStack root_stack:
    :return: the stack ID, None if nothing was submitted
    """
    params = stack_api_params(settings, root_stack)
    client = settings.session.client("cloudformation")
    change_type = define_change_type(client, settings.name)
    if change_type == "CREATE":
        stack_r = client.create_stack(
            DisableRollback=settings.disable_rollback, **params
        )
    elif change_type == "UPDATE":
        LOG.warning(f"Stack {settings.name} already exists. Updating.")
        stack_r = client.update_stack(
            DisableRollback=settings.disable_rollback, **params
        )
    else:
        LOG.error(f"Stack {settings.name} can neither be created nor updated.")
        return None
    LOG.info(f"Stack {settings.name} - {change_type} submitted - {stack_r['StackId']}")
    return stack_r["StackId"]


def wait_for_change_set(client, change_set_name: str, stack_name: str) -> dict:
    """
    Polls the change set until it is ready to review.

    :raises: SystemExit if the change set failed
    :return: the change set description
    :rtype: dict
    """
    while True:
        change_set = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=stack_name
        )
        if change_set["Status"] in CHANGE_SET_FAILED:
            raise SystemExit(
                "Change set is unsuccessful",
                change_set["Status"],
                change_set.get("StatusReason"),
            )
        if change_set["Status"] not in CHANGE_SET_PENDING:
            return change_set
        print(
            "ChangeSet creation in progress. Waiting 10 seconds",
            end="\r",
            flush=True,
        )
        sleep(10)


def print_change_set(change_set: dict) -> None:
    changes = [change["ResourceChange"] for change in change_set.get("Changes", [])]
    print(
        tabulate(
            [
                [
                    change["LogicalResourceId"],
                    change["ResourceType"],
                    change["Action"],
                    change.get("Replacement", "-"),
                ]
                for change in changes
            ],
            ["LogicalResourceId", "ResourceType", "Action", "Replacement"],
            tablefmt="rst",
        )
    )


def plan(settings: PipelineSettings, root_stack: TopologyStack):
    """
    Creates a change set, shows the changes, then offers to apply or delete it.

    :param PipelineSettings settings:
    :param TopologyStack root_stack:
    """
    params = stack_api_params(settings, root_stack)
    client = settings.session.client("cloudformation")
    change_type = define_change_type(client, settings.name)
    if change_type is None:
        LOG.error(f"Stack {settings.name} cannot be updated at this time.")
        return
    change_set_name = settings.name + "".join(
        secrets.choice(ascii_lowercase) for _ in range(10)
    )
    client.create_change_set(
        ChangeSetName=change_set_name,
        ChangeSetType=change_type,
        UsePreviousTemplate=False,
        **params,
    )
    print_change_set(wait_for_change_set(client, change_set_name, settings.name))
    if input("Want to apply? [yN]: ") in YES_ANSWERS:
        client.execute_change_set(
            ChangeSetName=change_set_name,
            StackName=settings.name,
            DisableRollback=settings.disable_rollback,
        )
    elif input("Cleanup ChangeSet ? [yN]: ") in YES_ANSWERS:
        client.delete_change_set(ChangeSetName=change_set_name, StackName=settings.name)
