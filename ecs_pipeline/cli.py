# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_pipeline.
"""

import argparse
import sys

from tabulate import tabulate

from ecs_pipeline import __version__
from ecs_pipeline.common.aws import deploy, plan
from ecs_pipeline.common.logging import LOG, set_log_level
from ecs_pipeline.common.settings import PipelineSettings
from ecs_pipeline.ecs_pipeline import generate_full_template
from ecs_pipeline.pipeline.pipeline_state import (
    get_pipeline_stages_states,
    replay_stages_states,
)


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in [cmd["name"] for cmd in PipelineSettings.active_commands]:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())
        parser.exit()


def main_parser():
    """
    Console script for ecs_pipeline.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=PipelineSettings.command_arg, help="Command to execute."
    )
    aws_parser = argparse.ArgumentParser(add_help=False)
    base_command_parser = argparse.ArgumentParser(add_help=False)
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument(
        "-f",
        "--topology-file",
        dest=PipelineSettings.input_file_arg,
        required=False,
        help="Path to the YAML topology definition file",
    )
    files_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write all the templates to.",
        type=str,
        dest=PipelineSettings.output_dir_arg,
        default=PipelineSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of your stack",
        required=True,
        type=str,
        dest=PipelineSettings.name_arg,
    )
    base_command_parser.add_argument(
        "--vpc-id",
        dest=PipelineSettings.vpc_id_arg,
        required=False,
        help="ID of the existing VPC to deploy into. Overrides Network.VpcId",
    )
    base_command_parser.add_argument(
        "--ecr-repository-uri",
        dest=PipelineSettings.repository_uri_arg,
        required=False,
        help="URI of the existing ECR repository, without tag. Overrides Registry.RepositoryUri",
    )
    base_command_parser.add_argument(
        "--pipeline-name",
        dest=PipelineSettings.pipeline_name_arg,
        required=False,
        help="Name of the pipeline. Overrides Pipeline.PipelineName",
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=PipelineSettings.format_arg,
        choices=PipelineSettings.allowed_formats,
        default=PipelineSettings.default_format,
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest="DisableRollback",
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    aws_parser.add_argument(
        "--region",
        required=False,
        dest=PipelineSettings.region_arg,
        help="Specify the region you want to build for"
        "default use default region from config or environment vars",
    )
    aws_parser.add_argument(
        "--role-arn",
        dest=PipelineSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    aws_parser.add_argument(
        "-b",
        "--bucket-name",
        type=str,
        required=False,
        help="Bucket name to upload the templates to",
        dest=PipelineSettings.bucket_arg,
    )
    aws_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    for command in PipelineSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, files_parser, aws_parser],
        )
    status_parser = cmd_parsers.add_parser(
        name=PipelineSettings.status_arg,
        help=PipelineSettings.info_commands[0]["help"],
        parents=[aws_parser],
    )
    status_parser.add_argument(
        "--pipeline-name",
        dest=PipelineSettings.pipeline_name_arg,
        required=False,
        help="Name of the pipeline. Defaults to Pipeline.PipelineName",
    )
    status_parser.add_argument(
        "-f",
        "--topology-file",
        dest=PipelineSettings.input_file_arg,
        required=False,
        help="Path to the YAML topology definition file",
    )
    cmd_parsers.add_parser(
        name=PipelineSettings.init_arg,
        help=PipelineSettings.neutral_commands[0]["help"],
        parents=[aws_parser],
    )
    cmd_parsers.add_parser(
        name=PipelineSettings.version_arg,
        help=PipelineSettings.neutral_commands[1]["help"],
    )
    return parser


def print_pipeline_status(settings: PipelineSettings) -> None:
    """
    Prints the stages of the pipeline and the state of its latest execution

    :param PipelineSettings settings:
    """
    stages_states = get_pipeline_stages_states(settings.session, settings.pipeline_name)
    execution = replay_stages_states(stages_states)
    rows = []
    for stage in stages_states:
        latest = stage.get("latestExecution", {})
        rows.append(
            [
                stage["stageName"],
                latest.get("status", "-"),
                latest.get("pipelineExecutionId", "-"),
            ]
        )
    print(
        tabulate(
            rows,
            headers=["Stage", "Status", "Execution ID"],
            tablefmt="rst",
        )
    )
    print(f"Pipeline {settings.pipeline_name} - {execution.execution_id}: {execution.state}")


def main():
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit()
    args = parser.parse_args()
    if getattr(args, "loglevel", None) and not set_log_level(args.loglevel):
        print(f"Log level value {args.loglevel} is invalid.")
    LOG.debug(args)
    if args.command == PipelineSettings.version_arg:
        print(__version__)
        return 0
    settings = PipelineSettings(**vars(args))
    if args.command == PipelineSettings.init_arg:
        settings.init_s3()
        return 0
    if args.command == PipelineSettings.status_arg:
        print_pipeline_status(settings)
        return 0
    if settings.upload:
        settings.set_bucket_name_from_account_id()
    LOG.debug(settings)

    if settings.deploy and not settings.upload:
        LOG.warning(
            "You must update the templates in order to deploy. We won't be deploying."
        )
        settings.deploy = False
    root_stack = generate_full_template(settings)
    root_stack.render(settings)

    if settings.deploy:
        deploy(settings, root_stack)
    elif settings.plan:
        plan(settings, root_stack)
    return 0


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
