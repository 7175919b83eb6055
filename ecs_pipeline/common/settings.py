# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the PipelineSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt
from json import loads

import boto3
import jsonschema
import yaml
from botocore.exceptions import ClientError
from compose_x_common.aws import get_account_id, validate_iam_role_arn
from compose_x_common.compose_x_common import keyisset, set_else_none
from importlib_resources import files as pkg_files

try:
    from yaml import CLoader as Loader
except ImportError:
    from yaml import Loader

from ecs_pipeline.common.aws import get_cross_role_session
from ecs_pipeline.common.logging import LOG
from ecs_pipeline.compute import CapacityGroup
from ecs_pipeline.compute.compute_params import ECS_AMI_ID_T
from ecs_pipeline.ecr.ecr_repository import EcrRepository
from ecs_pipeline.ecs.ecs_container import ServiceContainer
from ecs_pipeline.ecs.ecs_params import LOG_GROUP_RETENTION_T
from ecs_pipeline.iam import ROLE_ARN_ARG
from ecs_pipeline.utils.init_s3 import create_bucket

DEFAULT_TOPOLOGY = {
    "Network": {},
    "Registry": {"ImageTag": "latest"},
    "Capacity": {
        "InstanceType": "t2.micro",
        "DesiredCapacity": 2,
        "KeyName": "dev-test",
    },
    "Container": {
        "Name": "MyContainer",
        "MemoryLimitMiB": 512,
        "Cpu": 256,
        "ContainerPort": 80,
        "LogStreamPrefix": "ecs",
    },
    "Service": {
        "DesiredCount": 1,
        "PublicLoadBalancer": True,
        "ListenerPort": 80,
        "HealthCheckGracePeriodSeconds": 60,
    },
    "Pipeline": {
        "PipelineName": "MyEcrToEcsPipeline",
        "BuildImage": "aws/codebuild/standard:5.0",
        "ComputeType": "BUILD_GENERAL1_SMALL",
    },
}


def merge_definitions(base: dict, override: dict) -> dict:
    """
    Recursively merges override into a copy of base. Override values win, dicts are merged.

    :param dict base:
    :param dict override:
    :return: the merged definition
    :rtype: dict
    """
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_definitions(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_topology_file(file_path: str) -> dict:
    """
    Loads the YAML topology definition file

    :param str file_path:
    :rtype: dict
    """
    with open(file_path) as topology_fd:
        content = yaml.load(topology_fd.read(), Loader=Loader)
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise TypeError(
            f"{file_path} - The topology definition must be a mapping. Got",
            type(content),
        )
    return content


def validate_topology(definition: dict) -> None:
    """
    Validates the topology definition against the JSON schema

    :param dict definition:
    :raises: jsonschema.ValidationError
    """
    source = pkg_files("ecs_pipeline").joinpath("specs/topology.spec.json")
    LOG.debug(f"Validating against input schema {source}")
    jsonschema.validate(definition, loads(source.read_text()))


class PipelineSettings:
    """
    Class to handle the settings to use for ECS Pipeline.

    :ivar dict topology: The merged and validated topology definition
    :ivar EcrRepository repository: The image repository, if defined
    :ivar ServiceContainer container: The container shared by the task and the build stage, if defined
    :ivar CapacityGroup capacity: The EC2 capacity of the cluster
    """

    name_arg = "Name"
    vpc_id_arg = "VpcId"
    repository_uri_arg = "EcrRepositoryUri"

    region_arg = "RegionName"
    arn_arg = ROLE_ARN_ARG

    deploy_arg = "up"
    render_arg = "render"
    create_arg = "create"
    plan_arg = "plan"
    status_arg = "status"
    init_arg = "init"
    version_arg = "version"
    command_arg = "command"

    bucket_arg = "BucketName"
    input_file_arg = "TopologyFile"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    pipeline_name_arg = "PipelineName"
    default_format = "json"
    allowed_formats = ["json", "yaml"]

    default_output_dir = f"/tmp/{dt.utcnow().strftime('%s')}"

    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates & Validates the CFN template, Creates/Updates stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates & Validates the CFN template locally. No upload to S3",
        },
        {
            "name": create_arg,
            "help": "Generates & Validates the CFN template locally. Uploads files to S3",
        },
        {
            "name": plan_arg,
            "help": "Creates a change-set to show the diff prior to an update",
        },
    ]
    info_commands = [
        {
            "name": status_arg,
            "help": "Shows the state of the latest execution of the pipeline",
        },
    ]
    neutral_commands = [
        {
            "name": init_arg,
            "help": "Creates the S3 bucket to upload the templates to",
        },
        {"name": version_arg, "help": "ECS Pipeline Version"},
    ]
    all_commands = active_commands + info_commands + neutral_commands

    def __init__(
        self,
        content: dict = None,
        profile_name: str = None,
        session=None,
        **kwargs,
    ):
        """
        Class to init the configuration

        :param dict content: Topology definition, overrides the topology file content
        :param str profile_name: AWS profile to use
        :param boto3.session.Session session: session to use for the AWS API calls
        """
        self.__args = deepcopy(kwargs)
        self.session = boto3.session.Session()
        self.override_session(session, profile_name, kwargs)
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )
        self.name = set_else_none(self.name_arg, kwargs, alt_value="ecs-pipeline")
        self.bucket_name = set_else_none(self.bucket_arg, kwargs)
        self.account_id = None
        self.deploy = False
        self.plan = False
        self.no_upload = True
        self.upload = False
        self.parse_command(kwargs)
        self.set_output_settings(kwargs)

        self.topology = {}
        self.repository = None
        self.container = None
        self.capacity = None
        self.set_content(kwargs, content)

    def __repr__(self):
        return self.name

    @property
    def disable_rollback(self) -> bool:
        return bool(set_else_none("DisableRollback", self.__args, alt_value=False))

    @property
    def vpc_id(self):
        return set_else_none("VpcId", self.topology["Network"])

    @property
    def image_tag(self) -> str:
        return self.topology["Registry"]["ImageTag"]

    @property
    def service_config(self) -> dict:
        return self.topology["Service"]

    @property
    def pipeline_config(self) -> dict:
        return self.topology["Pipeline"]

    @property
    def pipeline_name(self) -> str:
        return self.topology["Pipeline"]["PipelineName"]

    @property
    def stack_parameters(self) -> dict:
        """
        Values of the template parameters set in the topology. The others keep their template default.

        :rtype: dict
        """
        parameters = {}
        ami_parameter = set_else_none("AmiSsmParameter", self.topology["Capacity"])
        if ami_parameter:
            parameters[ECS_AMI_ID_T] = ami_parameter
        retention = set_else_none("LogRetentionInDays", self.topology["Container"])
        if retention:
            parameters[LOG_GROUP_RETENTION_T] = retention
        return parameters

    def set_content(self, kwargs: dict, content: dict = None) -> None:
        """
        Method to merge the topology file, the content and CLI overrides onto the defaults, then validate it

        :param dict kwargs:
        :param dict content:
        """
        definition = deepcopy(DEFAULT_TOPOLOGY)
        if keyisset(self.input_file_arg, kwargs):
            LOG.info(f"Loading topology from {kwargs[self.input_file_arg]}")
            definition = merge_definitions(
                definition, load_topology_file(kwargs[self.input_file_arg])
            )
        if content:
            definition = merge_definitions(definition, content)
        if keyisset(self.vpc_id_arg, kwargs):
            definition["Network"]["VpcId"] = kwargs[self.vpc_id_arg]
        if keyisset(self.repository_uri_arg, kwargs):
            definition["Registry"]["RepositoryUri"] = kwargs[self.repository_uri_arg]
        if keyisset(self.pipeline_name_arg, kwargs):
            definition["Pipeline"]["PipelineName"] = kwargs[self.pipeline_name_arg]
        validate_topology(definition)
        self.topology = definition
        self.set_capacity()
        self.set_container()

    def set_capacity(self) -> None:
        capacity_def = self.topology["Capacity"]
        self.capacity = CapacityGroup(
            instance_type=capacity_def["InstanceType"],
            desired_capacity=capacity_def["DesiredCapacity"],
            key_name=set_else_none("KeyName", capacity_def),
        )

    def set_container(self) -> None:
        """
        Defines the repository and the container, shared by the Task Definition and the build stage.
        """
        repository_uri = set_else_none("RepositoryUri", self.topology["Registry"])
        if not repository_uri:
            LOG.debug("No repository URI defined. Container is not set.")
            return
        self.repository = EcrRepository.from_uri(repository_uri)
        container_def = self.topology["Container"]
        self.container = ServiceContainer(
            self.repository,
            name=container_def["Name"],
            image_tag=self.image_tag,
            memory=container_def["MemoryLimitMiB"],
            cpu=container_def["Cpu"],
            container_port=container_def["ContainerPort"],
            log_stream_prefix=container_def["LogStreamPrefix"],
        )

    def parse_command(self, kwargs: dict) -> None:
        """
        Method to analyze the command and set execution settings accordingly.

        :param dict kwargs:
        """
        command = set_else_none(self.command_arg, kwargs, alt_value=self.render_arg)
        command_names = [cmd["name"] for cmd in self.all_commands]
        if command not in command_names:
            raise ValueError(f"Command {command} is not valid. Must be one of", command_names)
        if command == self.deploy_arg:
            self.deploy = True
            self.upload = True
        elif command == self.plan_arg:
            self.plan = True
            self.upload = True
        elif command == self.create_arg:
            self.upload = True
        self.no_upload = not self.upload

    def override_session(self, session, profile_name, kwargs):
        """
        Method to set the session based on input params

        :param boto3.session.Session session: The session to override the API calls with
        :param str profile_name: Name of a profile configured in .aws/config
        :param dict kwargs: CLI kwargs
        """
        if profile_name and not session:
            self.session = boto3.session.Session(profile_name=profile_name)
        elif session:
            self.session = session
        if keyisset(self.arn_arg, kwargs):
            validate_iam_role_arn(arn=kwargs[self.arn_arg])
            self.session = get_cross_role_session(
                self.session,
                kwargs[self.arn_arg],
                region_name=set_else_none(self.region_arg, kwargs),
                session_name=f"EcsPipeline@{set_else_none(self.command_arg, kwargs, alt_value='cli')}",
            )
        elif keyisset(self.region_arg, kwargs) and (
            self.session.region_name != kwargs[self.region_arg]
        ):
            self.session = boto3.session.Session(
                profile_name=profile_name, region_name=kwargs[self.region_arg]
            )

    def set_output_settings(self, kwargs):
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]

        self.output_dir = (
            kwargs[self.output_dir_arg]
            if keyisset(self.output_dir_arg, kwargs)
            else self.default_output_dir
        )

    def set_bucket_name_from_account_id(self):
        """
        Defines the default bucket name to use from the AWS Account ID
        """
        if self.bucket_name and isinstance(self.bucket_name, str):
            return
        if self.account_id is None:
            try:
                self.account_id = get_account_id(session=self.session)
                self.bucket_name = f"ecs-pipeline-{self.account_id}-{self.aws_region}"
            except ClientError as error:
                code = error.response["Error"]["Code"]
                message = error.response["Error"]["Message"]
                if code == "ExpiredToken":
                    LOG.error(message)
                    LOG.warning(
                        "Due to credentials error, we won't attempt to upload to S3."
                    )
                else:
                    LOG.error(error)
                self.bucket_name = None
                self.upload = False
                self.no_upload = True

    def init_s3(self):
        """
        Method to initialize S3 settings
        """
        self.set_bucket_name_from_account_id()
        if self.bucket_name:
            create_bucket(self.bucket_name, self.session)
