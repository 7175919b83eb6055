# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to look up an existing VPC and classify its subnets.
Only read-only EC2 API calls are made, nothing is created.
"""

from __future__ import annotations

from boto3.session import Session
from botocore.exceptions import ClientError
from compose_x_common.compose_x_common import keyisset

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.exceptions import ResolutionNotFound

VPC_NOT_FOUND_CODES = ["InvalidVpcID.NotFound", "InvalidVpcID.Malformed"]


class VpcHandle:
    """
    Read-only reference to a VPC that already exists.

    :ivar str vpc_id:
    :ivar str cidr_block:
    :ivar tuple[str] public_subnets:
    :ivar tuple[str] private_subnets:
    """

    def __init__(
        self,
        vpc_id: str,
        cidr_block: str = None,
        public_subnets: list = None,
        private_subnets: list = None,
    ):
        self._vpc_id = vpc_id
        self._cidr_block = cidr_block
        self._public_subnets = tuple(public_subnets) if public_subnets else ()
        self._private_subnets = tuple(private_subnets) if private_subnets else ()

    def __repr__(self):
        return self._vpc_id

    @property
    def vpc_id(self) -> str:
        return self._vpc_id

    @property
    def cidr_block(self) -> str:
        return self._cidr_block

    @property
    def public_subnets(self) -> tuple:
        return self._public_subnets

    @property
    def private_subnets(self) -> tuple:
        return self._private_subnets

    @property
    def hosts_subnets(self) -> tuple:
        """
        Subnets to place the EC2 hosts into. Private subnets, unless there are none.
        """
        if self._private_subnets:
            return self._private_subnets
        LOG.warning(
            f"{self._vpc_id} - No private subnets found. Hosts will be placed in public subnets"
        )
        return self._public_subnets


def route_table_is_public(route_table: dict) -> bool:
    """
    A route table is public when one of its routes goes to an Internet Gateway

    :param dict route_table:
    :rtype: bool
    """
    if not keyisset("Routes", route_table):
        return False
    return any(
        route.get("GatewayId", "").startswith("igw-")
        for route in route_table["Routes"]
    )


def map_subnets_route_tables(route_tables: list) -> tuple:
    """
    Maps the explicitly associated subnets to their route table, and identifies the main route table.

    :param list[dict] route_tables:
    :return: mapping of subnet id to route table, and the VPC main route table
    :rtype: tuple[dict, dict]
    """
    subnets_tables = {}
    main_table = None
    for route_table in route_tables:
        for association in route_table.get("Associations", []):
            if keyisset("Main", association):
                main_table = route_table
            elif keyisset("SubnetId", association):
                subnets_tables[association["SubnetId"]] = route_table
    return subnets_tables, main_table


def classify_subnets(subnets: list, route_tables: list) -> tuple:
    """
    Splits subnets between public and private based on their route table

    :param list[dict] subnets: Subnets from DescribeSubnets
    :param list[dict] route_tables: Route tables from DescribeRouteTables
    :return: public subnet IDs, private subnet IDs
    :rtype: tuple[list, list]
    """
    subnets_tables, main_table = map_subnets_route_tables(route_tables)
    public = []
    private = []
    for subnet in sorted(subnets, key=lambda _subnet: _subnet["SubnetId"]):
        subnet_id = subnet["SubnetId"]
        route_table = subnets_tables.get(subnet_id, main_table)
        if route_table and route_table_is_public(route_table):
            public.append(subnet_id)
        else:
            private.append(subnet_id)
    return public, private


def describe_vpc(vpc_id: str, client) -> dict:
    """
    Describes the VPC, raising ResolutionNotFound if it does not exist.

    :param str vpc_id:
    :param client: boto3 EC2 client
    :return: the VPC description
    :rtype: dict
    """
    try:
        vpcs_r = client.describe_vpcs(VpcIds=[vpc_id])
    except ClientError as error:
        if error.response["Error"]["Code"] in VPC_NOT_FOUND_CODES:
            LOG.error(f"VPC {vpc_id} could not be found")
            raise ResolutionNotFound(f"VPC {vpc_id} does not exist", vpc_id) from error
        LOG.error(error)
        raise
    if not keyisset("Vpcs", vpcs_r):
        raise ResolutionNotFound(f"VPC {vpc_id} does not exist", vpc_id)
    return vpcs_r["Vpcs"][0]


def describe_vpc_network(vpc_id: str, client) -> tuple:
    """
    :param str vpc_id:
    :param client: boto3 EC2 client
    :return: the subnets and the route tables of the VPC
    :rtype: tuple[list, list]
    """
    filters = [{"Name": "vpc-id", "Values": [vpc_id]}]
    try:
        subnets_r = client.describe_subnets(Filters=filters)
        route_tables_r = client.describe_route_tables(Filters=filters)
    except ClientError as error:
        LOG.error(f"Failed to describe the subnets and route tables of VPC {vpc_id}")
        LOG.error(error)
        raise
    subnets = subnets_r["Subnets"] if keyisset("Subnets", subnets_r) else []
    route_tables = (
        route_tables_r["RouteTables"]
        if keyisset("RouteTables", route_tables_r)
        else []
    )
    return subnets, route_tables


def lookup_vpc(vpc_id: str, session: Session = None) -> VpcHandle:
    """
    Function to resolve the VPC and its subnets from its ID.

    :param str vpc_id: The VPC ID, i.e. vpc-0123456789abcdef
    :param boto3.session.Session session: session for the EC2 API calls
    :raises: ResolutionNotFound
    :return: the VPC handle
    :rtype: VpcHandle
    """
    if not vpc_id or not isinstance(vpc_id, str):
        raise ResolutionNotFound("A VPC ID must be provided. Got", vpc_id)
    if session is None:
        session = Session()
    client = session.client("ec2")
    vpc_def = describe_vpc(vpc_id, client)
    subnets, route_tables = describe_vpc_network(vpc_id, client)
    if not subnets:
        raise ResolutionNotFound(f"VPC {vpc_id} has no subnets", vpc_id)
    public, private = classify_subnets(subnets, route_tables)
    LOG.info(
        f"VPC {vpc_id} resolved. Public subnets: {public}. Private subnets: {private}"
    )
    return VpcHandle(
        vpc_id,
        cidr_block=vpc_def.get("CidrBlock"),
        public_subnets=public,
        private_subnets=private,
    )
