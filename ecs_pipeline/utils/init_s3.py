#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Creates the S3 bucket the topology templates get uploaded to, for the create, up and plan commands.
"""

from boto3.session import Session
from botocore.exceptions import ClientError

from ecs_pipeline.common.logging import LOG


def secure_bucket(bucket_name: str, client) -> None:
    """Encrypts the bucket by default and blocks any public access to it."""
    client.put_bucket_encryption(
        Bucket=bucket_name,
        ServerSideEncryptionConfiguration={
            "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}]
        },
    )
    client.put_public_access_block(
        Bucket=bucket_name,
        PublicAccessBlockConfiguration={
            "BlockPublicAcls": True,
            "IgnorePublicAcls": True,
            "BlockPublicPolicy": True,
            "RestrictPublicBuckets": True,
        },
    )


def create_bucket(bucket_name: str, session: Session) -> bool:
    """
    Creates the templates bucket in the session region, unless it is already ours.

    :param str bucket_name:
    :param boto3.session.Session session:
    :return: whether the bucket was created
    :rtype: bool
    """
    client = session.client("s3")
    params = {"Bucket": bucket_name}
    if session.region_name and session.region_name != "us-east-1":
        params["CreateBucketConfiguration"] = {
            "LocationConstraint": session.region_name
        }
    try:
        client.create_bucket(**params)
    except client.exceptions.BucketAlreadyOwnedByYou:
        LOG.info(f"Bucket {bucket_name} already exists in your account")
        return False
    except client.exceptions.BucketAlreadyExists:
        LOG.error(f"Bucket {bucket_name} is owned by another account")
        raise
    except ClientError as error:
        LOG.error(f"Failed to create bucket {bucket_name}")
        LOG.error(error)
        raise
    secure_bucket(bucket_name, client)
    LOG.info(f"Bucket {bucket_name} created in {session.region_name}")
    return True
