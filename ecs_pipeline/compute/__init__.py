#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2021 John Mille <john@compose-x.io>

"""
Module to create the EC2 compute resources of the ECS Cluster.

The capacity is a fixed number of hosts: the Auto Scaling group min, max and desired sizes are all set
to the same value, there is no scaling policy attached to it.
"""


class CapacityGroup:
    """
    Fixed-size pool of EC2 hosts registered into the ECS Cluster.
    """

    def __init__(
        self, instance_type: str = "t2.micro", desired_capacity: int = 2, key_name=None
    ):
        if not isinstance(desired_capacity, int) or desired_capacity < 1:
            raise ValueError(
                "desired_capacity must be a positive integer. Got", desired_capacity
            )
        self._instance_type = instance_type
        self._desired_capacity = desired_capacity
        self._key_name = key_name

    def __repr__(self):
        return f"{self._desired_capacity} x {self._instance_type}"

    @property
    def instance_type(self) -> str:
        return self._instance_type

    @property
    def desired_capacity(self) -> int:
        return self._desired_capacity

    @property
    def key_name(self):
        return self._key_name
