# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Constants related to the VPC network settings.
"""

ALL_IPV4_CIDR = "0.0.0.0/0"
EPHEMERAL_PORTS_START = 32768
EPHEMERAL_PORTS_END = 65535
