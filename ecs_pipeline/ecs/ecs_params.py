# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parameters bound to ecs_pipeline.ecs
This is a crucial part as all the titles, marked `_T` are string which are then used the same way
across all imports, which gives consistency for CFN to use the same names,
which it heavily relies onto.

You can change the names *values* so you like so long as you keep it [a-zA-Z0-9]
"""

from ecs_pipeline.common.cfn_params import Parameter

CLUSTER_T = "EcsCluster"
LOG_GROUP_T = "ServicesLogGroup"
EXEC_ROLE_T = "EcsExecutionRole"
TASK_ROLE_T = "EcsTaskRole"
SERVICE_T = "EcsServiceDefinition"
TASK_T = "EcsTaskDefinition"

LAUNCH_TYPE = "EC2"
NETWORK_MODE = "bridge"

LOGGING_SETTINGS = "Logging Settings"

LOG_GROUP_RETENTION_T = "ServiceLogGroupRetentionPeriod"
LOG_GROUP_RETENTION = Parameter(
    LOG_GROUP_RETENTION_T,
    group_label=LOGGING_SETTINGS,
    label="Retention period, in days, of the containers logs",
    Type="Number",
    Default=30,
    AllowedValues=[
        1,
        3,
        5,
        7,
        14,
        30,
        60,
        90,
        120,
        150,
        180,
        365,
        400,
        545,
        731,
        1827,
        3653,
    ],
)

CLUSTER_NAME_OUTPUT_T = "EcsClusterName"
SERVICE_NAME_OUTPUT_T = "EcsServiceName"
