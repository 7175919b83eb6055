#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Titles for the Load Balancing resources of the service.
"""

LB_T = "ServiceLoadBalancer"
LB_SG_T = "ServiceLoadBalancerSg"
TGT_GROUP_T = "ServiceTargetGroup"
LISTENER_T = "ServiceListener"
LB_TO_HOSTS_INGRESS_T = "FromLoadBalancerToHostsEphemeralPorts"

LB_DNS_OUTPUT_T = "LoadBalancerDnsName"
SERVICE_URL_OUTPUT_T = "ServiceUrl"
