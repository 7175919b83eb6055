# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
CloudFormation parameters of the topology template. Titles marked `_T` are the logical IDs
shared across modules, keep them alphanumerical.
"""

from troposphere import Parameter as CfnParameter


class Parameter(CfnParameter):
    """
    Parameter which knows which interface group, and with what label, the console shows it in.
    """

    def __init__(self, title, group_label=None, label=None, **kwargs):
        self.group_label = group_label if group_label else "Uncategorized parameters"
        self.label = label
        super().__init__(title, **kwargs)
