#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Package to define the ECR to ECS CodePipeline, its CodeBuild project and its trigger.
"""
