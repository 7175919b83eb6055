#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2021 John Mille <john@compose-x.io>

"""
Module to create the Launch Template for the hosts and the associated security groups,
IAM Role (with Instance Profile) and the fixed size Auto Scaling Group.

These settings are all documented on AWS official documentation:
https://docs.aws.amazon.com/AmazonECS/latest/developerguide/ecs-agent-config.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ecs import Cluster
    from ecs_pipeline.compute import CapacityGroup
    from ecs_pipeline.vpc.vpc_lookup import VpcHandle

from troposphere import (
    AWS_NO_VALUE,
    AWS_STACK_ID,
    AWS_STACK_NAME,
    Base64,
    GetAtt,
    Join,
    Ref,
    Sub,
    Tags,
)
from troposphere.autoscaling import AutoScalingGroup, LaunchTemplateSpecification
from troposphere.ec2 import (
    IamInstanceProfile,
    LaunchTemplate,
    LaunchTemplateData,
    Monitoring,
    SecurityGroup,
    SecurityGroupRule,
    TagSpecifications,
)
from troposphere.iam import InstanceProfile, Policy, Role

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.common.troposphere_tools import add_parameters, add_resource
from ecs_pipeline.compute import compute_params
from ecs_pipeline.compute.compute_params import (
    ASG_T,
    ECS_SG_T,
    HOST_PROFILE_T,
    HOST_ROLE_T,
    LAUNCH_TEMPLATE_T,
    NODES_SG_T,
)
from ecs_pipeline.iam import aws_managed_policy, service_role_trust_policy
from ecs_pipeline.vpc.vpc_params import ALL_IPV4_CIDR


def add_hosts_profile(template: Template, cluster: Cluster) -> InstanceProfile:
    """
    Adds role and instance profile of the EC2 hosts to the template

    :param troposphere.Template template: template to add the role and profile to
    :param troposphere.ecs.Cluster cluster: the cluster the hosts register to
    :returns: the instance profile
    :rtype: troposphere.iam.InstanceProfile
    """
    ecs_policy = Policy(
        PolicyName="AllowEcsSpecific",
        PolicyDocument={
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": [
                        "ecs:RegisterContainerInstance",
                        "ecs:DeregisterContainerInstance",
                        "ecs:Submit*",
                    ],
                    "Resource": [GetAtt(cluster, "Arn")],
                },
                {
                    "Effect": "Allow",
                    "Action": [
                        "ecs:StartTelemetrySession",
                        "ecs:DiscoverPollEndpoint",
                        "ecs:Poll",
                        "ecr:GetAuthorizationToken",
                        "logs:CreateLogStream",
                        "logs:PutLogEvents",
                    ],
                    "Resource": ["*"],
                },
            ],
        },
    )
    role = add_resource(
        template,
        Role(
            HOST_ROLE_T,
            AssumeRolePolicyDocument=service_role_trust_policy("ec2"),
            ManagedPolicyArns=[aws_managed_policy("AmazonSSMManagedInstanceCore")],
            Policies=[ecs_policy],
        ),
    )
    return add_resource(
        template,
        InstanceProfile(
            HOST_PROFILE_T,
            Roles=[Ref(role)],
        ),
    )


def add_ecs_security_group(template: Template, vpc: VpcHandle) -> SecurityGroup:
    """
    Security group attached to the hosts for the tasks to reach out to ECR. All outbound traffic is allowed.

    :param troposphere.Template template:
    :param VpcHandle vpc:
    :rtype: troposphere.ec2.SecurityGroup
    """
    return add_resource(
        template,
        SecurityGroup(
            ECS_SG_T,
            GroupDescription="Allow ECS tasks to access ECR",
            VpcId=vpc.vpc_id,
            SecurityGroupEgress=[
                SecurityGroupRule(
                    IpProtocol="-1",
                    CidrIp=ALL_IPV4_CIDR,
                    Description="Allow all outbound traffic by default",
                )
            ],
        ),
    )


def add_hosts_security_group(template: Template, vpc: VpcHandle) -> SecurityGroup:
    """
    Function to add a security group for the hosts. No ingress is allowed until the load balancer opens it.

    :param troposphere.Template template: template to add the SG to
    :param VpcHandle vpc:
    :rtype: troposphere.ec2.SecurityGroup
    """
    return add_resource(
        template,
        SecurityGroup(
            NODES_SG_T,
            GroupDescription=Sub(f"Group for hosts in ${{{AWS_STACK_NAME}}}"),
            VpcId=vpc.vpc_id,
            SecurityGroupEgress=[
                SecurityGroupRule(
                    IpProtocol="-1",
                    CidrIp=ALL_IPV4_CIDR,
                    Description="Allow all outbound traffic by default",
                )
            ],
        ),
    )


def add_launch_template(
    template: Template,
    cluster: Cluster,
    capacity: CapacityGroup,
    instance_profile: InstanceProfile,
    security_groups: list,
) -> LaunchTemplate:
    """Function to create a launch template.

    :param troposphere.Template template: ECS Cluster template
    :param troposphere.ecs.Cluster cluster: the cluster the hosts join
    :param CapacityGroup capacity: instance type and key pair
    :param troposphere.iam.InstanceProfile instance_profile:
    :param list[troposphere.ec2.SecurityGroup] security_groups: security groups for the EC2 hosts
    :return: launch_template
    :rtype: troposphere.ec2.LaunchTemplate
    """
    add_parameters(template, [compute_params.ECS_AMI_ID])
    return add_resource(
        template,
        LaunchTemplate(
            LAUNCH_TEMPLATE_T,
            LaunchTemplateData=LaunchTemplateData(
                ImageId=Ref(compute_params.ECS_AMI_ID),
                InstanceType=capacity.instance_type,
                KeyName=capacity.key_name if capacity.key_name else Ref(AWS_NO_VALUE),
                InstanceInitiatedShutdownBehavior="terminate",
                IamInstanceProfile=IamInstanceProfile(
                    Arn=GetAtt(instance_profile, "Arn")
                ),
                TagSpecifications=[
                    TagSpecifications(
                        ResourceType="instance",
                        Tags=Tags(
                            Name=Sub(f"EcsNodes-${{{cluster.title}}}"),
                            StackName=Ref(AWS_STACK_NAME),
                            StackId=Ref(AWS_STACK_ID),
                        ),
                    )
                ],
                Monitoring=Monitoring(Enabled=True),
                SecurityGroupIds=[GetAtt(group, "GroupId") for group in security_groups],
                UserData=Base64(
                    Join(
                        "\n",
                        [
                            "#!/usr/bin/env bash",
                            Sub(
                                f"echo ECS_CLUSTER=${{{cluster.title}}} >> /etc/ecs/ecs.config"
                            ),
                            "echo ECS_ENABLE_TASK_IAM_ROLE=true >> /etc/ecs/ecs.config",
                            'echo ECS_AVAILABLE_LOGGING_DRIVERS=\'["awslogs", "json-file"]\' >> /etc/ecs/ecs.config',
                            "# EOF",
                        ],
                    )
                ),
            ),
        ),
    )


def add_hosts_auto_scaling_group(
    template: Template,
    launch_template: LaunchTemplate,
    capacity: CapacityGroup,
    vpc: VpcHandle,
) -> AutoScalingGroup:
    """
    Adds the Auto Scaling Group of the hosts. Min, Max and Desired are the same static number.

    :param troposphere.Template template:
    :param troposphere.ec2.LaunchTemplate launch_template:
    :param CapacityGroup capacity:
    :param VpcHandle vpc:
    :rtype: troposphere.autoscaling.AutoScalingGroup
    """
    subnets = list(vpc.hosts_subnets)
    if not subnets:
        raise ValueError(f"VPC {vpc.vpc_id} has no subnets to place the hosts into")
    LOG.info(f"Declaring {capacity} hosts in {subnets}")
    return add_resource(
        template,
        AutoScalingGroup(
            ASG_T,
            LaunchTemplate=LaunchTemplateSpecification(
                LaunchTemplateId=Ref(launch_template),
                Version=GetAtt(launch_template, "LatestVersionNumber"),
            ),
            MinSize=capacity.desired_capacity,
            MaxSize=capacity.desired_capacity,
            DesiredCapacity=str(capacity.desired_capacity),
            VPCZoneIdentifier=subnets,
        ),
    )


def add_hosts_resources(
    template: Template, cluster: Cluster, capacity: CapacityGroup, vpc: VpcHandle
) -> tuple:
    """Function to add the LaunchTemplate, SGs, IAM Profile and ASG to go along with the ECS Cluster

    :param troposphere.Template template: the template to add the hosts config to
    :param troposphere.ecs.Cluster cluster:
    :param CapacityGroup capacity:
    :param VpcHandle vpc:
    :return: the hosts security group, to open ingress from the load balancer, and the auto scaling group
    :rtype: tuple
    """
    ecs_sg = add_ecs_security_group(template, vpc)
    hosts_sg = add_hosts_security_group(template, vpc)
    profile = add_hosts_profile(template, cluster)
    launch_template = add_launch_template(
        template, cluster, capacity, profile, [hosts_sg, ecs_sg]
    )
    asg = add_hosts_auto_scaling_group(template, launch_template, capacity, vpc)
    return hosts_sg, asg
