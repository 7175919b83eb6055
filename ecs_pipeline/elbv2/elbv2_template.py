#  -*- coding: utf-8 -*-
# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to create the Application Load Balancer in front of the service, its Target Group and Listener,
and to allow traffic from the Load Balancer to the dynamic host ports of the cluster hosts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from troposphere import Template
    from troposphere.ec2 import SecurityGroup as SecurityGroupType
    from ecs_pipeline.ecs.ecs_container import ServiceContainer
    from ecs_pipeline.vpc.vpc_lookup import VpcHandle

from troposphere import AWS_ACCOUNT_ID, AWS_STACK_NAME, GetAtt, Output, Ref, Sub, Tags
from troposphere.ec2 import SecurityGroup, SecurityGroupIngress, SecurityGroupRule
from troposphere.elasticloadbalancingv2 import Action as ListenerAction
from troposphere.elasticloadbalancingv2 import (
    Listener,
    LoadBalancer,
    TargetGroup,
    TargetGroupAttribute,
)

from ecs_pipeline.common.logging import LOG
from ecs_pipeline.common.troposphere_tools import add_outputs, add_resource
from ecs_pipeline.elbv2.elbv2_params import (
    LB_DNS_OUTPUT_T,
    LB_SG_T,
    LB_T,
    LB_TO_HOSTS_INGRESS_T,
    LISTENER_T,
    SERVICE_URL_OUTPUT_T,
    TGT_GROUP_T,
)
from ecs_pipeline.vpc.vpc_params import (
    ALL_IPV4_CIDR,
    EPHEMERAL_PORTS_END,
    EPHEMERAL_PORTS_START,
)


def add_alb_sg(template: Template, vpc: VpcHandle, port: int, public: bool) -> SecurityGroup:
    """Function to add a security group for application loadbalancer

    :param troposphere.Template template: template to add the SG to
    :param VpcHandle vpc:
    :param int port: the listener port to allow ingress for
    :param bool public: whether the ALB is public. If so, ingress is open to the world.
    :return: The ALB's SG
    :rtype: troposphere.ec2.SecurityGroup
    """
    ingress_cidr = ALL_IPV4_CIDR if public or not vpc.cidr_block else vpc.cidr_block
    return add_resource(
        template,
        SecurityGroup(
            LB_SG_T,
            GroupDescription=Sub(f"ALB SG for service in ${{{AWS_STACK_NAME}}}"),
            VpcId=vpc.vpc_id,
            SecurityGroupIngress=[
                SecurityGroupRule(
                    IpProtocol="tcp",
                    FromPort=port,
                    ToPort=port,
                    CidrIp=ingress_cidr,
                    Description=f"HTTP on port {port}",
                )
            ],
            Tags=Tags(
                Name=Sub(f"alb-sg-${{{AWS_STACK_NAME}}}"),
                StackName=Ref(AWS_STACK_NAME),
            ),
        ),
    )


def add_lb_to_hosts_ingress(
    template: Template, lb_sg: SecurityGroup, hosts_sg: SecurityGroupType
) -> SecurityGroupIngress:
    """
    Allows the ALB to reach the containers on the dynamic ports of the hosts, as used in bridge mode.

    :param troposphere.Template template:
    :param troposphere.ec2.SecurityGroup lb_sg: the source load balancer security group
    :param troposphere.ec2.SecurityGroup hosts_sg: the destination hosts security group
    :rtype: troposphere.ec2.SecurityGroupIngress
    """
    return add_resource(
        template,
        SecurityGroupIngress(
            LB_TO_HOSTS_INGRESS_T,
            FromPort=EPHEMERAL_PORTS_START,
            ToPort=EPHEMERAL_PORTS_END,
            GroupId=GetAtt(hosts_sg, "GroupId"),
            SourceSecurityGroupId=GetAtt(lb_sg, "GroupId"),
            SourceSecurityGroupOwnerId=Ref(AWS_ACCOUNT_ID),
            IpProtocol="tcp",
            Description="From the ALB to the containers dynamic ports",
        ),
    )


def add_load_balancer(
    template: Template, vpc: VpcHandle, lb_sg: SecurityGroup, public: bool
) -> LoadBalancer:
    """Function to add the ALB to the template

    :param troposphere.Template template:
    :param VpcHandle vpc:
    :param troposphere.ec2.SecurityGroup lb_sg:
    :param bool public: whether the ALB is internet-facing
    :return: loadbalancer
    :rtype: troposphere.elasticloadbalancingv2.LoadBalancer
    """
    subnets = vpc.public_subnets if public else vpc.hosts_subnets
    if not subnets:
        raise ValueError(
            f"VPC {vpc.vpc_id} has no {'public ' if public else ''}subnets for the load balancer"
        )
    if public and len(subnets) < 2:
        LOG.warning(
            f"VPC {vpc.vpc_id} - Application Load Balancers require subnets in at least two AZs."
            f" Only got {subnets}"
        )
    return add_resource(
        template,
        LoadBalancer(
            LB_T,
            Scheme="internet-facing" if public else "internal",
            SecurityGroups=[GetAtt(lb_sg, "GroupId")],
            Subnets=list(subnets),
            Type="application",
            Tags=Tags(
                Name=Sub(f"alb-${{{AWS_STACK_NAME}}}"),
                StackName=Ref(AWS_STACK_NAME),
            ),
        ),
    )


def add_target_group(
    template: Template, vpc: VpcHandle, container: ServiceContainer, lb: LoadBalancer
) -> TargetGroup:
    """Function to generate the TargetGroup, using instance targets as the tasks run in bridge mode.

    :param troposphere.Template template:
    :param VpcHandle vpc:
    :param ServiceContainer container:
    :param troposphere.elasticloadbalancingv2.LoadBalancer lb: the loadbalancer the targetgroup is bound to
    :return: target group
    :rtype: troposphere.elasticloadbalancingv2.TargetGroup
    """
    return add_resource(
        template,
        TargetGroup(
            TGT_GROUP_T,
            DependsOn=[lb.title],
            VpcId=vpc.vpc_id,
            Port=container.container_port,
            Protocol="HTTP",
            TargetType="instance",
            HealthCheckIntervalSeconds=10,
            HealthyThresholdCount=2,
            UnhealthyThresholdCount=2,
            TargetGroupAttributes=[
                TargetGroupAttribute(
                    Key="deregistration_delay.timeout_seconds", Value="10"
                )
            ],
            Tags=Tags(
                Name=Sub(f"${{{AWS_STACK_NAME}}}-{container.name}"),
                StackName=Ref(AWS_STACK_NAME),
            ),
        ),
    )


def add_lb_listener(
    template: Template, port: int, lb: LoadBalancer, tgt: TargetGroup
) -> Listener:
    """Function add listener for the LB

    :param troposphere.Template template:
    :param int port: port to add the listener for
    :param troposphere.elasticloadbalancingv2.LoadBalancer lb: the loadbalancer the listener depends on
    :param troposphere.elasticloadbalancingv2.TargetGroup tgt: the target group to forward to
    :return: listener
    :rtype: troposphere.elasticloadbalancingv2.Listener
    """
    return add_resource(
        template,
        Listener(
            LISTENER_T,
            DefaultActions=[ListenerAction(Type="forward", TargetGroupArn=Ref(tgt))],
            LoadBalancerArn=Ref(lb),
            Port=port,
            Protocol="HTTP",
        ),
    )


def add_service_load_balancer(
    template: Template,
    vpc: VpcHandle,
    container: ServiceContainer,
    hosts_sg: SecurityGroupType,
    service_config: dict,
) -> tuple:
    """Function to add all ELBv2 resources for the service

    :param troposphere.Template template: template to add the resources to
    :param VpcHandle vpc:
    :param ServiceContainer container: the container the target group forwards to
    :param troposphere.ec2.SecurityGroup hosts_sg: the hosts security group to allow ingress into
    :param dict service_config: the Service section of the topology
    :return: the target group and the listener
    :rtype: tuple
    """
    public = service_config["PublicLoadBalancer"]
    port = service_config["ListenerPort"]
    lb_sg = add_alb_sg(template, vpc, port, public)
    add_lb_to_hosts_ingress(template, lb_sg, hosts_sg)
    lb = add_load_balancer(template, vpc, lb_sg, public)
    tgt = add_target_group(template, vpc, container, lb)
    listener = add_lb_listener(template, port, lb, tgt)
    add_outputs(
        template,
        [
            Output(
                LB_DNS_OUTPUT_T,
                Description="DNS name of the load balancer",
                Value=GetAtt(lb, "DNSName"),
            ),
            Output(
                SERVICE_URL_OUTPUT_T,
                Description="URL of the service",
                Value=Sub(f"http://${{{LB_T}.DNSName}}:{port}"),
            ),
        ],
    )
    return tgt, listener
