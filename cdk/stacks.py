# Standard Library
from typing import Optional

# Third Party
from aws_cdk import (
    Arn,
    ArnComponents,
    ArnFormat,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_efs as efs,
    aws_iam as iam,
    aws_logs as logs,
    aws_logs_destinations as logs_destinations,
    aws_route53 as route53,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
    aws_ssm as ssm,
)
from constructs import Construct

# Local Modules
from cdk.config import StackConfig
from cdk.constants import (
    CLUSTER_NAME,
    DOMAIN_STACK_REGION,
    ECS_VOLUME_NAME,
    ECS_VOLUME_PATH,
    HOSTED_ZONE_SSM_PARAMETER,
    LAUNCHER_LAMBDA_ARN_SSM_PARAMETER,
    LAUNCHER_LAMBDA_SRC,
    MC_SERVER_CONTAINER_NAME,
    SERVICE_NAME,
    WATCHDOG_IMAGE,
    WATCHDOG_SERVER_CONTAINER_NAME,
    hosted_zone_arn,
)
from cdk.custom_constructs import CrossRegionSsmReader, CustomLambdaFunction
from cdk.orchestration import StackDependencyOrchestrator


class DomainStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: StackConfig,
        orchestrator: StackDependencyOrchestrator,
        **kwargs,
    ) -> None:
        """DNS, query logging and the launcher for the Minecraft server.

        Must be deployed to us-east-1, the only region Route 53 delivers
        query logs to. Publishes the sub-domain hosted zone ID and the
        launcher's role ARN as SSM parameters for the server stack.

        Parameters
        ----------
        scope : Construct
            The scope in which this construct is defined.
        construct_id : str
            The ID of the construct.
        config : StackConfig
            The resolved deployment configuration.
        orchestrator : StackDependencyOrchestrator
            Records the explicit ordering edges of this stack.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.config = config
        self.orchestrator = orchestrator
        subdomain = config.subdomain

        # region Query Logging
        self.query_log_group = logs.LogGroup(
            self,
            "LogGroup",
            log_group_name=f"/aws/route53/{subdomain}",
            retention=logs.RetentionDays.THREE_DAYS,
            removal_policy=RemovalPolicy.DESTROY,
        )

        # Route 53 writes the query logs through a resource policy
        query_log_grant = self.query_log_group.grant_write(
            iam.ServicePrincipal("route53.amazonaws.com")
        )
        query_log_grant.assert_success()
        # endregion

        # region Hosted Zones
        root_hosted_zone = self.lookup_root_hosted_zone()

        self.subdomain_hosted_zone = route53.HostedZone(
            self,
            "SubdomainHostedZone",
            zone_name=subdomain,
            query_logs_log_group_arn=self.query_log_group.log_group_arn,
        )

        # Have the grant first
        orchestrator.declare_dependency(
            self.subdomain_hosted_zone,
            query_log_grant,
            producer_name=f"{self.query_log_group.node.path}/Route53WriteGrant",
            reason="Route 53 must be able to write query logs first",
        )
        # Have the root zone as a dependency
        orchestrator.declare_dependency(
            self.subdomain_hosted_zone,
            root_hosted_zone,
            reason="The sub-domain is delegated from the root zone",
        )

        route53.NsRecord(
            self,
            "NSRecord",
            zone=root_hosted_zone,
            values=self.subdomain_hosted_zone.hosted_zone_name_servers,
            record_name=subdomain,
        )

        # Placeholder; the watchdog points it at the running task
        route53.ARecord(
            self,
            "ARecord",
            target=route53.RecordTarget.from_values("192.168.1.1"),
            ttl=Duration.seconds(30),
            record_name=subdomain,
            zone=self.subdomain_hosted_zone,
        )
        # endregion

        # region Launcher Lambda
        self.launcher_lambda = CustomLambdaFunction(
            self,
            "LauncherLambda",
            src_folder_path=LAUNCHER_LAMBDA_SRC,
            environment={
                "REGION": config.server_region,
                "CLUSTER": CLUSTER_NAME,
                "SERVICE": SERVICE_NAME,
            },
            description="Starts the Minecraft server when its name is queried",
        ).function

        # Any query for the sub-domain triggers the launcher
        self.query_log_group.add_subscription_filter(
            "SubscriptionFilter",
            destination=logs_destinations.LambdaDestination(
                self.launcher_lambda
            ),
            filter_pattern=logs.FilterPattern.any_term(subdomain),
        )
        # endregion

        # region Published Parameters
        ssm.StringParameter(
            self,
            "HostedZoneParam",
            allowed_pattern=".*",
            description="Hosted zone ID for minecraft server",
            parameter_name=HOSTED_ZONE_SSM_PARAMETER,
            string_value=self.subdomain_hosted_zone.hosted_zone_id,
        )

        ssm.StringParameter(
            self,
            "LauncherLambdaRoleParam",
            allowed_pattern="^arn:.*",
            description="Minecraft launcher execution role ARN",
            parameter_name=LAUNCHER_LAMBDA_ARN_SSM_PARAMETER,
            string_value=self.launcher_lambda.role.role_arn,
        )

        CfnOutput(
            self,
            "HostedZoneIdOutput",
            value=self.subdomain_hosted_zone.hosted_zone_id,
            description="Hosted zone ID of the Minecraft sub-domain",
        )
        # endregion

    def lookup_root_hosted_zone(self) -> route53.IHostedZone:
        """Reference the root domain's hosted zone.

        Uses the configured zone ID when there is one, otherwise looks the
        zone up by domain name at synthesis time.

        Returns
        -------
        route53.IHostedZone
            The root hosted zone.
        """
        if self.config.root_hosted_zone_id:
            return route53.HostedZone.from_hosted_zone_attributes(
                self,
                "HostedZone",
                hosted_zone_id=self.config.root_hosted_zone_id,
                zone_name=self.config.domain_name,
            )
        return route53.HostedZone.from_lookup(
            self, "HostedZone", domain_name=self.config.domain_name
        )


class MinecraftServerStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: StackConfig,
        orchestrator: StackDependencyOrchestrator,
        **kwargs,
    ) -> None:
        """The on-demand Minecraft server on ECS Fargate.

        The service is created with a desired count of 0. The launcher in the
        domain stack raises it on a DNS query and the watchdog container
        lowers it again once the server is idle.

        Parameters
        ----------
        scope : Construct
            The scope in which this construct is defined.
        construct_id : str
            The ID of the construct.
        config : StackConfig
            The resolved deployment configuration.
        orchestrator : StackDependencyOrchestrator
            Records the explicit ordering edges of this stack.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.config = config
        self.orchestrator = orchestrator
        edition = config.edition

        # region Cross-Region Parameters
        # Published by the domain stack in us-east-1
        hosted_zone_reader = CrossRegionSsmReader(
            self,
            "HostedZoneIdReader",
            parameter_name=HOSTED_ZONE_SSM_PARAMETER,
            region=DOMAIN_STACK_REGION,
        )
        launcher_role_reader = CrossRegionSsmReader(
            self,
            "LauncherRoleArnReader",
            parameter_name=LAUNCHER_LAMBDA_ARN_SSM_PARAMETER,
            region=DOMAIN_STACK_REGION,
        )
        self.hosted_zone_id = hosted_zone_reader.value
        self.launcher_role_arn = launcher_role_reader.value
        # endregion

        # region Networking and Storage
        self.vpc = self.create_vpc()

        file_system = efs.FileSystem(
            self,
            "Filesystem",
            vpc=self.vpc,
            removal_policy=RemovalPolicy.DESTROY,
        )

        access_point = efs.AccessPoint(
            self,
            "AccessPoint",
            file_system=file_system,
            path="/minecraft",
            posix_user=efs.PosixUser(uid="1000", gid="1000"),
            create_acl=efs.Acl(
                owner_gid="1000", owner_uid="1000", permissions="0755"
            ),
        )
        # endregion

        # region Task Role
        efs_read_write_data_policy = iam.Policy(
            self,
            "DataRWPolicy",
            statements=[
                iam.PolicyStatement(
                    sid="AllowReadWriteOnEFS",
                    effect=iam.Effect.ALLOW,
                    actions=[
                        "elasticfilesystem:ClientMount",
                        "elasticfilesystem:ClientWrite",
                        "elasticfilesystem:DescribeFileSystems",
                    ],
                    resources=[file_system.file_system_arn],
                    conditions={
                        "StringEquals": {
                            "elasticfilesystem:AccessPointArn": (
                                access_point.access_point_arn
                            ),
                        }
                    },
                )
            ],
        )

        self.task_role = iam.Role(
            self,
            "TaskRole",
            assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com"),
            description="Minecraft ECS task role",
        )
        efs_read_write_data_policy.attach_to_role(self.task_role)

        # The watchdog keeps the A record pointed at the running task
        route53_policy = iam.Policy(
            self,
            "Route53Policy",
            statements=[
                iam.PolicyStatement(
                    sid="AllowEditRecordSets",
                    effect=iam.Effect.ALLOW,
                    actions=[
                        "route53:GetHostedZone",
                        "route53:ChangeResourceRecordSets",
                        "route53:ListResourceRecordSets",
                    ],
                    resources=[
                        hosted_zone_arn(self.hosted_zone_id, self.partition)
                    ],
                )
            ],
        )
        route53_policy.attach_to_role(self.task_role)
        orchestrator.declare_dependency(
            route53_policy,
            hosted_zone_reader,
            reason="The hosted zone ID is read from the domain stack",
        )
        # endregion

        # region ECS Cluster and Task Definition
        cluster = ecs.Cluster(
            self,
            "Cluster",
            cluster_name=CLUSTER_NAME,
            vpc=self.vpc,
            container_insights_v2=ecs.ContainerInsights.ENABLED,
            enable_fargate_capacity_providers=True,
        )

        task_definition = ecs.FargateTaskDefinition(
            self,
            "TaskDefinition",
            task_role=self.task_role,
            memory_limit_mib=config.task_memory,
            cpu=config.task_cpu,
            volumes=[
                ecs.Volume(
                    name=ECS_VOLUME_NAME,
                    efs_volume_configuration=ecs.EfsVolumeConfiguration(
                        file_system_id=file_system.file_system_id,
                        transit_encryption="ENABLED",
                        authorization_config=ecs.AuthorizationConfig(
                            access_point_id=access_point.access_point_id,
                            iam="ENABLED",
                        ),
                    ),
                )
            ],
        )

        container_protocol = (
            ecs.Protocol.UDP if edition.protocol == "udp" else ecs.Protocol.TCP
        )
        minecraft_server_container = task_definition.add_container(
            "ServerContainer",
            container_name=MC_SERVER_CONTAINER_NAME,
            image=ecs.ContainerImage.from_registry(edition.image),
            port_mappings=[
                ecs.PortMapping(
                    container_port=edition.port,
                    host_port=edition.port,
                    protocol=container_protocol,
                )
            ],
            environment={"EULA": "TRUE", **config.minecraft_image_env},
            essential=False,
            logging=self.create_log_driver(MC_SERVER_CONTAINER_NAME),
        )

        minecraft_server_container.add_mount_points(
            ecs.MountPoint(
                container_path=ECS_VOLUME_PATH,
                source_volume=ECS_VOLUME_NAME,
                read_only=False,
            )
        )
        # endregion

        # region Notifications
        self.notification_topic: Optional[sns.Topic] = None
        if config.sns_email_address:
            self.notification_topic = sns.Topic(
                self,
                "ServerNotificationTopic",
                display_name="Minecraft Server Notifications",
            )
            self.notification_topic.add_subscription(
                subscriptions.EmailSubscription(config.sns_email_address)
            )
            self.notification_topic.grant_publish(self.task_role)
        # endregion

        # region Watchdog Container
        watchdog_environment = {
            "CLUSTER": CLUSTER_NAME,
            "SERVICE": SERVICE_NAME,
            "DNSZONE": self.hosted_zone_id,
            "SERVERNAME": config.subdomain,
            "STARTUPMIN": str(config.startup_minutes),
            "SHUTDOWNMIN": str(config.shutdown_minutes),
        }
        if self.notification_topic is not None:
            watchdog_environment["SNSTOPIC"] = (
                self.notification_topic.topic_arn
            )

        # Essential: the task stops when the watchdog exits
        task_definition.add_container(
            "WatchDogContainer",
            container_name=WATCHDOG_SERVER_CONTAINER_NAME,
            image=ecs.ContainerImage.from_registry(WATCHDOG_IMAGE),
            essential=True,
            environment=watchdog_environment,
            logging=self.create_log_driver(WATCHDOG_SERVER_CONTAINER_NAME),
        )
        # endregion

        # region Fargate Service
        service_security_group = ec2.SecurityGroup(
            self,
            "ServerSecurityGroup",
            vpc=self.vpc,
            description="Security group for Minecraft on-demand",
        )
        service_security_group.add_ingress_rule(
            ec2.Peer.any_ipv4(),
            (
                ec2.Port.udp(edition.port)
                if edition.protocol == "udp"
                else ec2.Port.tcp(edition.port)
            ),
            f"Minecraft {config.minecraft_edition} edition",
        )

        self.service = ecs.FargateService(
            self,
            "FargateService",
            cluster=cluster,
            capacity_provider_strategies=[
                ecs.CapacityProviderStrategy(
                    capacity_provider=(
                        "FARGATE_SPOT" if config.use_fargate_spot else "FARGATE"
                    ),
                    weight=1,
                    base=1,
                )
            ],
            task_definition=task_definition,
            platform_version=ecs.FargatePlatformVersion.LATEST,
            service_name=SERVICE_NAME,
            desired_count=0,
            assign_public_ip=True,
            security_groups=[service_security_group],
        )

        file_system.connections.allow_default_port_from(
            self.service.connections
        )
        # endregion

        # region Service Control
        service_control_policy = iam.Policy(
            self,
            "ServiceControlPolicy",
            statements=[
                iam.PolicyStatement(
                    sid="AllowAllOnServiceAndTask",
                    effect=iam.Effect.ALLOW,
                    actions=["ecs:*"],
                    resources=[
                        self.service.service_arn,
                        Arn.format(
                            ArnComponents(
                                service="ecs",
                                resource="task",
                                resource_name=f"{CLUSTER_NAME}/*",
                                arn_format=ArnFormat.SLASH_RESOURCE_NAME,
                            ),
                            self,
                        ),
                    ],
                ),
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["ec2:DescribeNetworkInterfaces"],
                    resources=["*"],
                ),
            ],
        )
        service_control_policy.attach_to_role(self.task_role)

        # The launcher lives in the domain stack, in another region
        launcher_role = iam.Role.from_role_arn(
            self, "LauncherRole", self.launcher_role_arn, mutable=True
        )
        service_control_policy.attach_to_role(launcher_role)
        orchestrator.declare_dependency(
            service_control_policy,
            launcher_role_reader,
            reason="The launcher role ARN is read from the domain stack",
        )

        CfnOutput(
            self,
            "ServiceNameOutput",
            value=self.service.service_name,
            description="ECS service that runs the Minecraft server",
        )
        CfnOutput(
            self,
            "ServerAddressOutput",
            value=f"{config.subdomain}:{edition.port}",
            description="Address players connect to",
        )
        # endregion

    def create_vpc(self) -> ec2.IVpc:
        """Create a public-only VPC, or reference the configured one.

        Returns
        -------
        ec2.IVpc
            The VPC for the cluster and file system.
        """
        if self.config.vpc_id:
            return ec2.Vpc.from_lookup(self, "Vpc", vpc_id=self.config.vpc_id)
        return ec2.Vpc(
            self,
            "Vpc",
            max_azs=3,
            nat_gateways=0,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                )
            ],
        )

    def create_log_driver(self, stream_prefix: str) -> Optional[ecs.LogDriver]:
        """Helper method to ship container logs to CloudWatch in debug mode.

        Parameters
        ----------
        stream_prefix : str
            Prefix of the container's log streams.

        Returns
        -------
        Optional[ecs.LogDriver]
            An awslogs driver when debugging, otherwise None.
        """
        if not self.config.debug:
            return None
        return ecs.LogDrivers.aws_logs(
            stream_prefix=stream_prefix,
            log_retention=logs.RetentionDays.THREE_DAYS,
        )
