#!/usr/bin/env python3
# Third Party
import aws_cdk as cdk

# Local Modules
from cdk.config import resolve_config
from cdk.constants import DOMAIN_STACK_REGION
from cdk.orchestration import StackDependencyOrchestrator
from cdk.stacks import DomainStack, MinecraftServerStack

# Initialize the CDK application
app = cdk.App()

# Resolve options from the "minecraft" context key and the environment
config = resolve_config(app)
orchestrator = StackDependencyOrchestrator()

# The domain stack has to live in us-east-1 for Route 53 query logging
domain_stack = DomainStack(
    app,
    "minecraft-domain-stack",
    config=config,
    orchestrator=orchestrator,
    env=cdk.Environment(account=config.account, region=DOMAIN_STACK_REGION),
)

server_stack = MinecraftServerStack(
    app,
    "minecraft-server-stack",
    config=config,
    orchestrator=orchestrator,
    env=cdk.Environment(account=config.account, region=config.server_region),
)

# The server stack reads the domain stack's parameters at deploy time
orchestrator.declare_stack_dependency(
    server_stack,
    domain_stack,
    reason="Reads the hosted zone ID and launcher role ARN from us-east-1",
)

# Synthesize the app
app.synth()
