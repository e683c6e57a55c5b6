"""CDK application code for the Minecraft on-demand domain and server stacks."""
