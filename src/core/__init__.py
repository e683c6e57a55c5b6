"""Shared AWS wrappers and utilities for the Minecraft on-demand Lambdas."""
