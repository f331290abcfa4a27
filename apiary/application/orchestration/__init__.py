"""
Application Orchestration Package

Architectural Intent:
- Contains the bounded-parallelism deployment executor
"""

from apiary.application.orchestration.deployment_executor import DeploymentExecutor

__all__ = ["DeploymentExecutor"]
