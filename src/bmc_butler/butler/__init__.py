"""Dispatch and apply engine.

Usage:
    from bmc_butler.butler import Action, Pipeline

    pipeline = Pipeline(config, Action("execute", command="powercycle"), session, configurator)
    result = await pipeline.run()
"""
from .configure import ConfigurationApplier
from .dispatcher import Action, Butler
from .execute import COMMANDS, CommandExecutor
from .pipeline import Pipeline, RunResult

__all__ = [
    "Action",
    "Butler",
    "COMMANDS",
    "CommandExecutor",
    "ConfigurationApplier",
    "Pipeline",
    "RunResult",
]
