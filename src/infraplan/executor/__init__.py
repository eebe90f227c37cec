"""Executor boundary: apply a provisioning plan through a provider."""

from infraplan.core.errors import ApplyError, FatalApplyError, RetryableApplyError
from infraplan.executor.provider import DryRunProvider, Provider
from infraplan.executor.runner import ExecutionReport, Executor, RetryPolicy

__all__ = [
    "ApplyError",
    "DryRunProvider",
    "ExecutionReport",
    "Executor",
    "FatalApplyError",
    "Provider",
    "RetryPolicy",
    "RetryableApplyError",
]
