"""
Forge - convergence execution and mail alias aggregation.
"""

from .aggregator import MailAliasAggregator, ROOT_ALIAS, flatten_recipients
from .executor import ConvergenceExecutor

__all__ = [
    "ConvergenceExecutor",
    "MailAliasAggregator",
    "ROOT_ALIAS",
    "flatten_recipients",
]
