"""CLI command modules.

- environments: deploy, status, clean, plan and history across the
  registry's environments
"""

from .environments import clean, deploy, history, plan, status

__all__ = [
    "deploy",
    "status",
    "clean",
    "plan",
    "history",
]
