# hookwarden/cli/commands: Command modules for the hookwarden CLI.
#
# Each module in this package provides one or more CLI commands.

from .config_cmd import validate_config
from .hooks import (
    commit_msg,
    post_checkout,
    post_commit,
    post_merge,
    pre_commit,
    pre_push,
    pre_rebase,
    pre_receive,
)
from .state_cmd import state_app
from .status import audit, circuit, metrics

__all__ = [
    # hooks.py
    "pre_commit",
    "commit_msg",
    "pre_push",
    "post_commit",
    "post_merge",
    "pre_rebase",
    "post_checkout",
    "pre_receive",
    # status.py
    "metrics",
    "audit",
    "circuit",
    # config_cmd.py
    "validate_config",
    # state_cmd.py
    "state_app",
]
