"""Commands __init__ - exports all commands."""

from qledger.cli.commands.fees import fees_command
from qledger.cli.commands.replay import replay_command

__all__ = ["fees_command", "replay_command"]
