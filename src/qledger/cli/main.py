"""QLedger CLI main entry point."""

import click

from qledger import __version__
from qledger.cli.commands import fees_command, replay_command


@click.group()
@click.version_option(version=__version__)
def main():
    """QLedger - Portfolio Ledger & Position Calculation Engine"""
    pass


# Register commands
main.add_command(fees_command)
main.add_command(replay_command)


if __name__ == "__main__":
    main()
