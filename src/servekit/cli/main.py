"""servekit command line entry point."""

import click

from servekit import __version__
from servekit.cli.commands.info import interfaces, memory
from servekit.cli.commands.serve import serve


@click.group()
@click.version_option(__version__, prog_name="servekit")
def main() -> None:
    """servekit - run a FastAPI server configured from one options object."""


main.add_command(serve)
main.add_command(interfaces)
main.add_command(memory)


if __name__ == "__main__":
    main()
