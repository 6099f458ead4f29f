"""CLI entry point for pull-precheck.

Commands:
  run   run the precheck and review for one pull_request webhook event
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from precheck_cli.commands.run import run_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # PyGithub and urllib3 are chatty at DEBUG; keep them at WARNING.
    for noisy in ("github", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("pull-precheck"),
    prog_name="precheck",
)
@click.option(
    "--config",
    "config_path",
    default=".precheck.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRECHECK_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Automated pull request precheck and AI review."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(run_cmd)
