"""dvidxfer command line entry point."""

from __future__ import annotations

import click

from dvidxfer import __version__
from dvidxfer.commands._base import XferCommand
from dvidxfer.commands._context import AppContext
from dvidxfer.config.settings import XferSettings

_EXAMPLES = """\
  dvidxfer http://src:8000/api/node/3f8c/segmentation http://dst:8000/api/node/a91b/segmentation
  dvidxfer --dry-run http://src/api/node/3f8c/labels http://dst/api/node/a91b/labels
  dvidxfer --byte-ceiling 500000000 --verify SRC DST
  dvidxfer --json -q http://src/api/node/3f8c/mito-roi http://dst/api/node/a91b/mito-roi"""


@click.command(
    cls=XferCommand,
    examples=_EXAMPLES,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name="dvidxfer")
@click.argument("urls", nargs=-1, metavar="SRC DST")
@click.option("-v", "--verbose", is_flag=True, help="Run in verbose mode.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--byte-ceiling",
    type=click.IntRange(min=1),
    default=None,
    help="Largest payload moved by one request (default 2000000000).",
)
@click.option("--dry-run", is_flag=True, help="Resolve and plan, but transfer nothing.")
@click.option(
    "--verify",
    is_flag=True,
    help="Re-check destination extents after a volume copy (roi data is not checked).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    urls: tuple[str, ...],
    verbose: bool,
    quiet: bool,
    json_output: bool,
    log_json: bool,
    config_path: str | None,
    byte_ceiling: int | None,
    dry_run: bool,
    verify: bool,
) -> None:
    """Move data from one DVID server to another using HTTP API calls.

    SRC and DST are data URLs of the form http://host/api/node/<uuid>/<dataname>.
    The destination UUID must already exist; a missing destination data
    name is created by the server on first write.
    """
    settings = XferSettings.from_cli(
        config_path=config_path,
        byte_ceiling=byte_ceiling,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.call_on_close(app.close)

    from dvidxfer.services.dispatch import TransferDispatcher

    source_url, dest_url = urls
    dispatcher = TransferDispatcher(app.client, settings.transfer)
    app.emit(dispatcher.dispatch(source_url, dest_url, dry_run=dry_run, verify=verify))
