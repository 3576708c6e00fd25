"""Click command class for the ``dvidxfer SRC DST`` entry point.

Adds an eager ``--examples`` flag and prints the usage text (exit 0)
when the command is not given exactly a source and a destination URL.
"""

from __future__ import annotations

from typing import Any

import click


class XferCommand(click.Command):
    """A transfer command taking exactly two URL arguments."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)

    def invoke(self, ctx: click.Context) -> Any:
        if len(ctx.params.get("urls", ())) != 2:
            click.echo(ctx.get_help())
            ctx.exit(0)
        return super().invoke(ctx)
