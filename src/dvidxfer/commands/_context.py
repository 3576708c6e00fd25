"""AppContext — shared state for one CLI invocation.

Configures logging and telemetry from settings, owns the lazily created
NodeClient, and centralizes result emission (stdout/stderr routing and
exit codes). It is the only place that terminates the process on error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dvidxfer.output.formatters import OutputSettings, format_result
from dvidxfer.output.renderers import render_warnings

if TYPE_CHECKING:
    from dvidxfer.config.settings import XferSettings
    from dvidxfer.infrastructure.node import NodeClient
    from dvidxfer.services.result import ServiceResult


class AppContext:
    """Per-invocation context.

    The node client is created on first use so ``--help`` and
    ``--version`` never open a connection pool.
    """

    def __init__(self, settings: XferSettings) -> None:
        self.settings = settings
        self._client: NodeClient | None = None

        from dvidxfer.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            quiet=settings.quiet,
            log_json=settings.log_json,
        )

        if settings.verbose:
            from dvidxfer.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def client(self) -> NodeClient:
        """The HTTP client (created lazily on first access)."""
        if self._client is None:
            from dvidxfer.infrastructure.node import NodeClient

            self._client = NodeClient(
                timeout=self.settings.http.timeout,
                user_agent=self.settings.http.user_agent,
                chunk_size=self.settings.transfer.chunk_size,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if result.warnings and not settings.json_output:
                click.echo(render_warnings(result.warnings), err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
