"""Locate the ``dvidxfer.toml`` that holds transfer defaults.

``DVIDXFER_CONFIG`` names the file outright. Otherwise the nearest
``dvidxfer.toml`` in the working directory or one of its parents is
used, so a project directory can pin its own byte ceiling and axis
order. ``--config`` skips this lookup.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "dvidxfer.toml"
CONFIG_ENV_VAR = "DVIDXFER_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies at *start* (default: cwd), if any.

    An env override that names a missing file yields None rather than
    falling through to the walk-up search.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        named = Path(override).expanduser()
        return named if named.is_file() else None

    here = (start or Path.cwd()).resolve()
    candidates = (d / CONFIG_FILENAME for d in (here, *here.parents))
    return next((c for c in candidates if c.is_file()), None)
