"""Datatype names, transfer strategies, and the compatibility table.

A source datatype selects exactly one strategy and exactly one acceptable
destination datatype. Anything outside this table cannot be transferred.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TypeName(StrEnum):
    """DVID datatype names understood by dvidxfer."""

    GRAYSCALE8 = "grayscale8"
    UINT8BLK = "uint8blk"
    LABELS64 = "labels64"
    LABELBLK = "labelblk"
    ROI = "roi"


class Strategy(StrEnum):
    """How a dataset is moved between nodes."""

    BLOB = "blob"
    VOLUME = "volume"
    ROI = "roi"


# Datatypes whose /info record carries BlockSize/MinIndex/MaxIndex.
VOLUME_TYPES = frozenset(
    {TypeName.GRAYSCALE8, TypeName.UINT8BLK, TypeName.LABELS64, TypeName.LABELBLK}
)


@dataclass(frozen=True)
class Route:
    """One row of the compatibility table."""

    destination: TypeName
    strategy: Strategy


ROUTES: dict[str, Route] = {
    TypeName.GRAYSCALE8: Route(TypeName.UINT8BLK, Strategy.BLOB),
    TypeName.UINT8BLK: Route(TypeName.UINT8BLK, Strategy.BLOB),
    TypeName.LABELS64: Route(TypeName.LABELBLK, Strategy.VOLUME),
    TypeName.ROI: Route(TypeName.ROI, Strategy.ROI),
}


def route_for(source_type: str) -> Route | None:
    """Return the route for *source_type*, or None if it is unsupported."""
    return ROUTES.get(source_type)
