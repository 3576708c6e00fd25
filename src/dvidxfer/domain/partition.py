"""Strip planning for block-structured volumes.

A volume is moved one Z block-layer at a time. When a full layer would
exceed the byte ceiling it is split along Y into equal bands of whole
block rows; X is never split. Strips come out ordered by ascending Z
layer, then ascending Y band.

All coordinates in a :class:`StripPlan` origin/size are voxels; ``by0``
and ``by1`` are the inclusive block rows the strip covers.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from dvidxfer.domain.metadata import Triple, VolumeGeometry

DEFAULT_AXIS_ORDER = "0_1_2"


@dataclass(frozen=True)
class StripPlan:
    """One axis-aligned box moved by a single read/write exchange."""

    z_layer: int
    band: int
    by0: int
    by1: int
    origin: Triple
    size: Triple

    @property
    def voxel_count(self) -> int:
        return self.size[0] * self.size[1] * self.size[2]

    def byte_size(self, bytes_per_voxel: int) -> int:
        return self.voxel_count * bytes_per_voxel

    def raw_path(self, axis_order: str = DEFAULT_AXIS_ORDER) -> str:
        """Path segment addressing this box on a ``/raw`` endpoint."""
        sx, sy, sz = self.size
        ox, oy, oz = self.origin
        return f"raw/{axis_order}/{sx}_{sy}_{sz}/{ox}_{oy}_{oz}"


@dataclass(frozen=True)
class PartitionPlan:
    """Ordered strips for a whole volume plus the numbers that produced them."""

    strips: tuple[StripPlan, ...]
    strips_per_layer: int
    band_width: int
    layer_bytes: int
    layer_count: int
    bytes_per_voxel: int
    warnings: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[StripPlan]:
        return iter(self.strips)

    def __len__(self) -> int:
        return len(self.strips)

    @property
    def total_bytes(self) -> int:
        return sum(s.byte_size(self.bytes_per_voxel) for s in self.strips)


def _bands(
    y0: int, y1: int, band_width: int, strips: int, *, cover_remainder: bool
) -> list[tuple[int, int]]:
    """Inclusive block-row ranges for one layer.

    With *cover_remainder* the bands continue until *y1* is reached;
    otherwise exactly *strips* bands are attempted, which can leave the
    trailing ``ny % strips`` rows uncovered.
    """
    bands: list[tuple[int, int]] = []
    by0 = y0
    while by0 <= y1 and (cover_remainder or len(bands) < strips):
        bands.append((by0, min(by0 + band_width - 1, y1)))
        by0 += band_width
    return bands


def _require_well_formed(geometry: VolumeGeometry) -> None:
    if not geometry.is_well_formed:
        msg = (
            f"malformed geometry: MinIndex {list(geometry.min_index)}, "
            f"MaxIndex {list(geometry.max_index)}, BlockSize {list(geometry.block_size)}"
        )
        raise ValueError(msg)


def plan_strips(
    geometry: VolumeGeometry,
    byte_ceiling: int,
    bytes_per_voxel: int,
    *,
    cover_remainder: bool = True,
) -> PartitionPlan:
    """Partition *geometry* into strips no larger than *byte_ceiling* where possible.

    Non-cubic X/Y blocks and single block rows that alone exceed the
    ceiling are reported as plan warnings, not errors.

    Raises:
        ValueError: Non-positive ceiling or voxel size, or geometry whose
            min index exceeds its max index.
    """
    if byte_ceiling <= 0:
        msg = f"byte ceiling must be positive, got {byte_ceiling}"
        raise ValueError(msg)
    if bytes_per_voxel <= 0:
        msg = f"bytes per voxel must be positive, got {bytes_per_voxel}"
        raise ValueError(msg)
    _require_well_formed(geometry)

    warnings: list[str] = []
    if not geometry.is_cubic:
        warnings.append(
            f"Non-cubic block size {list(geometry.block_size)}; X and Y strips use "
            "their own edge lengths"
        )

    bx, by, bz = geometry.block_size
    x0, y0, z0 = geometry.min_index
    _x1, y1, z1 = geometry.max_index
    nx, ny, _nz = geometry.grid_extent

    vx = nx * bx
    vy = ny * by
    vz = bz
    layer_bytes = vx * vy * vz * bytes_per_voxel

    strips = 1
    if layer_bytes > byte_ceiling:
        strips = layer_bytes // byte_ceiling + 1

    band_width = ny // strips
    if band_width == 0:
        band_width = 1
        row_bytes = vx * by * vz * bytes_per_voxel
        warnings.append(
            f"A single block row is {row_bytes} bytes, above the {byte_ceiling} byte "
            "ceiling; transferring one row per strip"
        )

    bands = _bands(y0, y1, band_width, strips, cover_remainder=cover_remainder)
    last_row = bands[-1][1]
    if last_row < y1:
        warnings.append(
            f"Block rows {last_row + 1}..{y1} are not covered by any strip "
            f"({ny} rows do not divide into {strips} strips)"
        )

    ox = x0 * bx
    planned: list[StripPlan] = []
    for z in range(z0, z1 + 1):
        oz = z * bz
        for n, (row0, row1) in enumerate(bands):
            planned.append(
                StripPlan(
                    z_layer=z,
                    band=n,
                    by0=row0,
                    by1=row1,
                    origin=(ox, row0 * by, oz),
                    size=(vx, (row1 - row0 + 1) * by, vz),
                )
            )

    return PartitionPlan(
        strips=tuple(planned),
        strips_per_layer=len(bands),
        band_width=band_width,
        layer_bytes=layer_bytes,
        layer_count=z1 - z0 + 1,
        bytes_per_voxel=bytes_per_voxel,
        warnings=tuple(warnings),
    )


def plan_whole_volume(geometry: VolumeGeometry, bytes_per_voxel: int) -> PartitionPlan:
    """Single strip spanning every block of *geometry*, all Z layers included."""
    _require_well_formed(geometry)

    bx, by, bz = geometry.block_size
    x0, y0, z0 = geometry.min_index
    _x1, y1, _z1 = geometry.max_index
    nx, ny, nz = geometry.grid_extent

    strip = StripPlan(
        z_layer=z0,
        band=0,
        by0=y0,
        by1=y1,
        origin=(x0 * bx, y0 * by, z0 * bz),
        size=(nx * bx, ny * by, nz * bz),
    )
    return PartitionPlan(
        strips=(strip,),
        strips_per_layer=1,
        band_width=ny,
        layer_bytes=strip.byte_size(bytes_per_voxel),
        layer_count=1,
        bytes_per_voxel=bytes_per_voxel,
    )
