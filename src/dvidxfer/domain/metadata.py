"""Dataset descriptors decoded from a node's ``/info`` record.

DVID answers ``GET <data-url>/info`` with::

    {"Base": {"TypeName": "labels64", "Name": "segmentation", ...},
     "Extended": {"BlockSize": [32, 32, 32], "MinIndex": [...], "MaxIndex": [...]}}

The ``Extended`` payload is type-specific. It is decoded into a closed set
of shapes keyed by the resolved type name: :class:`VolumeGeometry` for
block-structured volumes, :class:`OpaqueExtension` for everything else.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, ValidationError

from dvidxfer.domain.types import VOLUME_TYPES

Triple = tuple[int, int, int]

_GEOMETRY_KEYS = ("BlockSize", "MinIndex", "MaxIndex")


class DescriptorError(ValueError):
    """Raised when an ``/info`` record cannot be decoded."""


class VolumeGeometry(BaseModel):
    """Block-grid extents of a label or grayscale volume.

    ``min_index`` and ``max_index`` are inclusive block coordinates.
    Well-formedness is not checked on decode; see :attr:`is_well_formed`.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    kind: Literal["volume"] = "volume"
    block_size: Triple = Field(alias="BlockSize")
    min_index: Triple = Field(alias="MinIndex")
    max_index: Triple = Field(alias="MaxIndex")

    @property
    def grid_extent(self) -> Triple:
        """Number of blocks along each axis."""
        return (
            self.max_index[0] - self.min_index[0] + 1,
            self.max_index[1] - self.min_index[1] + 1,
            self.max_index[2] - self.min_index[2] + 1,
        )

    @property
    def is_cubic(self) -> bool:
        """True when X and Y block edges match."""
        return self.block_size[0] == self.block_size[1]

    @property
    def is_well_formed(self) -> bool:
        return all(b > 0 for b in self.block_size) and all(
            lo <= hi for lo, hi in zip(self.min_index, self.max_index, strict=True)
        )

    def same_extents(self, other: VolumeGeometry) -> bool:
        return (
            self.block_size == other.block_size
            and self.min_index == other.min_index
            and self.max_index == other.max_index
        )


class OpaqueExtension(BaseModel):
    """Extension payload for types dvidxfer never looks inside."""

    model_config = {"frozen": True}

    kind: Literal["opaque"] = "opaque"
    payload: Any = None


Extension = Annotated[VolumeGeometry | OpaqueExtension, Field(discriminator="kind")]


class DatasetDescriptor(BaseModel):
    """Identity and typing of one dataset instance on a node.

    Compression, checksum and persistence tags are passed through as-is.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    type_name: str = Field(alias="TypeName", min_length=1)
    type_url: str = Field(default="", alias="TypeURL")
    type_version: str = Field(default="", alias="TypeVersion")
    name: str = Field(default="", alias="Name")
    repo_uuid: str = Field(default="", alias="RepoUUID")
    compression: str = Field(default="", alias="Compression")
    checksum: str = Field(default="", alias="Checksum")
    persistence: str = Field(default="", alias="Persistence")
    versioned: bool = Field(default=False, alias="Versioned")
    extended: Extension | None = None

    @property
    def geometry(self) -> VolumeGeometry | None:
        if isinstance(self.extended, VolumeGeometry):
            return self.extended
        return None


def _decode_extension(type_name: str, extended: Any) -> VolumeGeometry | OpaqueExtension | None:
    if extended is None:
        return None
    if (
        type_name in VOLUME_TYPES
        and isinstance(extended, dict)
        and any(key in extended for key in _GEOMETRY_KEYS)
    ):
        try:
            return VolumeGeometry.model_validate(extended)
        except ValidationError as exc:
            msg = f"invalid volume geometry for {type_name}: {_summarize(exc)}"
            raise DescriptorError(msg) from exc
    return OpaqueExtension(payload=extended)


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def decode_descriptor(record: Any) -> DatasetDescriptor:
    """Decode a parsed ``/info`` JSON document into a DatasetDescriptor.

    Raises:
        DescriptorError: The record is not an object, lacks ``Base``,
            or carries a malformed ``Base`` or geometry payload.
    """
    if not isinstance(record, dict):
        msg = f"expected a JSON object, got {type(record).__name__}"
        raise DescriptorError(msg)
    base = record.get("Base")
    if not isinstance(base, dict):
        msg = "missing 'Base' record"
        raise DescriptorError(msg)

    try:
        descriptor = DatasetDescriptor.model_validate(base)
    except ValidationError as exc:
        msg = f"invalid 'Base' record: {_summarize(exc)}"
        raise DescriptorError(msg) from exc

    extension = _decode_extension(descriptor.type_name, record.get("Extended"))
    return descriptor.model_copy(update={"extended": extension})
