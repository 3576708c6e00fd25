"""Tests for /info descriptor decoding."""

from __future__ import annotations

import pytest

from dvidxfer.domain.metadata import (
    DatasetDescriptor,
    DescriptorError,
    OpaqueExtension,
    VolumeGeometry,
    decode_descriptor,
)
from tests.conftest import info_record


def _geometry(
    block: tuple[int, int, int] = (32, 32, 32),
    lo: tuple[int, int, int] = (0, 0, 0),
    hi: tuple[int, int, int] = (1, 1, 0),
) -> VolumeGeometry:
    return VolumeGeometry(block_size=block, min_index=lo, max_index=hi)


class TestDecodeDescriptor:
    def test_label_volume_with_geometry(self) -> None:
        record = info_record(
            "labels64", block_size=[32, 32, 32], min_index=[0, -2, 5], max_index=[10, 20, 30]
        )
        desc = decode_descriptor(record)
        assert desc.type_name == "labels64"
        assert desc.name == "labels"
        assert desc.repo_uuid == "3f8c21"
        assert desc.versioned is True
        assert desc.compression == "LZ4 compression, level -1"
        geometry = desc.geometry
        assert geometry is not None
        assert geometry.block_size == (32, 32, 32)
        assert geometry.min_index == (0, -2, 5)
        assert geometry.max_index == (10, 20, 30)

    def test_roi_extension_is_opaque(self) -> None:
        record = info_record("roi", extended={"BlockSize": [32, 32, 32], "Spans": [[1, 2, 3, 4]]})
        desc = decode_descriptor(record)
        assert isinstance(desc.extended, OpaqueExtension)
        assert desc.extended.payload["Spans"] == [[1, 2, 3, 4]]
        assert desc.geometry is None

    def test_volume_without_geometry_keys_is_opaque(self) -> None:
        desc = decode_descriptor(info_record("labelblk", extended={"Background": 0}))
        assert isinstance(desc.extended, OpaqueExtension)
        assert desc.geometry is None

    def test_missing_extended(self) -> None:
        desc = decode_descriptor(info_record("uint8blk"))
        assert desc.extended is None
        assert desc.geometry is None

    def test_extra_base_fields_ignored(self) -> None:
        record = info_record("roi")
        record["Base"]["Tags"] = {"a": "b"}
        assert decode_descriptor(record).type_name == "roi"

    def test_not_an_object(self) -> None:
        with pytest.raises(DescriptorError, match="expected a JSON object"):
            decode_descriptor([1, 2, 3])

    def test_missing_base(self) -> None:
        with pytest.raises(DescriptorError, match="missing 'Base'"):
            decode_descriptor({"Extended": {}})

    def test_missing_type_name(self) -> None:
        record = info_record("roi")
        del record["Base"]["TypeName"]
        with pytest.raises(DescriptorError, match="TypeName"):
            decode_descriptor(record)

    def test_malformed_geometry(self) -> None:
        record = info_record("labels64", block_size=[32, 32], min_index=[0, 0, 0])
        with pytest.raises(DescriptorError, match="invalid volume geometry"):
            decode_descriptor(record)

    def test_inverted_extents_are_decoded(self) -> None:
        """Min > max is left for the caller to reject."""
        record = info_record("labels64", block_size=[32, 32, 32], max_index=[-1, 0, 0])
        geometry = decode_descriptor(record).geometry
        assert geometry is not None
        assert geometry.is_well_formed is False

    def test_frozen(self) -> None:
        desc = decode_descriptor(info_record("roi"))
        with pytest.raises(Exception):
            desc.type_name = "labels64"  # type: ignore[misc]

    def test_dump_round_trip(self) -> None:
        desc = decode_descriptor(info_record("labels64", block_size=[8, 8, 8], max_index=[3, 3, 3]))
        again = DatasetDescriptor.model_validate(desc.model_dump())
        assert again == desc
        assert isinstance(again.extended, VolumeGeometry)


class TestVolumeGeometry:
    def test_grid_extent(self) -> None:
        assert _geometry(lo=(2, 3, 4), hi=(5, 3, 9)).grid_extent == (4, 1, 6)

    def test_cubic(self) -> None:
        assert _geometry().is_cubic is True
        assert _geometry(block=(32, 16, 32)).is_cubic is False

    def test_well_formed(self) -> None:
        assert _geometry().is_well_formed is True
        assert _geometry(lo=(0, 2, 0), hi=(1, 1, 0)).is_well_formed is False
        assert _geometry(block=(0, 32, 32)).is_well_formed is False

    def test_same_extents(self) -> None:
        assert _geometry().same_extents(_geometry())
        assert not _geometry().same_extents(_geometry(hi=(1, 1, 1)))
        assert not _geometry().same_extents(_geometry(block=(64, 64, 64)))
