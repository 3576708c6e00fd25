"""TransferDispatcher — resolve, check compatibility, pick a strategy, copy.

Pipeline::

    RESOLVE (source, destination) → ROUTE → PLAN → TRANSFER → VERIFY → RESPOND

Every failure becomes a failed ServiceResult; nothing below this layer
terminates the process. Compatibility is checked before any ``/raw`` or
``/roi`` request is made.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dvidxfer.domain.partition import PartitionPlan, plan_strips, plan_whole_volume
from dvidxfer.domain.types import Strategy, route_for
from dvidxfer.services.base import BaseService
from dvidxfer.services.resolve import MetadataResolver, ResolveError
from dvidxfer.services.result import ServiceResult
from dvidxfer.services.telemetry import trace_span, traced
from dvidxfer.services.transfer import StreamingTransferEngine, TransferError

if TYPE_CHECKING:
    from dvidxfer.config.models import TransferConfig
    from dvidxfer.domain.metadata import DatasetDescriptor, VolumeGeometry
    from dvidxfer.infrastructure.node import NodeClient

logger = logging.getLogger(__name__)

OP = "transfer"
ROI_ENDPOINT = "roi"


class TransferDispatcher(BaseService):
    """Copy one dataset between nodes using the strategy its type requires."""

    def __init__(self, client: NodeClient, config: TransferConfig) -> None:
        super().__init__(client, config)
        self._resolver = MetadataResolver(client)
        self._engine = StreamingTransferEngine(client, axis_order=config.axis_order)

    @traced
    def dispatch(
        self,
        source_url: str,
        dest_url: str,
        *,
        dry_run: bool = False,
        verify: bool = False,
    ) -> ServiceResult:
        """Transfer the dataset at *source_url* to *dest_url*.

        With *dry_run* the plan is computed and returned without touching
        any raw or ROI endpoint. With *verify* the destination descriptor is
        re-resolved after a volume copy and compared against the source; for
        ROI data it only adds a warning that nothing was checked.
        """
        source_url = source_url.rstrip("/")
        dest_url = dest_url.rstrip("/")

        # ── RESOLVE ───────────────────────────────────────────────
        try:
            source = self._resolver.resolve(source_url)
            dest = self._resolver.resolve(dest_url)
        except ResolveError as exc:
            return self._failure(OP, exc.code, exc.message, detail=exc.detail)

        # ── ROUTE ─────────────────────────────────────────────────
        route = route_for(source.type_name)
        if route is None:
            return self._failure(
                OP,
                "UNSUPPORTED_SOURCE",
                f"Cannot handle source data type {source.type_name}",
                detail={"source_type": source.type_name},
            )
        if dest.type_name != route.destination:
            return self._failure(
                OP,
                "INCOMPATIBLE_DESTINATION",
                f"Can't transfer {source.type_name} to {dest.type_name}, "
                f"need {route.destination} destination",
                detail={
                    "source_type": source.type_name,
                    "destination_type": dest.type_name,
                    "required_type": str(route.destination),
                },
            )

        data: dict[str, Any] = {
            "strategy": str(route.strategy),
            "source": source_url,
            "destination": dest_url,
            "source_type": source.type_name,
            "destination_type": dest.type_name,
            "dry_run": dry_run,
        }
        logger.debug("Strategy %s for %s -> %s", route.strategy, source.type_name, dest.type_name)

        if route.strategy is Strategy.ROI:
            return self._copy_roi(source_url, dest_url, data, dry_run=dry_run, verify=verify)
        return self._copy_volume(
            source, source_url, dest_url, data, route.strategy, dry_run=dry_run, verify=verify
        )

    # ------------------------------------------------------------------
    # Strategies (private)
    # ------------------------------------------------------------------

    def _copy_roi(
        self,
        source_url: str,
        dest_url: str,
        data: dict[str, Any],
        *,
        dry_run: bool,
        verify: bool,
    ) -> ServiceResult:
        warnings: list[str] = []
        if verify:
            # ROI records carry no block extents to compare.
            warnings.append("Verification skipped: roi data has no extents to compare")
            data = {**data, "verified": False}
        if dry_run:
            return ServiceResult(
                ok=True,
                op=OP,
                data={**data, "strips_transferred": 0, "bytes_transferred": 0},
                warnings=warnings,
            )
        try:
            summary = self._engine.copy_record(source_url, dest_url, ROI_ENDPOINT)
        except TransferError as exc:
            return self._transfer_failure(exc, data, warnings=warnings)
        return ServiceResult(
            ok=True,
            op=OP,
            data={
                **data,
                "strips_transferred": summary.strips_transferred,
                "bytes_transferred": summary.bytes_transferred,
            },
            warnings=warnings,
        )

    def _copy_volume(
        self,
        source: DatasetDescriptor,
        source_url: str,
        dest_url: str,
        data: dict[str, Any],
        strategy: Strategy,
        *,
        dry_run: bool,
        verify: bool,
    ) -> ServiceResult:
        warnings: list[str] = []
        geometry = source.geometry

        # ── PLAN ──────────────────────────────────────────────────
        if geometry is None or not geometry.is_well_formed:
            found = (
                geometry.model_dump(mode="json", by_alias=True, exclude={"kind"})
                if geometry is not None
                else None
            )
            return self._failure(
                OP,
                "MALFORMED_GEOMETRY",
                f"Source {source.type_name} descriptor has no usable volume geometry",
                detail={"url": source_url, "geometry": found},
            )
        if not geometry.is_cubic and self._config.strict_block_shape:
            return self._failure(
                OP,
                "NON_CUBIC_BLOCKS",
                f"Can't handle non-cubic block sizes: {list(geometry.block_size)}",
                detail={"block_size": list(geometry.block_size)},
            )

        logger.info("MinIndex: %s", list(geometry.min_index))
        logger.info("MaxIndex: %s", list(geometry.max_index))

        with trace_span("plan") as span:
            plan = self._plan(geometry, strategy)
            if span is not None:
                span.note = f"{len(plan)} strips planned"
        warnings.extend(plan.warnings)
        for warning in plan.warnings:
            logger.warning(warning)
        logger.info("Strips per layer: %d", plan.strips_per_layer)

        data = {
            **data,
            "block_size": list(geometry.block_size),
            "min_index": list(geometry.min_index),
            "max_index": list(geometry.max_index),
            "bytes_per_voxel": plan.bytes_per_voxel,
            "layers": plan.layer_count,
            "strips_per_layer": plan.strips_per_layer,
            "band_width": plan.band_width,
            "layer_bytes": plan.layer_bytes,
            "planned_strips": len(plan),
            "planned_bytes": plan.total_bytes,
        }

        if dry_run:
            data["strips"] = [s.raw_path(self._config.axis_order) for s in plan]
            data["strips_transferred"] = 0
            data["bytes_transferred"] = 0
            return ServiceResult(ok=True, op=OP, data=data, warnings=warnings)

        # ── TRANSFER ──────────────────────────────────────────────
        try:
            summary = self._engine.transfer_plan(source_url, dest_url, plan)
        except TransferError as exc:
            return self._transfer_failure(exc, data, total=len(plan), warnings=warnings)

        data["strips_transferred"] = summary.strips_transferred
        data["bytes_transferred"] = summary.bytes_transferred

        # ── VERIFY ────────────────────────────────────────────────
        if verify:
            warnings.extend(self._verify_extents(geometry, dest_url))
            data["verified"] = True

        return ServiceResult(ok=True, op=OP, data=data, warnings=warnings)

    def _plan(self, geometry: VolumeGeometry, strategy: Strategy) -> PartitionPlan:
        if strategy is Strategy.BLOB:
            return plan_whole_volume(geometry, self._config.blob_bytes_per_voxel)
        return plan_strips(
            geometry,
            self._config.byte_ceiling,
            self._config.label_bytes_per_voxel,
            cover_remainder=self._config.cover_remainder,
        )

    def _verify_extents(self, geometry: VolumeGeometry, dest_url: str) -> list[str]:
        """Re-resolve the destination and report extent mismatches as warnings."""
        try:
            dest = self._resolver.resolve(dest_url)
        except ResolveError as exc:
            return [f"Could not verify destination: {exc.message}"]

        dest_geometry = dest.geometry
        if dest_geometry is None:
            return ["Destination reports no volume geometry after transfer"]
        if not dest_geometry.same_extents(geometry):
            return [
                "Destination extents differ from source after transfer: "
                f"BlockSize {list(dest_geometry.block_size)}, "
                f"MinIndex {list(dest_geometry.min_index)}, "
                f"MaxIndex {list(dest_geometry.max_index)}"
            ]
        return []

    def _transfer_failure(
        self,
        exc: TransferError,
        data: dict[str, Any],
        *,
        total: int | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        verb = "Receive" if exc.operation == "read" else "Transmit"
        if exc.strip_index is not None and total is not None:
            message = f"{verb} failed on strip {exc.strip_index + 1} of {total}: {exc.cause}"
        else:
            message = f"{verb} failed: {exc.cause}"
        return self._failure(
            OP,
            "TRANSFER_FAILED",
            message,
            detail=exc.to_detail(),
            data={
                **data,
                "strips_transferred": exc.strips_completed,
                "bytes_transferred": exc.bytes_transferred,
            },
            warnings=warnings,
        )
