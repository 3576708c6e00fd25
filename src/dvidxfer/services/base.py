"""BaseService — shared foundation for dvidxfer services.

Every service receives a :class:`NodeClient` and the ``[transfer]``
configuration at construction time. Services never exit the process;
they report failure through ServiceResult.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dvidxfer.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from dvidxfer.config.models import TransferConfig
    from dvidxfer.infrastructure.node import NodeClient


class BaseService:
    """Abstract base for service-layer classes.

    Usage::

        class TransferDispatcher(BaseService):
            def dispatch(self, source_url: str, dest_url: str) -> ServiceResult:
                ...
    """

    def __init__(self, client: NodeClient, config: TransferConfig) -> None:
        self._client = client
        self._config = config

    @staticmethod
    def _failure(
        op: str,
        code: str,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail or {}),
        )
