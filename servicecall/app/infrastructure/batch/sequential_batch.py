"""Batch container that dispatches queued requests one after another on ``execute``.

No multipart batch encoding: each queued request goes out as its own call.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from servicecall.app.core import SERVICE_NAME
from servicecall.app.domain.models import is_no_content
from servicecall.app.ports.batch import BatchCallback, BatchContainer
from servicecall.app.ports.transport import TransportRequest


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


@dataclass(frozen=True)
class QueuedRequest:
    request: TransportRequest
    result_type: Any
    error_type: Any
    callback: BatchCallback


class SequentialBatch(BatchContainer):
    def __init__(self) -> None:
        self._queued: list[QueuedRequest] = []

    def __len__(self) -> int:
        return len(self._queued)

    @property
    def requests(self) -> list[QueuedRequest]:
        return list(self._queued)

    def queue(
        self,
        request: TransportRequest,
        result_type: Any,
        error_type: Any,
        callback: BatchCallback,
    ) -> None:
        self._queued.append(QueuedRequest(request, result_type, error_type, callback))

    async def execute(self) -> None:
        """Send every queued request in order, then empty the queue.

        Transport failures propagate and leave the remaining requests queued.
        """
        _log("batch_started", size=len(self._queued))
        while self._queued:
            entry = self._queued[0]
            entry.request.throw_exception_on_execute_error = False
            response = await entry.request.execute()
            self._queued.pop(0)
            headers = response.headers.copy()
            if response.is_success_status_code():
                result = None
                if is_no_content(entry.result_type):
                    await response.ignore()
                else:
                    result = await response.parse_as(entry.result_type)
                await entry.callback.on_success(result, headers)
            else:
                error = None
                if is_no_content(entry.error_type) or entry.error_type is None:
                    await response.ignore()
                else:
                    error = await response.parse_as(entry.error_type)
                await entry.callback.on_failure(error, headers)
        _log("batch_completed")
