"""Batch runner — executes one endpoint once per CSV row, strictly in order."""

import logging
import math
import threading
from collections.abc import Iterator, Sequence

from pydantic import BaseModel

from api_easyportal.parser.base import EndpointDescriptor
from api_easyportal.runner.executor import ExecutionOutcome, RequestExecutor

logger = logging.getLogger(__name__)


class BatchResultRow(BaseModel):
    """One exported line: the input row plus its outcome."""

    row_index: int  # 1-based
    values: dict[str, str]
    status: int
    success: str  # PASS / FAIL
    response_preview: str  # full body, never truncated

    @classmethod
    def from_outcome(cls, row_index: int, values: dict[str, str], outcome: ExecutionOutcome) -> "BatchResultRow":
        return cls(
            row_index=row_index,
            values=dict(values),
            status=outcome.status,
            success="PASS" if outcome.success else "FAIL",
            response_preview=outcome.body_text(),
        )

    def to_record(self) -> dict[str, str | int]:
        return {
            "_rowIndex": self.row_index,
            **self.values,
            "_status": self.status,
            "_success": self.success,
            "_response": self.response_preview,
        }


class BatchProgress(BaseModel):
    """Snapshot published after each completed row."""

    row: BatchResultRow
    results: list[BatchResultRow]
    completed: int
    total: int

    @property
    def percent(self) -> int:
        # Half rounds up
        return math.floor(100 * self.completed / self.total + 0.5)


class BatchRunner:
    """Drives a RequestExecutor sequentially over many rows."""

    def __init__(self, executor: RequestExecutor):
        self.executor = executor

    def run(
        self,
        endpoint: EndpointDescriptor,
        rows: Sequence[dict[str, str]],
        cancel: threading.Event | None = None,
    ) -> Iterator[BatchProgress]:
        """Yield one BatchProgress per row, in input order.

        Row N+1 is dispatched only after row N has an outcome. A set `cancel`
        event stops the run before the next row is dispatched.
        """
        total = len(rows)
        results: list[BatchResultRow] = []
        logger.info("Batch started: %s %s, %d rows", endpoint.http_method, endpoint.path, total)

        for index, values in enumerate(rows, start=1):
            if cancel is not None and cancel.is_set():
                logger.info("Batch cancelled after %d of %d rows", len(results), total)
                return

            outcome = self.executor.execute(endpoint, values)
            row = BatchResultRow.from_outcome(index, values, outcome)
            results.append(row)
            yield BatchProgress(row=row, results=list(results), completed=index, total=total)

        logger.info(
            "Batch finished: %d passed, %d failed",
            sum(1 for r in results if r.success == "PASS"),
            sum(1 for r in results if r.success == "FAIL"),
        )

