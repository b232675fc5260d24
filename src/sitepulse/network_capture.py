"""
Per-page request/response correlation.

Each outgoing API request becomes a provisional ApiCallRecord in the
``observed`` state, keyed by ``(url, method)``. A response resolves the most
recent unresolved record with the same key. Without a browser-assigned
request id, concurrent identical calls can be misattributed; that is
accepted.
"""

import logging
import random
import uuid
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from sitepulse.classifier import ApiClassifier, default_classifier
from sitepulse.models import ApiCallRecord
from sitepulse.navigator import RequestEvent, ResponseEvent, now_ms
from sitepulse.timing import estimate_duration, timing_method

logger = logging.getLogger(__name__)


class CallState(str, Enum):
    OBSERVED = "observed"
    RESOLVED = "resolved"


def generate_call_id() -> str:
    return uuid.uuid4().hex[:12]


class PendingRequestTable:
    """Tracks API calls for one page from request to response."""

    def __init__(
        self,
        page_url: str,
        depth: int,
        classifier: Optional[ApiClassifier] = None,
        clock: Callable[[], float] = now_ms,
        rng: Optional[random.Random] = None,
    ):
        self.page_url = page_url
        self.depth = depth
        self.classifier = classifier or default_classifier
        self._clock = clock
        self._rng = rng
        self._records: List[ApiCallRecord] = []
        self._states: Dict[str, CallState] = {}
        self._pending: Dict[Tuple[str, str], List[ApiCallRecord]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def state_of(self, record_id: str) -> Optional[CallState]:
        return self._states.get(record_id)

    @property
    def unresolved_count(self) -> int:
        return sum(len(records) for records in self._pending.values())

    def observe(self, event: RequestEvent) -> Optional[ApiCallRecord]:
        """Record a provisional call if the request is an API call."""
        if not self.classifier.is_api_call(event.url, event.resource_type):
            return None

        record = ApiCallRecord(
            id=generate_call_id(),
            url=event.url,
            method=event.method.upper(),
            resource_type=event.resource_type,
            start_time=event.timestamp,
            page=self.page_url,
            depth=self.depth,
            request_headers=dict(event.headers),
            post_data=event.post_data,
        )
        self._records.append(record)
        self._states[record.id] = CallState.OBSERVED
        self._pending.setdefault((record.url, record.method), []).append(record)
        logger.debug(f"Observed API call {record.method} {record.url}")
        return record

    def resolve(self, event: ResponseEvent) -> Optional[ApiCallRecord]:
        """Attach a response to the most recent unresolved call with the same url and method."""
        key = (event.url, event.method.upper())
        candidates = self._pending.get(key)
        if not candidates:
            return None

        record = candidates.pop()
        if not candidates:
            del self._pending[key]

        headers = dict(event.headers)
        record.end_time = event.timestamp if event.timestamp is not None else self._clock()
        record.status = event.status
        record.status_text = event.status_text
        record.response_headers = headers
        record.payload_size_bytes = self._payload_size(event, headers)
        self._states[record.id] = CallState.RESOLVED
        return record

    @staticmethod
    def _payload_size(event: ResponseEvent, headers: Dict[str, str]) -> int:
        if event.body_size is not None:
            return event.body_size
        content_length = headers.get("content-length", "")
        return int(content_length) if content_length.isdigit() else 0

    def records(self) -> List[ApiCallRecord]:
        """Finalize timing and return calls in observation order."""
        for record in self._records:
            raw = {
                "startTime": record.start_time,
                "endTime": record.end_time,
                "transferSize": record.payload_size_bytes,
            }
            timing = estimate_duration(raw, rng=self._rng)
            record.timing = timing
            record.duration_ms = timing.ms
            logger.debug(f"API call {record.method} {record.endpoint}: {timing.ms}ms (method used: {timing_method(raw)})")
        return list(self._records)
