"""
In-Memory Response Store.

Holds snapshots of responses that have pending async jobs, so workers can
resolve the response named in a job descriptor. The orchestrator releases a
response once its last job finishes. Production deployments pass their own
IResponseStore backed by the response database.
"""

import threading
from typing import Dict, Optional

from ..spec.evaluation_models import LlmResponse


class InMemoryResponseStore:
    """Thread-safe response lookup by ID."""

    def __init__(self):
        self._responses: Dict[str, LlmResponse] = {}
        self._lock = threading.Lock()

    async def get_response(self, response_id: str) -> Optional[LlmResponse]:
        with self._lock:
            return self._responses.get(response_id)

    async def save_response(self, response: LlmResponse) -> None:
        with self._lock:
            self._responses[response.id] = response

    async def delete_response(self, response_id: str) -> bool:
        with self._lock:
            return self._responses.pop(response_id, None) is not None
