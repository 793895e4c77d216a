"""
Evaluation Store Factory.

Creates evaluation stores by type and provides singleton access to the
store used by the application.
"""

import threading
from typing import Optional

from ..config.settings import get_settings
from ..enum import StoreType
from .base_evaluation_store import BaseEvaluationStore
from .dynamo_store import DynamoDBEvaluationStore
from .memory_store import InMemoryEvaluationStore


def create_evaluation_store(
    store_type: str = StoreType.MEMORY.value,
    **kwargs,
) -> BaseEvaluationStore:
    """
    Create an evaluation store instance.

    Args:
        store_type: "memory" or "dynamodb"
        **kwargs: Store-specific arguments

    Returns:
        Configured evaluation store
    """
    store_type = StoreType(store_type)
    if store_type == StoreType.DYNAMODB:
        return DynamoDBEvaluationStore(**kwargs)
    return InMemoryEvaluationStore()


# =============================================================================
# Singleton Instance
# =============================================================================

_instance: Optional[BaseEvaluationStore] = None
_lock = threading.Lock()


def get_evaluation_store() -> BaseEvaluationStore:
    """
    Get the global evaluation store (singleton).

    The backend is chosen from settings on first call.
    """
    global _instance

    if _instance is None:
        with _lock:
            if _instance is None:
                store_settings = get_settings().store
                if store_settings.store_type == StoreType.DYNAMODB:
                    _instance = create_evaluation_store(
                        StoreType.DYNAMODB.value,
                        table_name=store_settings.table_name,
                        region_name=store_settings.region_name,
                        endpoint_url=store_settings.endpoint_url,
                        max_cached_responses=store_settings.max_cached_responses,
                    )
                else:
                    _instance = create_evaluation_store(StoreType.MEMORY.value)

    return _instance


def configure_evaluation_store(store: BaseEvaluationStore) -> None:
    """Replace the global evaluation store."""
    global _instance

    with _lock:
        _instance = store


def reset_evaluation_store() -> None:
    """Reset the evaluation store (for testing)."""
    global _instance

    with _lock:
        _instance = None
