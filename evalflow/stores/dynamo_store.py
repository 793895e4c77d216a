"""
DynamoDB Evaluation Store.

Production evaluation storage using DynamoDB with:
- Conditional writes enforcing one evaluation per (response, evaluator)
  across every worker process
- In-memory index for fast repeated reads

Version: 1.0.0
"""

import asyncio
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..constants import DEFAULT_MAX_CACHED_RESPONSES, DEFAULT_REGION, DEFAULT_TABLE_NAME
from ..exceptions import EvaluationStoreError
from ..spec.evaluation_models import Evaluation
from .base_evaluation_store import BaseEvaluationStore


CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoDBEvaluationStore(BaseEvaluationStore):
    """
    DynamoDB-based evaluation store.

    DynamoDB Table Schema:
    - Partition Key: response_id (String)
    - Sort Key: evaluator_id (String)
    - Attributes: every other Evaluation field

    The insert uses ConditionExpression attribute_not_exists(evaluator_id),
    so a redelivered job that races the original write is refused by the
    table itself. A miss or a listing re-queries the table, so evaluations
    written by other processes are seen; the index keeps at most
    max_cached_responses responses.

    Usage:
        store = DynamoDBEvaluationStore(table_name="evalflow_evaluations")

        # DynamoDB Local
        store = DynamoDBEvaluationStore(endpoint_url="http://localhost:8000")
    """

    refresh_on_miss = True

    def __init__(
        self,
        table_name: str = DEFAULT_TABLE_NAME,
        region_name: str = DEFAULT_REGION,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        table: Any = None,
        max_cached_responses: Optional[int] = DEFAULT_MAX_CACHED_RESPONSES,
    ):
        """
        Initialize DynamoDB evaluation store.

        Args:
            table_name: DynamoDB table name
            region_name: AWS region
            aws_access_key_id: Optional AWS key
            aws_secret_access_key: Optional AWS secret
            endpoint_url: Optional endpoint for local DynamoDB
            table: Pre-built boto3 Table resource (skips client creation)
            max_cached_responses: Responses kept in the in-memory index (None for no limit)
        """
        super().__init__()
        self.max_cached_responses = max_cached_responses

        self._table_name = table_name
        self._region_name = region_name
        self._endpoint_url = endpoint_url

        # AWS credentials
        self._aws_access_key_id = aws_access_key_id
        self._aws_secret_access_key = aws_secret_access_key

        # DynamoDB table (lazy init)
        self._table = table

    def _ensure_table(self) -> Any:
        """Ensure the DynamoDB table resource is initialized."""
        if self._table is not None:
            return self._table

        import boto3
        from botocore.config import Config

        config = Config(
            retries={'max_attempts': 3, 'mode': 'adaptive'},
            connect_timeout=5,
            read_timeout=10,
        )

        session_kwargs = {}
        if self._aws_access_key_id and self._aws_secret_access_key:
            session_kwargs['aws_access_key_id'] = self._aws_access_key_id
            session_kwargs['aws_secret_access_key'] = self._aws_secret_access_key

        session = boto3.Session(**session_kwargs)

        dynamodb_kwargs = {
            'region_name': self._region_name,
            'config': config,
        }
        if self._endpoint_url:
            dynamodb_kwargs['endpoint_url'] = self._endpoint_url

        dynamodb = session.resource('dynamodb', **dynamodb_kwargs)
        self._table = dynamodb.Table(self._table_name)
        return self._table

    # =========================================================================
    # Item conversion
    # =========================================================================

    @staticmethod
    def _to_item(evaluation: Evaluation) -> Dict[str, Any]:
        # DynamoDB numbers must be Decimal
        return json.loads(evaluation.model_dump_json(), parse_float=Decimal)

    @staticmethod
    def _from_item(item: Dict[str, Any]) -> Evaluation:
        return Evaluation.model_validate_json(json.dumps(item, default=_decimal_default))

    # =========================================================================
    # Persistence hooks
    # =========================================================================

    async def _persist_evaluation(self, evaluation: Evaluation) -> bool:
        from botocore.exceptions import ClientError

        table = self._ensure_table()
        item = self._to_item(evaluation)

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: table.put_item(
                    Item=item,
                    ConditionExpression='attribute_not_exists(evaluator_id)',
                )
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == CONDITIONAL_CHECK_FAILED:
                return False
            raise EvaluationStoreError(
                f"Failed to persist evaluation {evaluation.id}: {e}",
                details={
                    "response_id": evaluation.response_id,
                    "evaluator_id": evaluation.evaluator_id,
                },
            ) from e

        return True

    async def _load_evaluations(self, response_id: str) -> List[Evaluation]:
        from botocore.exceptions import ClientError

        table = self._ensure_table()
        loop = asyncio.get_event_loop()

        items: List[Dict[str, Any]] = []
        query_kwargs: Dict[str, Any] = {
            'KeyConditionExpression': 'response_id = :rid',
            'ExpressionAttributeValues': {':rid': response_id},
        }
        try:
            while True:
                response = await loop.run_in_executor(
                    None,
                    lambda kwargs=dict(query_kwargs): table.query(**kwargs)
                )
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                query_kwargs['ExclusiveStartKey'] = last_key
        except ClientError as e:
            raise EvaluationStoreError(
                f"Failed to load evaluations for response {response_id}: {e}",
                details={"response_id": response_id},
            ) from e

        return [self._from_item(item) for item in items]

    async def _delete_persisted(self, response_id: str) -> None:
        from botocore.exceptions import ClientError

        table = self._ensure_table()
        evaluations = await self._load_evaluations(response_id)

        loop = asyncio.get_event_loop()
        try:
            for evaluation in evaluations:
                await loop.run_in_executor(
                    None,
                    lambda eid=evaluation.evaluator_id: table.delete_item(
                        Key={'response_id': response_id, 'evaluator_id': eid}
                    )
                )
        except ClientError as e:
            raise EvaluationStoreError(
                f"Failed to delete evaluations for response {response_id}: {e}",
                details={"response_id": response_id},
            ) from e

    async def _clear_persisted(self) -> None:
        # Table contents are owned by the deployment; clear() only drops the index
        pass


def _decimal_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
