from __future__ import annotations

from typing import TYPE_CHECKING, Any

from qdrant_client import models
from qdrant_client.http.exceptions import UnexpectedResponse

from tagger.core.errors import VectorDatabaseError
from tagger.core.models.tag import ScoredPayload
from tagger.core.repositories.vector_index import VectorIndex
from tagger.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from qdrant_client import AsyncQdrantClient

    from tagger.core.models.tag import VocabularyPoint


# REST answers 409, gRPC answers ALREADY_EXISTS (status code 6)
_HTTP_CONFLICT = 409
_GRPC_ALREADY_EXISTS = "ALREADY_EXISTS"


class QdrantVectorIndex(VectorIndex):
    """Qdrant implementation of the VectorIndex.

    Points use the tag id as point id and a `{name, category}` payload. Vectors are
    unnamed and compared with cosine distance.
    """

    def __init__(self, client: AsyncQdrantClient, collection_name: str) -> None:
        self._client = client
        self._collection_name = collection_name

    async def ensure_collection(self, name: str, dimensionality: int) -> None:
        if name != self._collection_name:
            raise ValueError(
                f"Index is bound to collection '{self._collection_name}', cannot ensure '{name}'"
            )

        exists = await self._call(
            self._client.collection_exists(collection_name=name),
            f"Failed to check collection '{name}'",
        )
        if exists:
            await self._confirm_configuration(name, dimensionality)
            logger.info("Using collection '%s'", name)
            return

        try:
            await self._client.create_collection(
                collection_name=name,
                vectors_config=models.VectorParams(
                    size=dimensionality,
                    distance=models.Distance.COSINE,
                ),
            )
        except Exception as err:
            if not self._is_already_exists(err):
                logger.error("Failed to create collection '%s': %s", name, err)
                raise VectorDatabaseError(f"Failed to create collection '{name}': {err}") from err
            # Another process created it between the existence check and now
            await self._confirm_configuration(name, dimensionality)
            logger.info("Using collection '%s'", name)
            return

        logger.info("Collection '%s' created successfully (%d-dim)", name, dimensionality)

    async def upsert(self, points: Sequence[VocabularyPoint]) -> None:
        structs = [
            models.PointStruct(id=p.id, vector=p.vector, payload=p.payload.model_dump())
            for p in points
        ]
        await self._call(
            self._client.upsert(
                collection_name=self._collection_name,
                points=structs,
                wait=True,
            ),
            f"Failed to upsert {len(structs)} points",
        )

    async def search_nearest(
        self,
        vector: Sequence[float],
        *,
        k: int,
        score_threshold: float,
        with_payload: bool = True,
        categories: Sequence[int] | None = None,
    ) -> list[ScoredPayload]:
        query_filter = None
        if categories:
            query_filter = models.Filter(
                must=[
                    models.FieldCondition(
                        key="category",
                        match=models.MatchAny(any=list(categories)),
                    )
                ]
            )

        response = await self._call(
            self._client.query_points(
                collection_name=self._collection_name,
                query=list(vector),
                limit=k,
                score_threshold=score_threshold,
                with_payload=with_payload,
                with_vectors=False,
                query_filter=query_filter,
            ),
            "Failed to search points",
        )
        return [
            ScoredPayload(payload=dict(point.payload or {}), score=point.score)
            for point in response.points
        ]

    async def ping(self) -> None:
        await self._call(self._client.get_collections(), "Vector database unreachable")

    async def _confirm_configuration(self, name: str, dimensionality: int) -> None:
        info = await self._call(
            self._client.get_collection(collection_name=name),
            f"Failed to read collection '{name}'",
        )
        vectors = info.config.params.vectors
        if not isinstance(vectors, models.VectorParams):
            raise VectorDatabaseError(
                f"Collection '{name}' uses named vectors; a single unnamed vector is required. "
                "Drop & recreate the collection."
            )
        if vectors.size != dimensionality:
            raise VectorDatabaseError(
                f"Collection '{name}' dimension mismatch: collection={vectors.size}, "
                f"model={dimensionality}. Drop & recreate the collection."
            )
        # Score thresholds are cosine similarities
        if vectors.distance != models.Distance.COSINE:
            raise VectorDatabaseError(
                f"Collection '{name}' distance mismatch: collection={vectors.distance}, "
                f"expected={models.Distance.COSINE}. Drop & recreate the collection."
            )

    @staticmethod
    async def _call(awaitable: Awaitable[Any], context: str) -> Any:
        try:
            return await awaitable
        except Exception as err:
            logger.error("%s: %s", context, err)
            raise VectorDatabaseError(f"{context}: {err}") from err

    @staticmethod
    def _is_already_exists(err: Exception) -> bool:
        if isinstance(err, UnexpectedResponse):
            return err.status_code == _HTTP_CONFLICT
        code = getattr(err, "code", None)
        if callable(code):
            return getattr(code(), "name", None) == _GRPC_ALREADY_EXISTS
        return False
