"""Repository for append-only stage assessments."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from paper_review.database.models import Assessment, as_utc, utc_now
from paper_review.repositories.base_repository import BaseRepository
from paper_review.schemas.artifacts import AssessmentFilter
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AssessmentRepository(BaseRepository[Assessment]):
    """Repository for stage assessments.

    Rows are only ever inserted.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Assessment)

    async def append(
        self,
        document_id: str,
        stage_id: str,
        payload: Dict[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> Assessment:
        payload_document_id = payload.get("document_id") if isinstance(payload, dict) else None
        return await self.create(
            document_id=document_id,
            stage_id=stage_id,
            payload=payload,
            created_at=as_utc(timestamp) if timestamp else utc_now(),
            payload_document_id=str(payload_document_id) if payload_document_id else None,
        )

    async def get_latest(self, document_id: str, stage_id: str) -> Optional[Assessment]:
        """Latest assessment for the key, ties on timestamp broken by insertion order."""
        try:
            result = await self.session.execute(
                select(Assessment)
                .where(Assessment.document_id == document_id, Assessment.stage_id == stage_id)
                .order_by(Assessment.created_at.desc(), Assessment.seq.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving latest {stage_id} assessment for {document_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def get_latest_by_payload_document(self, document_id: str, stage_id: str) -> Optional[Assessment]:
        """Latest assessment whose payload references ``document_id``."""
        try:
            result = await self.session.execute(
                select(Assessment)
                .where(Assessment.payload_document_id == document_id, Assessment.stage_id == stage_id)
                .order_by(Assessment.created_at.desc(), Assessment.seq.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {stage_id} assessment by payload document {document_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def find(self, criteria: AssessmentFilter) -> List[Assessment]:
        """Assessments matching the filter, oldest first."""
        try:
            query = self._apply_filters(
                select(Assessment), {"document_id": criteria.document_id, "stage_id": criteria.stage_id}
            )
            if criteria.since is not None:
                query = query.where(Assessment.created_at >= as_utc(criteria.since))
            if criteria.until is not None:
                query = query.where(Assessment.created_at <= as_utc(criteria.until))
            query = query.order_by(Assessment.created_at, Assessment.seq)
            if criteria.limit is not None:
                query = query.limit(criteria.limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error filtering assessments: {str(e)}", exc_info=True)
            raise
