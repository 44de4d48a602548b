"""
Rating Service - polymorphic feedback on volunteers, projects, teams and charities
"""

import logging
from typing import List, Optional, Union

from sqlmodel import Session

from volunteerhub.core.audit_log import AuditEventType, queue_event
from volunteerhub.core.exceptions import NotFound
from volunteerhub.crud.rating import rating_crud
from volunteerhub.crud.user import user_crud
from volunteerhub.models.rating import Rating, RatedEntityType
from volunteerhub.services.invariants import InvariantOperation, invariant_engine

logger = logging.getLogger(__name__)


class RatingService:

    @staticmethod
    def rate(
        db: Session,
        rater_id: int,
        target_id: int,
        target_type: Union[str, RatedEntityType],
        value: int,
        comment: Optional[str] = None,
    ) -> Rating:
        """
        Append a rating. The same rater may rate the same target again;
        each rating is kept.
        """
        if user_crud.get_user(db, rater_id) is None:
            raise NotFound("user", rater_id)

        target_type = invariant_engine.validate(
            db,
            InvariantOperation.RATING_INSERT,
            entity_type=target_type,
            entity_id=target_id,
            value=value,
        )

        rating = rating_crud.create_rating(
            db,
            rater_id=rater_id,
            rated_entity_id=target_id,
            rated_entity_type=target_type,
            value=value,
            comment=comment,
        )
        logger.info(f"User {rater_id} rated {target_type.value} {target_id} with {value}")
        queue_event(
            db,
            AuditEventType.RATING_CREATED,
            user_id=rater_id,
            entity_type=target_type.value,
            entity_id=target_id,
            details={"rating_id": rating.id, "value": value},
        )
        return rating

    @staticmethod
    def list_ratings(
        db: Session, target_type: Union[str, RatedEntityType], target_id: int, limit: int = 100
    ) -> List[Rating]:
        target_type = invariant_engine.resolve_entity_type(target_type)
        return rating_crud.get_ratings_for_entity(db, target_type, target_id, limit=limit)

    @staticmethod
    def average_rating(db: Session, target_type: Union[str, RatedEntityType], target_id: int) -> Optional[float]:
        target_type = invariant_engine.resolve_entity_type(target_type)
        return rating_crud.get_average(db, target_type, target_id)
