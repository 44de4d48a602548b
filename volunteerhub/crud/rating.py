# volunteerhub/crud/rating.py
from sqlmodel import Session, select, func
from typing import List, Optional

from volunteerhub.models.rating import Rating, RatedEntityType

class RatingCRUD:

    def create_rating(
        self,
        db: Session,
        rater_id: int,
        rated_entity_id: int,
        rated_entity_type: RatedEntityType,
        value: int,
        comment: Optional[str] = None,
    ) -> Rating:
        rating = Rating(
            rater_id=rater_id,
            rated_entity_id=rated_entity_id,
            rated_entity_type=rated_entity_type,
            value=value,
            comment=comment,
        )
        db.add(rating)
        db.flush()
        return rating

    def get_ratings_for_entity(
        self,
        db: Session,
        rated_entity_type: RatedEntityType,
        rated_entity_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Rating]:
        query = (
            select(Rating)
            .where(
                Rating.rated_entity_type == rated_entity_type,
                Rating.rated_entity_id == rated_entity_id,
            )
            .order_by(Rating.created_at, Rating.id)
            .offset(skip)
            .limit(limit)
        )
        return list(db.exec(query).all())

    def get_average(
        self, db: Session, rated_entity_type: RatedEntityType, rated_entity_id: int
    ) -> Optional[float]:
        statement = select(func.avg(Rating.value)).where(
            Rating.rated_entity_type == rated_entity_type,
            Rating.rated_entity_id == rated_entity_id,
        )
        average = db.exec(statement).one()
        return float(average) if average is not None else None

rating_crud = RatingCRUD()
