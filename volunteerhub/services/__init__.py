# volunteerhub/services/__init__.py
"""
Service layer: business rules on top of the CRUD storage adapter.
"""

from volunteerhub.services.invariants import InvariantEngine, InvariantOperation, invariant_engine
from volunteerhub.services.activity_service import ActivityService
from volunteerhub.services.membership_service import MembershipService
from volunteerhub.services.rating_service import RatingService
from volunteerhub.services.coordinator import Coordinator, CoordinatorResult, ResultStatus

__all__ = [
    "InvariantEngine",
    "InvariantOperation",
    "invariant_engine",
    "ActivityService",
    "MembershipService",
    "RatingService",
    "Coordinator",
    "CoordinatorResult",
    "ResultStatus",
]
