# volunteerhub/schemas/points.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

class PointsSummary(BaseModel):
    """Cached balance next to the ledger it is derived from."""
    volunteer_id: int
    cached_points: int = Field(..., ge=0)
    ledger_points: int = Field(..., ge=0)
    pending_activities: int = Field(..., ge=0)
    last_activity: Optional[datetime] = None

    @property
    def in_sync(self) -> bool:
        return self.cached_points == self.ledger_points

class PointsCorrection(BaseModel):
    volunteer_id: int
    previous_points: int
    corrected_points: int

class ReconciliationReport(BaseModel):
    checked: int = 0
    corrections: List[PointsCorrection] = Field(default_factory=list)

    @property
    def corrected(self) -> int:
        return len(self.corrections)
