from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class ReviewCreate(BaseModel):
    booking_id: int = Field(gt=0)
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=500)


class ReviewResponse(ReviewCreate):
    id: int
    user_id: int
    vehicle_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
