from pydantic import BaseModel
from typing import Dict


class Settlement(BaseModel):
    refund_amount: int
    collect_amount: int
    deposit_held: int
    total_liability: int
    breakdown: Dict[str, int]
