from datetime import datetime
from .common import ORMModel
class FamilyOut(ORMModel):
    id: int
    name: str
    created_at: datetime
