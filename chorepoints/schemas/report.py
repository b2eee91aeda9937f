from .common import CamelModel
class PointsOut(CamelModel):
    points: float
class SummaryOut(CamelModel):
    weekly_points: float
    monthly_points: float
    completed_actions: int
    pending_suggestions: int
