from fastapi import APIRouter
from . import auth, family, action_templates, assigned_actions, suggestions, reports

router = APIRouter()

router.include_router(auth.router, tags=["Auth"])
router.include_router(family.router, tags=["Family"])
router.include_router(action_templates.router, prefix="/action-templates", tags=["Action templates"])
router.include_router(assigned_actions.router, prefix="/assigned-actions", tags=["Assigned actions"])
router.include_router(suggestions.router, prefix="/action-suggestions", tags=["Suggestions"])
router.include_router(reports.router, tags=["Reports"])
