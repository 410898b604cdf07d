"""API routes for the decision tree CMS."""

from fastapi import APIRouter

from decisiontree.routes import answers, elements, monitoring, steps

api_router = APIRouter(prefix="/api", tags=["api"])

api_router.include_router(monitoring.router)
api_router.include_router(steps.router, prefix="/steps", tags=["steps"])
api_router.include_router(answers.router, prefix="/answers", tags=["answers"])
api_router.include_router(elements.router, prefix="/elements", tags=["elements"])
