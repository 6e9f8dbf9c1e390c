from fastapi import APIRouter
from .. import schemas
from ..pricing_engine import compute_pricing

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/calculate", response_model=schemas.CalculatedPricing)
def calculate(request: schemas.CalculateRequest):
    """
    Price an unsaved product snapshot against a supplied catalog.
    Nothing is read from or written to the database.
    """
    return compute_pricing(request.product, request.materials)
