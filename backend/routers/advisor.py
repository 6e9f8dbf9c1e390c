"""
AI pricing advice endpoint — powered by Gemini.

The user clicks "get advice"; the current pricing snapshot for the product is
rendered into a prompt and Gemini returns coaching text. Advice is never
stored and never feeds back into the pricing numbers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from .. import schemas
from ..advisor import get_pricing_advice
from ..config import settings
from ..database import get_db
from .products import calculate_product_pricing, get_product_or_404

router = APIRouter(prefix="/advisor", tags=["advisor"])


@router.post("/products/{product_id}", response_model=schemas.AdviceResponse)
def product_advice(product_id: int, db: Session = Depends(get_db)):
    product = get_product_or_404(product_id, db)
    pricing = calculate_product_pricing(product, db)
    advice = get_pricing_advice(product, pricing, settings.CURRENCY_SYMBOL)
    return {
        "product_id": product.id,
        "model": settings.GEMINI_MODEL,
        "advice": advice,
    }
