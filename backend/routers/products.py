from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from pydantic import ValidationError
from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..formatting import format_pricing
from ..pricing_engine import compute_pricing
from .materials import find_by_name

router = APIRouter(prefix="/products", tags=["products"])


class RowKind:
    """How one row collection is stored and validated."""

    def __init__(self, model, update_schema, defaults: dict, purpose=None):
        self.model = model
        self.update_schema = update_schema
        self.defaults = defaults
        self.purpose = purpose

    def query(self, db: Session, product_id: int):
        q = db.query(self.model).filter(self.model.product_id == product_id)
        if self.purpose is not None:
            q = q.filter(self.model.purpose == self.purpose)
        return q


ROW_KINDS = {
    "materials": RowKind(
        models.ProductMaterialRow, schemas.MaterialRowUpdate,
        {"material_id": None, "qty": 1.0}, purpose=models.RowPurpose.MATERIALS,
    ),
    "packaging": RowKind(
        models.ProductMaterialRow, schemas.MaterialRowUpdate,
        {"material_id": None, "qty": 1.0}, purpose=models.RowPurpose.PACKAGING,
    ),
    "labor": RowKind(
        models.LaborCostRow, schemas.LaborRowUpdate,
        {"task_name": "", "hours": 1.0},
    ),
    "fees": RowKind(
        models.OtherFeeRow, schemas.FeeRowUpdate,
        {"fee_name": "", "qty": 1.0, "unit": "each", "unit_price": 0.0},
    ),
}

# Sample product seeded alongside the starter catalog. Reference rows name
# the material; ids are resolved at seed time.
DEFAULT_PRODUCT = {
    "product_name": "Custom T-Shirt",
    "hourly_labor_rate": 40.0,
    "calculation_mode": models.CalculationMode.MARGIN,
    "target_margin": 60.0,
    "target_price": 1000.0,
    "discount": 10.0,
    "materials": [("Cotton Fabric", 0.5), ("Printing Ink", 2.0)],
    "packaging": [("Small Box", 1.0)],
    "labor": [{"task_name": "Production", "hours": 0.5}, {"task_name": "Packaging", "hours": 0.25}],
    "fees": [{"fee_name": "Platform Fee", "qty": 1.0, "unit": "transaction", "unit_price": 15.0}],
}


def get_row_kind(row_kind: str) -> RowKind:
    kind = ROW_KINDS.get(row_kind)
    if kind is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown row kind '{row_kind}', expected one of {sorted(ROW_KINDS)}",
        )
    return kind


def get_product_or_404(product_id: int, db: Session) -> models.Product:
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _next_position(kind: RowKind, db: Session, product_id: int) -> int:
    current = db.query(func.max(kind.model.position)).filter(
        kind.model.product_id == product_id
    ).scalar()
    return (current if current is not None else -1) + 1


def _add_row(kind: RowKind, db: Session, product_id: int, values: dict):
    fields = {**kind.defaults, **values}
    if kind.purpose is not None:
        fields["purpose"] = kind.purpose
    row = kind.model(
        product_id=product_id,
        position=_next_position(kind, db, product_id),
        **fields,
    )
    db.add(row)
    db.flush()
    return row


def _touch(product: models.Product):
    product.updated_at = datetime.utcnow()


def calculate_product_pricing(product: models.Product, db: Session) -> dict:
    """Run the pricing engine over a stored product and the current catalog."""
    materials = db.query(models.Material).all()
    return compute_pricing(product, materials)


def seed_default_product(db: Session) -> Optional[models.Product]:
    """Create the sample product if there are no products yet."""
    if db.query(models.Product).count():
        return None

    product = models.Product(
        **{k: v for k, v in DEFAULT_PRODUCT.items() if k not in ROW_KINDS},
    )
    db.add(product)
    db.flush()

    for row_kind in ("materials", "packaging"):
        for name, qty in DEFAULT_PRODUCT[row_kind]:
            material = find_by_name(db, name)
            _add_row(ROW_KINDS[row_kind], db, product.id, {
                "material_id": material.id if material else None,
                "qty": qty,
            })
    for row_kind in ("labor", "fees"):
        for values in DEFAULT_PRODUCT[row_kind]:
            _add_row(ROW_KINDS[row_kind], db, product.id, dict(values))

    db.commit()
    db.refresh(product)
    return product


# --- Endpoints ---

@router.post("/", response_model=schemas.Product)
def create_product(product: schemas.ProductCreate, db: Session = Depends(get_db)):
    row_lists = {
        "materials": product.material_cost_rows,
        "packaging": product.packaging_cost_rows,
        "labor": product.labor_cost_rows,
        "fees": product.other_fee_rows,
    }
    db_product = models.Product(**product.model_dump(exclude={
        "material_cost_rows", "packaging_cost_rows", "labor_cost_rows", "other_fee_rows",
    }))
    db.add(db_product)
    db.flush()

    # Rows always get fresh ids; client-supplied ids are only meaningful
    # to /pricing/calculate.
    for row_kind, rows in row_lists.items():
        for row in rows:
            _add_row(ROW_KINDS[row_kind], db, db_product.id, row.model_dump(exclude={"id"}))

    db.commit()
    db.refresh(db_product)
    return db_product


@router.get("/", response_model=List[schemas.Product])
def list_products(skip: int = 0, limit: int = 50, db: Session = Depends(get_db)):
    return db.query(models.Product).order_by(models.Product.id).offset(skip).limit(limit).all()


@router.get("/{product_id}", response_model=schemas.Product)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return get_product_or_404(product_id, db)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    product = get_product_or_404(product_id, db)
    db.delete(product)
    db.commit()
    return {"ok": True}


# --- Field setters ---

@router.put("/{product_id}/name", response_model=schemas.Product)
def set_product_name(product_id: int, update: schemas.ProductNameUpdate, db: Session = Depends(get_db)):
    product = get_product_or_404(product_id, db)
    product.product_name = update.product_name
    db.commit()
    db.refresh(product)
    return product


@router.patch("/{product_id}/numbers", response_model=schemas.Product)
def set_product_numbers(product_id: int, update: schemas.ProductNumbersUpdate, db: Session = Depends(get_db)):
    """Update any of hourly_labor_rate, target_margin, target_price, discount."""
    product = get_product_or_404(product_id, db)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


@router.put("/{product_id}/mode", response_model=schemas.Product)
def set_calculation_mode(product_id: int, update: schemas.ProductModeUpdate, db: Session = Depends(get_db)):
    product = get_product_or_404(product_id, db)
    product.calculation_mode = update.calculation_mode
    db.commit()
    db.refresh(product)
    return product


# --- Row collections ---

def _validate_row_payload(kind: RowKind, payload: Optional[dict]) -> dict:
    try:
        return kind.update_schema.model_validate(payload or {}).model_dump(exclude_unset=True)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.post("/{product_id}/rows/{row_kind}", response_model=schemas.Product)
def add_row(product_id: int, row_kind: str, payload: Optional[dict] = Body(None), db: Session = Depends(get_db)):
    """Append a row. Fields not given take the row kind's defaults."""
    kind = get_row_kind(row_kind)
    product = get_product_or_404(product_id, db)
    values = _validate_row_payload(kind, payload)
    _add_row(kind, db, product.id, values)
    _touch(product)
    db.commit()
    db.refresh(product)
    return product


@router.patch("/{product_id}/rows/{row_kind}/{row_id}", response_model=schemas.Product)
def update_row(product_id: int, row_kind: str, row_id: str,
               payload: Optional[dict] = Body(None), db: Session = Depends(get_db)):
    kind = get_row_kind(row_kind)
    product = get_product_or_404(product_id, db)
    row = kind.query(db, product.id).filter(kind.model.id == row_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Row not found")
    for field, value in _validate_row_payload(kind, payload).items():
        setattr(row, field, value)
    _touch(product)
    db.commit()
    db.refresh(product)
    return product


@router.delete("/{product_id}/rows/{row_kind}/{row_id}", response_model=schemas.Product)
def remove_row(product_id: int, row_kind: str, row_id: str, db: Session = Depends(get_db)):
    kind = get_row_kind(row_kind)
    product = get_product_or_404(product_id, db)
    row = kind.query(db, product.id).filter(kind.model.id == row_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Row not found")
    db.delete(row)
    _touch(product)
    db.commit()
    db.refresh(product)
    return product


# --- Pricing ---

@router.get("/{product_id}/pricing", response_model=schemas.PricingResponse)
def get_product_pricing(product_id: int, db: Session = Depends(get_db)):
    """CalculatedPricing for the stored product, plus display strings."""
    product = get_product_or_404(product_id, db)
    pricing = calculate_product_pricing(product, db)
    return {
        "product_id": product.id,
        "product_name": product.product_name or "",
        "calculation_mode": product.calculation_mode,
        "pricing": pricing,
        "formatted": format_pricing(pricing, settings.CURRENCY_SYMBOL),
    }
