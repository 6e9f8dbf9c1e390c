import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["materials"])

# Starter catalog, loaded into an empty database so the sample product prices out
DEFAULT_MATERIALS = [
    {"sku": "FAB-001", "name": "Cotton Fabric", "supplier": "Fabric World",
     "total_cost": 1500.0, "qty": 10, "unit_of_measurement": "yards"},
    {"sku": "INK-002", "name": "Printing Ink", "supplier": "Ink Supplies",
     "total_cost": 500.0, "qty": 20, "unit_of_measurement": "bottle"},
    {"sku": "TAG-003", "name": "Brand Tag", "supplier": "Label Makers Inc.",
     "total_cost": 250.0, "qty": 50, "unit_of_measurement": "pieces"},
    {"sku": "PKG-BOX-S", "name": "Small Box", "supplier": "Packaging Co",
     "total_cost": 100.0, "qty": 20, "unit_of_measurement": "pieces"},
    {"sku": "PKG-TAPE", "name": "Packing Tape", "supplier": "Packaging Co",
     "total_cost": 80.0, "qty": 2, "unit_of_measurement": "roll"},
]


def derive_unit_price(total_cost: float, qty: float) -> float:
    """Cost of one unit from a purchased batch. Zero when qty is not positive."""
    return total_cost / qty if qty > 0 else 0.0


def find_by_name(db: Session, name: str):
    """Case-insensitive lookup. Names are the human dedup key."""
    return db.query(models.Material).filter(
        models.Material.name_key == models.name_key(name)
    ).first()


def _duplicate_name(name: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f'A material named "{name}" already exists.')


def add_material(db: Session, data: dict) -> models.Material:
    """Create a catalog entry. Raises 409 if the name is taken (ignoring case)."""
    name = data["name"]
    if find_by_name(db, name):
        raise _duplicate_name(name)
    material = models.Material(
        **data,
        name_key=models.name_key(name),
        unit_price=derive_unit_price(data.get("total_cost", 0.0), data.get("qty", 0.0)),
    )
    db.add(material)
    return material


def seed_default_materials(db: Session) -> int:
    """Add any DEFAULT_MATERIALS missing by name. Returns how many were added."""
    seeded = 0
    for data in DEFAULT_MATERIALS:
        if not find_by_name(db, data["name"]):
            add_material(db, dict(data))
            db.flush()
            seeded += 1
    db.commit()
    return seeded


@router.get("/seed")
def seed_materials(db: Session = Depends(get_db)):
    """Seed the starter catalog. Safe to run multiple times; skips existing names."""
    seeded = seed_default_materials(db)
    return {"ok": True, "seeded": seeded}


@router.get("/", response_model=List[schemas.Material])
def list_materials(db: Session = Depends(get_db)):
    return db.query(models.Material).order_by(models.Material.created_at).all()


@router.post("/", response_model=schemas.Material)
def create_material(material: schemas.MaterialCreate, db: Session = Depends(get_db)):
    db_material = add_material(db, material.model_dump())
    try:
        db.commit()
    except IntegrityError:
        # a concurrent insert took the same name key
        db.rollback()
        raise _duplicate_name(material.name)
    db.refresh(db_material)
    return db_material


@router.get("/{material_id}", response_model=schemas.Material)
def get_material(material_id: str, db: Session = Depends(get_db)):
    material = db.query(models.Material).filter(models.Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.delete("/{material_id}")
def delete_material(material_id: str, db: Session = Depends(get_db)):
    """
    Remove a material and every product row that references it.

    Both the catalog entry and the material/packaging rows pointing at it go
    in a single commit, so no product is left holding the deleted id.
    """
    material = db.query(models.Material).filter(models.Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")

    name = material.name
    rows_removed = db.query(models.ProductMaterialRow).filter(
        models.ProductMaterialRow.material_id == material_id
    ).delete(synchronize_session=False)
    db.delete(material)
    db.commit()

    logger.info(f"Deleted material {name!r} and {rows_removed} referencing row(s)")
    return {"ok": True, "rows_removed": rows_removed}
