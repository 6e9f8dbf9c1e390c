from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from .config import settings
from .database import Base
import enum
import uuid


def new_id() -> str:
    """Opaque identifier for catalog entries and cost rows."""
    return str(uuid.uuid4())


def name_key(name: str) -> str:
    """Case-insensitive material name key. casefold() handles non-ASCII letters."""
    return name.strip().casefold()


# --- Enums ---

class CalculationMode(str, enum.Enum):
    MARGIN = "margin"   # final price derived from a target margin on price
    PRICE = "price"     # final price entered directly, margin derived


class RowPurpose(str, enum.Enum):
    MATERIALS = "materials"
    PACKAGING = "packaging"


# --- Catalog ---

class Material(Base):
    """A purchased input. unit_price is derived once from total_cost / qty."""
    __tablename__ = "materials"

    id = Column(String, primary_key=True, default=new_id)
    sku = Column(String, nullable=True)
    name = Column(String, nullable=False, index=True)
    name_key = Column(String, nullable=False, unique=True, index=True)  # name_key(name)
    supplier = Column(String, nullable=True)
    total_cost = Column(Float, default=0.0)
    qty = Column(Float, default=1.0)
    unit_of_measurement = Column(String, default="pieces")
    unit_price = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)


# --- Product configuration ---

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_name = Column(String, default="")
    hourly_labor_rate = Column(Float, default=settings.LABOR_RATE_DEFAULT)
    calculation_mode = Column(Enum(CalculationMode), default=CalculationMode.MARGIN)
    target_margin = Column(Float, default=settings.TARGET_MARGIN_DEFAULT)   # percent of final price
    target_price = Column(Float, default=0.0)
    discount = Column(Float, default=0.0)         # percent
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reference_rows = relationship(
        "ProductMaterialRow", back_populates="product",
        cascade="all, delete-orphan", order_by="ProductMaterialRow.position",
    )
    labor_cost_rows = relationship(
        "LaborCostRow", back_populates="product",
        cascade="all, delete-orphan", order_by="LaborCostRow.position",
    )
    other_fee_rows = relationship(
        "OtherFeeRow", back_populates="product",
        cascade="all, delete-orphan", order_by="OtherFeeRow.position",
    )

    @property
    def material_cost_rows(self):
        return [r for r in self.reference_rows if r.purpose == RowPurpose.MATERIALS]

    @property
    def packaging_cost_rows(self):
        return [r for r in self.reference_rows if r.purpose == RowPurpose.PACKAGING]


class ProductMaterialRow(Base):
    """Material or packaging line, pointing at a catalog entry by id.

    material_id is a plain string, not a foreign key. A reference to a
    material that no longer exists prices at zero.
    """
    __tablename__ = "product_material_rows"

    id = Column(String, primary_key=True, default=new_id)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    purpose = Column(Enum(RowPurpose), nullable=False, default=RowPurpose.MATERIALS)
    material_id = Column(String, nullable=True)
    qty = Column(Float, default=1.0)
    position = Column(Integer, default=0)

    product = relationship("Product", back_populates="reference_rows")


class LaborCostRow(Base):
    __tablename__ = "product_labor_rows"

    id = Column(String, primary_key=True, default=new_id)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    task_name = Column(String, default="")
    hours = Column(Float, default=1.0)
    position = Column(Integer, default=0)

    product = relationship("Product", back_populates="labor_cost_rows")


class OtherFeeRow(Base):
    __tablename__ = "product_fee_rows"

    id = Column(String, primary_key=True, default=new_id)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    fee_name = Column(String, default="")
    qty = Column(Float, default=1.0)
    unit = Column(String, default="each")
    unit_price = Column(Float, default=0.0)
    position = Column(Integer, default=0)

    product = relationship("Product", back_populates="other_fee_rows")
