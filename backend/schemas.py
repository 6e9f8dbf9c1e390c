from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
import math
from .config import settings
from .models import CalculationMode


def _non_negative(value):
    """Entry-form clamp: anything below zero, NaN or infinite is stored as 0."""
    if value is None:
        return value
    return value if math.isfinite(value) and value > 0 else 0.0


# --- Catalog ---

class MaterialBase(BaseModel):
    sku: Optional[str] = None
    name: str = Field(..., min_length=1)
    supplier: Optional[str] = None
    total_cost: float = Field(0.0, ge=0)
    qty: float = 1.0
    unit_of_measurement: str = "pieces"

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

class MaterialCreate(MaterialBase):
    pass

class Material(MaterialBase):
    id: str
    unit_price: float
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

class CatalogEntry(BaseModel):
    """Catalog snapshot entry for stateless calculation. Only id and unit_price are priced."""
    id: str
    unit_price: float = 0.0
    name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# --- Cost rows ---

class MaterialRowBase(BaseModel):
    material_id: Optional[str] = None
    qty: float = 1.0

    clamp_non_negative = field_validator("qty")(_non_negative)

class MaterialRowIn(MaterialRowBase):
    id: Optional[str] = None

class MaterialRow(MaterialRowBase):
    id: str
    model_config = ConfigDict(from_attributes=True)

class MaterialRowUpdate(BaseModel):
    material_id: Optional[str] = None
    qty: Optional[float] = None

    clamp_non_negative = field_validator("qty")(_non_negative)

    model_config = ConfigDict(extra="forbid")


class LaborRowBase(BaseModel):
    task_name: str = ""
    hours: float = 1.0

    clamp_non_negative = field_validator("hours")(_non_negative)

class LaborRowIn(LaborRowBase):
    id: Optional[str] = None

class LaborRow(LaborRowBase):
    id: str
    model_config = ConfigDict(from_attributes=True)

class LaborRowUpdate(BaseModel):
    task_name: Optional[str] = None
    hours: Optional[float] = None

    clamp_non_negative = field_validator("hours")(_non_negative)

    model_config = ConfigDict(extra="forbid")


class FeeRowBase(BaseModel):
    fee_name: str = ""
    qty: float = 1.0
    unit: str = "each"
    unit_price: float = 0.0

    clamp_non_negative = field_validator("qty", "unit_price")(_non_negative)

class FeeRowIn(FeeRowBase):
    id: Optional[str] = None

class FeeRow(FeeRowBase):
    id: str
    model_config = ConfigDict(from_attributes=True)

class FeeRowUpdate(BaseModel):
    fee_name: Optional[str] = None
    qty: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None

    clamp_non_negative = field_validator("qty", "unit_price")(_non_negative)

    model_config = ConfigDict(extra="forbid")


# --- Product configuration ---

class ProductSettings(BaseModel):
    product_name: str = ""
    hourly_labor_rate: float = settings.LABOR_RATE_DEFAULT
    calculation_mode: CalculationMode = CalculationMode.MARGIN
    target_margin: float = settings.TARGET_MARGIN_DEFAULT
    target_price: float = 0.0
    discount: float = 0.0

    clamp_non_negative = field_validator(
        "hourly_labor_rate", "target_margin", "target_price", "discount",
    )(_non_negative)

class ProductInputs(ProductSettings):
    material_cost_rows: List[MaterialRowIn] = []
    packaging_cost_rows: List[MaterialRowIn] = []
    labor_cost_rows: List[LaborRowIn] = []
    other_fee_rows: List[FeeRowIn] = []

class ProductCreate(ProductInputs):
    pass

class Product(ProductSettings):
    id: int
    material_cost_rows: List[MaterialRow] = []
    packaging_cost_rows: List[MaterialRow] = []
    labor_cost_rows: List[LaborRow] = []
    other_fee_rows: List[FeeRow] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Explicit setters, one per logical group of fields

class ProductNameUpdate(BaseModel):
    product_name: str

class ProductNumbersUpdate(BaseModel):
    hourly_labor_rate: Optional[float] = None
    target_margin: Optional[float] = None
    target_price: Optional[float] = None
    discount: Optional[float] = None

    clamp_non_negative = field_validator(
        "hourly_labor_rate", "target_margin", "target_price", "discount",
    )(_non_negative)

    model_config = ConfigDict(extra="forbid")

class ProductModeUpdate(BaseModel):
    calculation_mode: CalculationMode


# --- Pricing ---

class CalculatedPricing(BaseModel):
    total_material_cost: float
    total_packaging_cost: float
    total_labor_cost: float
    total_other_fees_cost: float
    total_base_cost: float
    final_price: float
    required_margin: float
    discounted_price: float
    profit: float

class PricingResponse(BaseModel):
    product_id: int
    product_name: str
    calculation_mode: CalculationMode
    pricing: CalculatedPricing
    formatted: dict

class CalculateRequest(BaseModel):
    product: ProductInputs
    materials: List[CatalogEntry] = []


# --- Advice ---

class AdviceResponse(BaseModel):
    product_id: int
    model: str
    advice: str
