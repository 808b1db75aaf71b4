"""Material schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class MaterialBase(BaseModel):
    """Base material schema."""
    item_code: str
    item_name: str
    storing_uom: str
    consuming_uom: str
    purchasing_amount: float
    conversion_unit: Optional[float] = None  # Consuming units per storing unit, 1 if blank


class MaterialCreate(MaterialBase):
    """Schema for creating a material."""
    pass


class MaterialUpdate(BaseModel):
    """Schema for updating a material. consuming_rate is always recomputed."""
    item_code: Optional[str] = None
    item_name: Optional[str] = None
    storing_uom: Optional[str] = None
    consuming_uom: Optional[str] = None
    purchasing_amount: Optional[float] = None
    conversion_unit: Optional[float] = None


class MaterialResponse(MaterialBase):
    """Schema for material response."""
    id: int
    conversion_unit: float
    consuming_rate: float
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class ImportRowPreview(BaseModel):
    """One parsed CSV row shown before importing."""
    row_number: int
    item_code: str
    item_name: str
    storing_uom: str
    purchasing_amount: float
    consuming_uom: str
    conversion_unit: float
    consuming_rate: float


class ImportPreviewResponse(BaseModel):
    """Parsed rows, truncated to the preview limit."""
    total_rows: int
    rows: List[ImportRowPreview]


class ImportRowError(BaseModel):
    """A rejected CSV row."""
    row: int
    message: str


class ImportResultResponse(BaseModel):
    """Outcome of a bulk import."""
    success_count: int
    error_count: int
    errors: List[ImportRowError]
    save_error: Optional[str] = None
