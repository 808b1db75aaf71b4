"""Quotation schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class QuotationItemCreate(BaseModel):
    """Add a material line to a quotation."""
    item_code: str
    quantity: float = Field(1.0, gt=0)


class QuotationItemResponse(BaseModel):
    """Quotation line with its material snapshot."""
    id: int
    material_id: Optional[int] = None
    item_code: str
    item_name: str
    consuming_uom: str
    unit_rate: float
    quantity: float
    line_total: float
    
    class Config:
        from_attributes = True


class QuotationBase(BaseModel):
    """Base quotation schema."""
    quotation_number: str
    project_id: Optional[int] = None
    status: str = "Draft"
    notes: Optional[str] = None


class QuotationCreate(QuotationBase):
    """Schema for creating a quotation."""
    pass


class QuotationUpdate(BaseModel):
    """Schema for updating a quotation."""
    quotation_number: Optional[str] = None
    project_id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class QuotationResponse(QuotationBase):
    """Schema for quotation response."""
    id: int
    total_amount: float
    items: List[QuotationItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class ReportSummary(BaseModel):
    """Dashboard counts."""
    customers: int
    projects: int
    active_projects: int
    quotations: int
    materials: int
    total_quoted: float
    currency: str
