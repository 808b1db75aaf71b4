"""Quotation and quotation item models."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from estimator.database import Base


class Quotation(Base):
    """Quotation issued for a project."""
    __tablename__ = "quotations"
    
    id = Column(Integer, primary_key=True, index=True)
    quotation_number = Column(String(50), unique=True, index=True, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(50), nullable=False, default="Draft")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    # Relationships
    project = relationship("Project", back_populates="quotations")
    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.id",
    )
    
    @property
    def total_amount(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)


class QuotationItem(Base):
    """Estimated line priced from a material snapshot.
    
    The material columns are copied when the line is added so deleting or
    repricing the material leaves the quotation untouched.
    """
    __tablename__ = "quotation_items"
    
    id = Column(Integer, primary_key=True, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id", ondelete="SET NULL"), nullable=True)
    item_code = Column(String(50), nullable=False)
    item_name = Column(String(200), nullable=False)
    consuming_uom = Column(String(50), nullable=False)
    unit_rate = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    quotation = relationship("Quotation", back_populates="items")
    material = relationship("Material", back_populates="quotation_items")
    
    @property
    def line_total(self) -> float:
        return round(self.unit_rate * self.quantity, 2)
