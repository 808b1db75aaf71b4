"""Quotation routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from estimator.auth import require_permission
from estimator.database import get_db
from estimator.models.customer import Customer
from estimator.models.project import Project
from estimator.models.quotation import Quotation, QuotationItem
from estimator.permissions import AuthSession, Permission
from estimator.schemas.quotation import (
    QuotationCreate,
    QuotationItemCreate,
    QuotationResponse,
    QuotationUpdate,
)
from estimator.services.catalog import MaterialCatalog

router = APIRouter(prefix="/quotations", tags=["Quotations"])


def _get_quotation_or_404(db: Session, quotation_id: int) -> Quotation:
    quotation = db.query(Quotation).filter(Quotation.id == quotation_id).first()
    if not quotation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quotation not found"
        )
    return quotation


def _check_project(db: Session, project_id: Optional[int]) -> None:
    if project_id is None:
        return
    if not db.query(Project).filter(Project.id == project_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )


def _check_number_unique(db: Session, quotation_number: str) -> None:
    if db.query(Quotation).filter(Quotation.quotation_number == quotation_number).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Quotation number already exists"
        )


@router.get("/", response_model=List[QuotationResponse])
async def list_quotations(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = Query(None, description="Search by number, project or customer"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_QUOTATIONS))
):
    """List quotations, newest first."""
    query = db.query(Quotation).outerjoin(Project).outerjoin(Customer)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Quotation.quotation_number.ilike(search_term),
                Project.name.ilike(search_term),
                Customer.name.ilike(search_term),
            )
        )
    return query.order_by(Quotation.id.desc()).offset(skip).limit(limit).all()


@router.post("/", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
async def create_quotation(
    quotation_data: QuotationCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_QUOTATIONS))
):
    """Create a new quotation."""
    _check_project(db, quotation_data.project_id)
    _check_number_unique(db, quotation_data.quotation_number)
    
    db_quotation = Quotation(**quotation_data.model_dump())
    db.add(db_quotation)
    db.commit()
    db.refresh(db_quotation)
    return db_quotation


@router.get("/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(
    quotation_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_QUOTATIONS))
):
    """Get a quotation with its lines."""
    return _get_quotation_or_404(db, quotation_id)


@router.put("/{quotation_id}", response_model=QuotationResponse)
async def update_quotation(
    quotation_id: int,
    quotation_update: QuotationUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_QUOTATIONS))
):
    """Update a quotation's header fields."""
    quotation = _get_quotation_or_404(db, quotation_id)
    
    update_data = quotation_update.model_dump(exclude_unset=True)
    if "project_id" in update_data:
        _check_project(db, update_data["project_id"])
    new_number = update_data.get("quotation_number")
    if new_number and new_number != quotation.quotation_number:
        _check_number_unique(db, new_number)
    
    for field, value in update_data.items():
        setattr(quotation, field, value)
    
    db.commit()
    db.refresh(quotation)
    return quotation


@router.delete("/{quotation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quotation(
    quotation_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_QUOTATIONS))
):
    """Delete a quotation and its lines."""
    quotation = _get_quotation_or_404(db, quotation_id)
    db.delete(quotation)
    db.commit()
    return None


@router.post("/{quotation_id}/items", response_model=QuotationResponse, status_code=status.HTTP_201_CREATED)
async def add_quotation_item(
    quotation_id: int,
    item_data: QuotationItemCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_QUOTATIONS))
):
    """Add a material line priced at the material's current consuming rate."""
    quotation = _get_quotation_or_404(db, quotation_id)
    material = MaterialCatalog(db).find_by_key(item_data.item_code)
    if not material:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Material '{item_data.item_code}' not found"
        )
    
    quotation.items.append(QuotationItem(
        material_id=material.id,
        item_code=material.item_code,
        item_name=material.item_name,
        consuming_uom=material.consuming_uom,
        unit_rate=material.consuming_rate,
        quantity=item_data.quantity,
    ))
    db.commit()
    db.refresh(quotation)
    return quotation


@router.delete("/{quotation_id}/items/{item_id}", response_model=QuotationResponse)
async def remove_quotation_item(
    quotation_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_QUOTATIONS))
):
    """Remove a line from a quotation."""
    quotation = _get_quotation_or_404(db, quotation_id)
    item = next((line for line in quotation.items if line.id == item_id), None)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quotation item not found"
        )
    quotation.items.remove(item)
    db.commit()
    db.refresh(quotation)
    return quotation
