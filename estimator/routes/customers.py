"""Customer routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from estimator.auth import require_permission
from estimator.database import get_db
from estimator.models.customer import Customer
from estimator.permissions import AuthSession, Permission
from estimator.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate

router = APIRouter(prefix="/customers", tags=["Customers"])


def _get_customer_or_404(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found"
        )
    return customer


@router.get("/", response_model=List[CustomerResponse])
async def list_customers(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = Query(None, description="Search by name or email"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_CUSTOMERS))
):
    """List customers sorted by name."""
    query = db.query(Customer)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(Customer.name.ilike(search_term), Customer.email.ilike(search_term))
        )
    return query.order_by(Customer.name).offset(skip).limit(limit).all()


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_CUSTOMERS))
):
    """Create a new customer."""
    db_customer = Customer(**customer_data.model_dump())
    db.add(db_customer)
    db.commit()
    db.refresh(db_customer)
    return db_customer


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_CUSTOMERS))
):
    """Get a specific customer."""
    return _get_customer_or_404(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_update: CustomerUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_CUSTOMERS))
):
    """Update a customer."""
    customer = _get_customer_or_404(db, customer_id)
    
    update_data = customer_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(customer, field, value)
    
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_CUSTOMERS))
):
    """Delete a customer. Its projects are kept without a customer."""
    customer = _get_customer_or_404(db, customer_id)
    db.delete(customer)
    db.commit()
    return None
