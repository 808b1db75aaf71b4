"""Project routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from estimator.auth import require_permission
from estimator.database import get_db
from estimator.models.customer import Customer
from estimator.models.project import Project
from estimator.permissions import AuthSession, Permission
from estimator.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate

router = APIRouter(prefix="/projects", tags=["Projects"])


def _check_customer(db: Session, customer_id: Optional[int]) -> None:
    if customer_id is None:
        return
    if not db.query(Customer).filter(Customer.id == customer_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found"
        )


@router.get("/", response_model=List[ProjectResponse])
async def list_projects(
    skip: int = 0,
    limit: int = 100,
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Search by project or customer name"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_PROJECTS))
):
    """List projects, newest first."""
    query = db.query(Project).outerjoin(Customer)
    if status_filter:
        query = query.filter(Project.status.ilike(status_filter))
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(Project.name.ilike(search_term), Customer.name.ilike(search_term))
        )
    return query.order_by(Project.id.desc()).offset(skip).limit(limit).all()


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_PROJECTS))
):
    """Create a new project."""
    _check_customer(db, project_data.customer_id)
    db_project = Project(**project_data.model_dump())
    db.add(db_project)
    db.commit()
    db.refresh(db_project)
    return db_project


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_PROJECTS))
):
    """Get a specific project."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_PROJECTS))
):
    """Update a project."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    
    update_data = project_update.model_dump(exclude_unset=True)
    if "customer_id" in update_data:
        _check_customer(db, update_data["customer_id"])
    for field, value in update_data.items():
        setattr(project, field, value)
    
    db.commit()
    db.refresh(project)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.EDIT_PROJECTS))
):
    """Delete a project. Its quotations are kept without a project."""
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    db.delete(project)
    db.commit()
    return None
