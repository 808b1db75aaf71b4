"""Report routes."""
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from estimator.auth import require_permission
from estimator.config import settings
from estimator.database import get_db
from estimator.models.customer import Customer
from estimator.models.material import Material
from estimator.models.project import Project
from estimator.models.quotation import Quotation, QuotationItem
from estimator.permissions import AuthSession, Permission
from estimator.schemas.quotation import ReportSummary

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/summary", response_model=ReportSummary)
async def summary(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_REPORTS))
):
    """Record counts and total quoted value."""
    total_quoted = db.query(
        func.coalesce(func.sum(QuotationItem.unit_rate * QuotationItem.quantity), 0.0)
    ).scalar()
    return ReportSummary(
        customers=db.query(Customer).count(),
        projects=db.query(Project).count(),
        active_projects=db.query(Project).filter(func.lower(Project.status) == "active").count(),
        quotations=db.query(Quotation).count(),
        materials=db.query(Material).count(),
        total_quoted=round(float(total_quoted), 2),
        currency=settings.CURRENCY,
    )
