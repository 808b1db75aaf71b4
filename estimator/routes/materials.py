"""Material catalog routes."""
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from estimator.auth import require_login, require_permission
from estimator.config import settings
from estimator.database import get_db
from estimator.errors import (
    MaterialNotFound,
    MaterialValidationError,
    PermissionDenied,
    UnreadableSource,
)
from estimator.permissions import AuthSession, Permission
from estimator.schemas.material import (
    ImportPreviewResponse,
    ImportResultResponse,
    ImportRowError,
    ImportRowPreview,
    MaterialCreate,
    MaterialResponse,
    MaterialUpdate,
)
from estimator.services.bulk_import import BulkImport, export_materials, generate_template
from estimator.services.catalog import MaterialCatalog
from estimator.services.materials import MaterialService
from estimator.services.pricing import MaterialCandidate, ValidationErrorKind

router = APIRouter(prefix="/materials", tags=["Materials"])


def _csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


def _validation_error(e: MaterialValidationError) -> HTTPException:
    if e.issue.kind == ValidationErrorKind.DUPLICATE_KEY:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/", response_model=List[MaterialResponse])
async def list_materials(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = Query(None, description="Search by item code or name"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_MATERIALS))
):
    """List materials sorted by item code."""
    return MaterialCatalog(db).list(search=search, skip=skip, limit=limit)


@router.post("/", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
async def create_material(
    material_data: MaterialCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Create a new material (edit materials)."""
    try:
        return MaterialService(MaterialCatalog(db)).create(
            session, MaterialCandidate(**material_data.model_dump())
        )
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except MaterialValidationError as e:
        raise _validation_error(e)


@router.get("/template/csv")
async def download_template(
    session: AuthSession = Depends(require_permission(Permission.VIEW_MATERIALS))
):
    """Download the CSV template for bulk upload."""
    return _csv_response(generate_template(), "materials_template.csv")


@router.get("/export/csv")
async def export_materials_csv(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_permission(Permission.VIEW_MATERIALS))
):
    """Export all materials in the template column order."""
    return _csv_response(export_materials(MaterialCatalog(db).list()), "materials.csv")


@router.post("/import/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Parse a CSV file and show the rows that would be imported."""
    content = await file.read()
    try:
        rows = BulkImport(MaterialCatalog(db)).parse(session, content)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except UnreadableSource as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    
    return ImportPreviewResponse(
        total_rows=len(rows),
        rows=[
            ImportRowPreview(**asdict(row), consuming_rate=row.consuming_rate)
            for row in rows[:settings.IMPORT_PREVIEW_LIMIT]
        ],
    )


@router.post("/import/csv", response_model=ImportResultResponse)
async def import_materials_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Import materials from a CSV file. Rows whose item code exists are rejected."""
    content = await file.read()
    try:
        summary = BulkImport(MaterialCatalog(db)).import_csv(session, content)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except UnreadableSource as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    
    return ImportResultResponse(
        success_count=summary.success_count,
        error_count=summary.error_count,
        errors=[ImportRowError(row=error.row, message=error.message) for error in summary.errors],
        save_error=summary.save_error,
    )


@router.get("/{item_code}", response_model=MaterialResponse)
async def get_material(
    item_code: str,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Get a material by its item code."""
    try:
        return MaterialService(MaterialCatalog(db)).get(session, item_code)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except MaterialNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{item_code}", response_model=MaterialResponse)
async def update_material(
    item_code: str,
    material_update: MaterialUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Update a material; the consuming rate is recomputed."""
    service = MaterialService(MaterialCatalog(db))
    try:
        material = service.get(session, item_code)
        candidate = service.candidate_from(material, **material_update.model_dump(exclude_unset=True))
        return service.update(session, item_code, candidate)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except MaterialNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MaterialValidationError as e:
        raise _validation_error(e)


@router.delete("/{item_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    item_code: str,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Delete a material. Quotation lines keep their copied values."""
    try:
        MaterialService(MaterialCatalog(db)).delete(session, item_code)
    except PermissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except MaterialNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return None
