"""Direct material create/update/delete."""
import logging
from typing import Optional

from estimator.errors import MaterialNotFound, MaterialValidationError
from estimator.models.material import Material
from estimator.permissions import AuthSession, Permission, require
from estimator.services.catalog import MaterialCatalog
from estimator.services.pricing import MaterialCandidate, validate

logger = logging.getLogger(__name__)


def apply_candidate(material: Material, candidate: MaterialCandidate) -> Material:
    """Copy candidate values onto a material and recompute its consuming rate."""
    material.item_code = candidate.item_code
    material.item_name = candidate.item_name
    material.storing_uom = candidate.storing_uom
    material.consuming_uom = candidate.consuming_uom
    material.purchasing_amount = candidate.purchasing_amount
    material.conversion_unit = candidate.conversion_unit
    material.consuming_rate = candidate.consuming_rate
    return material


class MaterialService:
    """Edits materials one at a time, enforcing the catalog invariants.
    
    Unlike bulk import, a non-positive conversion unit is rejected here
    rather than priced at 0.
    """
    
    def __init__(self, catalog: MaterialCatalog):
        self.catalog = catalog
    
    def get(self, session: AuthSession, item_code: str) -> Material:
        require(session, Permission.VIEW_MATERIALS)
        material = self.catalog.find_by_key(item_code)
        if material is None:
            raise MaterialNotFound(item_code)
        return material
    
    def create(self, session: AuthSession, candidate: MaterialCandidate) -> Material:
        require(session, Permission.EDIT_MATERIALS)
        candidate = candidate.normalized()
        issue = validate(candidate, self.catalog)
        if issue:
            raise MaterialValidationError(issue)
        
        material = apply_candidate(Material(), candidate)
        self.catalog.insert(material)
        self.catalog.commit()
        logger.info("Created material %s", material.item_code)
        return material
    
    def update(self, session: AuthSession, item_code: str, candidate: MaterialCandidate) -> Material:
        require(session, Permission.EDIT_MATERIALS)
        material = self.catalog.find_by_key(item_code)
        if material is None:
            raise MaterialNotFound(item_code)
        
        candidate = candidate.normalized()
        issue = validate(candidate, self.catalog, current_key=material.item_code)
        if issue:
            raise MaterialValidationError(issue)
        
        apply_candidate(material, candidate)
        self.catalog.update(material)
        self.catalog.commit()
        return material
    
    def delete(self, session: AuthSession, item_code: str) -> None:
        """Delete a material; quotation lines keep their own snapshot."""
        require(session, Permission.EDIT_MATERIALS)
        material = self.catalog.find_by_key(item_code)
        if material is None:
            raise MaterialNotFound(item_code)
        self.catalog.delete(material)
        self.catalog.commit()
        logger.info("Deleted material %s", item_code)
    
    def candidate_from(self, material: Material, **changes) -> MaterialCandidate:
        """Build a candidate from an existing material with some fields replaced."""
        values = {
            "item_code": material.item_code,
            "item_name": material.item_name,
            "storing_uom": material.storing_uom,
            "consuming_uom": material.consuming_uom,
            "purchasing_amount": material.purchasing_amount,
            "conversion_unit": material.conversion_unit,
        }
        values.update({key: value for key, value in changes.items() if key in values})
        return MaterialCandidate(**values)
