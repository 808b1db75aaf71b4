"""Catalog collaborator: the only path materials take to and from storage."""
from typing import List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from estimator.models.material import Material


class MaterialCatalog:
    """Key-addressed material storage over one ORM session.
    
    insert/update/delete stage changes; nothing is durable until commit().
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def find_by_key(self, item_code: str) -> Optional[Material]:
        return self.db.query(Material).filter(Material.item_code == item_code).first()
    
    def __contains__(self, item_code: object) -> bool:
        if not isinstance(item_code, str):
            return False
        return self.find_by_key(item_code) is not None
    
    def insert(self, material: Material) -> Material:
        self.db.add(material)
        return material
    
    def update(self, material: Material) -> Material:
        self.db.flush()
        return material
    
    def delete(self, material: Material) -> None:
        self.db.delete(material)
        self.db.flush()
    
    def commit(self) -> None:
        self.db.commit()
    
    def rollback(self) -> None:
        self.db.rollback()
    
    def keys(self) -> Set[str]:
        return {code for (code,) in self.db.query(Material.item_code).all()}
    
    def list(self, search: Optional[str] = None, skip: int = 0, limit: Optional[int] = None) -> List[Material]:
        """Materials sorted by item code, optionally filtered by code or name."""
        query = self.db.query(Material)
        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(Material.item_code.ilike(search_term), Material.item_name.ilike(search_term))
            )
        query = query.order_by(Material.item_code).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()
