"""Material pricing: derived consuming rate and catalog validation."""
import enum
import math
from dataclasses import dataclass, replace
from typing import Container, Optional

DEFAULT_CONVERSION_UNIT = 1.0

REQUIRED_FIELDS = ("item_code", "item_name", "storing_uom", "consuming_uom", "purchasing_amount")


def derive_consuming_rate(purchasing_amount: float, conversion_unit: float) -> float:
    """Price per consuming unit.
    
    Returns 0 instead of failing when conversion_unit is not a positive
    number (NaN included).
    """
    if conversion_unit is None or not conversion_unit > 0:
        return 0.0
    return purchasing_amount / conversion_unit


class ValidationErrorKind(str, enum.Enum):
    MISSING_REQUIRED_FIELD = "missing_required_field"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    NON_POSITIVE_CONVERSION = "non_positive_conversion"
    DUPLICATE_KEY = "duplicate_key"


@dataclass(frozen=True)
class ValidationIssue:
    """Why a material candidate was rejected."""
    kind: ValidationErrorKind
    field: Optional[str] = None
    key: Optional[str] = None
    
    @property
    def message(self) -> str:
        if self.kind == ValidationErrorKind.MISSING_REQUIRED_FIELD:
            return f"Missing required field: {self.field}"
        if self.kind == ValidationErrorKind.NON_POSITIVE_AMOUNT:
            return "Purchasing amount must be greater than 0"
        if self.kind == ValidationErrorKind.NON_POSITIVE_CONVERSION:
            return "Conversion unit must be greater than 0"
        return f"Material with item code '{self.key}' already exists"


@dataclass(frozen=True)
class MaterialCandidate:
    """Proposed material values before they reach the catalog."""
    item_code: Optional[str]
    item_name: Optional[str]
    storing_uom: Optional[str]
    consuming_uom: Optional[str]
    purchasing_amount: Optional[float]
    conversion_unit: Optional[float] = None
    
    def normalized(self) -> "MaterialCandidate":
        """Trim text fields and apply the default conversion unit."""
        def clean(value):
            return value.strip() if isinstance(value, str) else value
        
        conversion = self.conversion_unit
        if conversion is None or (isinstance(conversion, str) and not conversion.strip()):
            conversion = DEFAULT_CONVERSION_UNIT
        return replace(
            self,
            item_code=clean(self.item_code),
            item_name=clean(self.item_name),
            storing_uom=clean(self.storing_uom),
            consuming_uom=clean(self.consuming_uom),
            conversion_unit=float(conversion),
        )
    
    @property
    def consuming_rate(self) -> float:
        return derive_consuming_rate(self.purchasing_amount or 0.0, self.conversion_unit)


def _positive_number(value: float) -> bool:
    return math.isfinite(value) and value > 0


def validate(
    candidate: MaterialCandidate,
    existing_keys: Container[str],
    current_key: Optional[str] = None,
) -> Optional[ValidationIssue]:
    """Check a normalized candidate against the catalog invariants.
    
    Returns None when the candidate is acceptable. When editing, pass the
    record's current item code as current_key; the duplicate check is
    skipped if the code is unchanged.
    """
    for field in REQUIRED_FIELDS:
        value = getattr(candidate, field)
        if value is None or (isinstance(value, str) and not value):
            return ValidationIssue(ValidationErrorKind.MISSING_REQUIRED_FIELD, field=field)
    
    if not _positive_number(candidate.purchasing_amount):
        return ValidationIssue(ValidationErrorKind.NON_POSITIVE_AMOUNT, field="purchasing_amount")
    conversion = DEFAULT_CONVERSION_UNIT if candidate.conversion_unit is None else candidate.conversion_unit
    if not _positive_number(conversion):
        return ValidationIssue(ValidationErrorKind.NON_POSITIVE_CONVERSION, field="conversion_unit")
    
    if candidate.item_code != current_key and candidate.item_code in existing_keys:
        return ValidationIssue(ValidationErrorKind.DUPLICATE_KEY, key=candidate.item_code)
    return None


def check_key(item_code: str, existing_keys: Container[str]) -> Optional[ValidationIssue]:
    """Duplicate-key check on its own, as used by bulk import."""
    if item_code in existing_keys:
        return ValidationIssue(ValidationErrorKind.DUPLICATE_KEY, key=item_code)
    return None
