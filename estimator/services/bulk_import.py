"""CSV bulk import of materials.

File format: UTF-8 text, first line is a header and is ignored, then one
material per line with six comma-separated columns in this order:

    item code, item name, storing UOM, purchasing amount, consuming UOM, conversion unit

Double quotes toggle a literal mode in which commas are not separators. The
quote characters themselves are dropped.
"""
import csv
import enum
import io
import math
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Union

from sqlalchemy.exc import SQLAlchemyError

from estimator.errors import UnreadableSource
from estimator.models.material import Material
from estimator.permissions import AuthSession, Permission, require
from estimator.services.catalog import MaterialCatalog
from estimator.services.pricing import ValidationIssue, check_key, derive_consuming_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CSVColumn:
    field: str
    display_name: str


TEMPLATE_COLUMNS = (
    CSVColumn("item_code", "Item Code"),
    CSVColumn("item_name", "Item Name"),
    CSVColumn("storing_uom", "Storing UOM"),
    CSVColumn("purchasing_amount", "Purchasing Amount"),
    CSVColumn("consuming_uom", "Consuming UOM"),
    CSVColumn("conversion_unit", "Conversion Unit"),
)

# (item code, item name, storing UOM, purchasing amount, consuming UOM, conversion unit)
TEMPLATE_SAMPLES = (
    ("CEM001", "Portland Cement", "Bag", 25.00, "Kg", 50.00),
    ("STL001", "Steel Rebar 12mm", "Ton", 2500.00, "Kg", 1000.00),
    ("BLK001", "Concrete Block 200mm", "Piece", 3.50, "Piece", 1.00),
    ("SND001", "Fine Sand", "Cubic Meter", 45.00, "Cubic Meter", 1.00),
    ("GRV001", "Coarse Aggregate", "Cubic Meter", 55.00, "Cubic Meter", 1.00),
    ("PNT001", "Emulsion Paint", "Liter", 15.00, "Liter", 1.00),
    ("TIL001", "Ceramic Floor Tile", "Square Meter", 35.00, "Square Meter", 1.00),
    ("WIR001", "Electrical Wire 2.5mm", "Meter", 2.50, "Meter", 1.00),
    ("PIP001", "PVC Pipe 110mm", "Meter", 12.00, "Meter", 1.00),
    ("INS001", "Thermal Insulation", "Square Meter", 8.50, "Square Meter", 1.00),
)

FIELD_COUNT = len(TEMPLATE_COLUMNS)
DEFAULT_PURCHASING_AMOUNT = 0.0
DEFAULT_CONVERSION_UNIT = 1.0


def generate_template() -> str:
    """CSV template with header row and sample materials."""
    lines = [",".join(column.display_name for column in TEMPLATE_COLUMNS)]
    for code, name, storing, amount, consuming, conversion in TEMPLATE_SAMPLES:
        lines.append(f"{code},{name},{storing},{amount:.2f},{consuming},{conversion:.2f}")
    return "\n".join(lines) + "\n"


def _export_value(value) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return value


def export_materials(materials: Iterable[Material]) -> str:
    """Write materials in template column order."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([column.display_name for column in TEMPLATE_COLUMNS])
    for material in materials:
        writer.writerow([_export_value(getattr(material, column.field)) for column in TEMPLATE_COLUMNS])
    return output.getvalue()


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ImportRow:
    """One parsed data line. row_number is the 1-based line in the file."""
    row_number: int
    item_code: str
    item_name: str
    storing_uom: str
    purchasing_amount: float
    consuming_uom: str
    conversion_unit: float
    
    @property
    def consuming_rate(self) -> float:
        return derive_consuming_rate(self.purchasing_amount, self.conversion_unit)


def split_csv_line(line: str) -> List[str]:
    """Split on commas outside double-quoted segments."""
    columns = []
    current = []
    inside_quotes = False
    for char in line:
        if char == '"':
            inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            columns.append("".join(current))
            current = []
        else:
            current.append(char)
    columns.append("".join(current))
    return columns


def parse_number(text: str, default: float) -> float:
    """Parse a finite decimal number, falling back to default."""
    text = text.strip()
    if not text or "_" in text:
        return default
    try:
        value = float(text)
    except ValueError:
        return default
    if not math.isfinite(value):
        return default
    return value


def parse_csv(content: str) -> List[ImportRow]:
    """Turn CSV text into import rows.
    
    The header line is discarded, blank lines are ignored and lines with
    fewer than six columns are skipped without being reported. Unparseable
    amounts become 0 and unparseable conversion units become 1.
    """
    rows = []
    lines = content.splitlines()
    for index, line in enumerate(lines[1:], start=2):
        line = line.strip()
        if not line:
            continue
        columns = split_csv_line(line)
        if len(columns) < FIELD_COUNT:
            continue
        columns = [column.strip() for column in columns]
        rows.append(ImportRow(
            row_number=index,
            item_code=columns[0],
            item_name=columns[1],
            storing_uom=columns[2],
            purchasing_amount=parse_number(columns[3], DEFAULT_PURCHASING_AMOUNT),
            consuming_uom=columns[4],
            conversion_unit=parse_number(columns[5], DEFAULT_CONVERSION_UNIT),
        ))
    return rows


def decode_source(raw: Union[bytes, str]) -> str:
    """Decode uploaded content as UTF-8."""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnreadableSource(str(e)) from e


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------

class ImportState(str, enum.Enum):
    IDLE = "idle"
    PARSING = "parsing"
    PREVIEWING = "previewing"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RowOutcome:
    row: int
    message: Optional[str] = None
    
    @property
    def ok(self) -> bool:
        return self.message is None


@dataclass
class ImportSummary:
    """Aggregate result of one import run.
    
    save_error is set when rows were accepted but the final commit failed;
    the per-row outcomes are kept as they were.
    """
    outcomes: List[RowOutcome] = field(default_factory=list)
    save_error: Optional[str] = None
    
    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)
    
    @property
    def error_count(self) -> int:
        return len(self.errors)
    
    @property
    def errors(self) -> List[RowOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


class BulkImport:
    """One bulk-upload workflow: parse, preview, then import.
    
    Parsing is repeatable and always gives the same rows for the same text.
    Importing is not: a second run finds every key already in the catalog.
    """
    
    def __init__(self, catalog: MaterialCatalog):
        self.catalog = catalog
        self.state = ImportState.IDLE
        self.rows: List[ImportRow] = []
        self.failure_reason: Optional[str] = None
    
    def parse(self, session: AuthSession, raw: Union[bytes, str]) -> List[ImportRow]:
        """Parse content and hold the rows for preview."""
        require(session, Permission.BULK_UPLOAD)
        self.state = ImportState.PARSING
        self.rows = []
        self.failure_reason = None
        try:
            content = decode_source(raw)
        except UnreadableSource as e:
            self.state = ImportState.FAILED
            self.failure_reason = e.reason
            logger.warning("Bulk import aborted: %s", e)
            raise
        self.rows = parse_csv(content)
        self.state = ImportState.PREVIEWING
        logger.info("Parsed %d material rows for import", len(self.rows))
        return self.rows
    
    def run(self, session: AuthSession) -> ImportSummary:
        """Import the parsed rows in file order.
        
        A rejected row never stops the batch. Accepted rows are committed
        together at the end.
        """
        require(session, Permission.BULK_UPLOAD)
        if self.state not in (ImportState.PREVIEWING, ImportState.COMPLETED):
            raise RuntimeError(f"Cannot import from state '{self.state.value}'; parse content first")
        
        self.state = ImportState.IMPORTING
        summary = ImportSummary()
        accepted: Set[str] = set()
        
        for row in self.rows:
            issue = self._check(row, accepted)
            if issue:
                summary.outcomes.append(RowOutcome(row.row_number, issue.message))
                continue
            self.catalog.insert(Material(
                item_code=row.item_code,
                item_name=row.item_name,
                storing_uom=row.storing_uom,
                consuming_uom=row.consuming_uom,
                purchasing_amount=row.purchasing_amount,
                conversion_unit=row.conversion_unit,
                consuming_rate=row.consuming_rate,
            ))
            accepted.add(row.item_code)
            summary.outcomes.append(RowOutcome(row.row_number))
        
        try:
            self.catalog.commit()
        except SQLAlchemyError as e:
            self.catalog.rollback()
            summary.save_error = f"Failed to save materials: {e}"
            logger.exception("Bulk import commit failed")
        
        self.state = ImportState.COMPLETED
        logger.info(
            "Bulk import finished: %d imported, %d errors",
            summary.success_count,
            summary.error_count,
        )
        return summary
    
    def _check(self, row: ImportRow, accepted: Set[str]) -> Optional[ValidationIssue]:
        # Earlier rows of this batch first, then the stored catalog
        return check_key(row.item_code, accepted) or check_key(row.item_code, self.catalog)
    
    def import_csv(self, session: AuthSession, raw: Union[bytes, str]) -> ImportSummary:
        """Parse and import in one step."""
        self.parse(session, raw)
        return self.run(session)
