"""
Export/import service for eligible catalogs (JSON records and Excel workbooks).
"""

import io
import logging
from typing import Any, Dict, List
from zipfile import BadZipFile
from sqlalchemy.ext.asyncio import AsyncSession

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from consultrack.core.exceptions import ValidationError
from consultrack.schemas.eligible_catalog import CATALOG_EXPORT_FIELDS, CatalogType
from consultrack.services.eligible_catalog_service import EligibleCatalogService

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class CatalogExcelService:
    """Service for exporting catalogs and reading uploaded catalog workbooks."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.catalog_service = EligibleCatalogService(session)

    async def export_records(self, catalog: CatalogType) -> List[Dict[str, Any]]:
        """The catalog as flat JSON-ready records of its public fields."""
        if catalog == CatalogType.ENGAGEMENTS:
            entries = await self.catalog_service.list_engagements()
        elif catalog == CatalogType.TASKS:
            entries = await self.catalog_service.list_tasks()
        else:
            entries = await self.catalog_service.list_deliverables()

        fields = CATALOG_EXPORT_FIELDS[catalog]
        records = []
        for entry in entries:
            dumped = entry.model_dump(mode="json")
            records.append({field: dumped[field] for field in fields})
        return records

    async def export_catalog_to_excel(self, catalog: CatalogType) -> io.BytesIO:
        """Export a catalog as a single-sheet workbook with a header row."""
        records = await self.export_records(catalog)
        fields = CATALOG_EXPORT_FIELDS[catalog]

        wb = Workbook()
        ws = wb.active
        ws.title = catalog.value

        header_fill = PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid")
        for col, field in enumerate(fields, start=1):
            cell = ws.cell(row=1, column=col, value=field)
            cell.font = Font(bold=True)
            cell.fill = header_fill

        for row, record in enumerate(records, start=2):
            for col, field in enumerate(fields, start=1):
                ws.cell(row=row, column=col, value=record[field])

        for col, field in enumerate(fields, start=1):
            width = max([len(field)] + [len(str(r[field] or "")) for r in records])
            ws.column_dimensions[get_column_letter(col)].width = min(width + 2, 60)
        ws.freeze_panes = "A2"

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        logger.info(f"Exported eligible {catalog.value} to Excel", extra={"rows": len(records)})
        return output

    def read_workbook(self, content: bytes) -> List[Dict[str, Any]]:
        """
        Rows of the first sheet as dicts keyed by the header row.

        Header names are trimmed and lower-cased; blank rows are ignored.
        Cell values are passed through untouched so the importer can report
        bad ones per record.
        """
        try:
            wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, ValueError) as e:
            raise ValidationError("Invalid Excel file", details={"reason": str(e)})

        try:
            ws = wb.worksheets[0] if wb.worksheets else None
            if ws is None:
                return []
            rows = ws.iter_rows(values_only=True)
            header_row = next(rows, None)
            if header_row is None:
                return []
            headers = [str(h).strip().lower() if h is not None else None for h in header_row]

            items = []
            for values in rows:
                if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                    continue
                items.append({
                    header: value
                    for header, value in zip(headers, values)
                    if header
                })
            return items
        finally:
            wb.close()
