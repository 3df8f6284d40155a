from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import pandas as pd
from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_roles
from src.core.roles import ADMIN
from src.schemas.exams import ClassTermReport
from src.services.reports import ReportService

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/schools/{school_code}/portal/reports",
    tags=["Reports"],
)


def _export_dataframe(
    df: pd.DataFrame,
    filename_base: str,
    export_format: str,
) -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
      - pdf: application/pdf (simple tabular rendering)
    """
    export_format = (export_format or "csv").lower()

    if export_format in ("xlsx", "excel", "xls"):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Students")
        buffer.seek(0)
        headers = {
            "Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'
        }
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    if export_format == "pdf":
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
        )
        styles = getSampleStyleSheet()
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        elements: list = [Paragraph(f"{filename_base} ({generated})", styles["Title"])]

        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
                    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ]
            )
        )
        elements.append(table)
        doc.build(elements)
        buffer.seek(0)
        headers = {
            "Content-Disposition": f'attachment; filename="{filename_base}.pdf"'
        }
        return StreamingResponse(buffer, media_type="application/pdf", headers=headers)

    # Default: CSV
    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    headers = {
        "Content-Disposition": f'attachment; filename="{filename_base}.csv"'
    }
    return StreamingResponse(buffer, media_type="text/csv", headers=headers)


# PUBLIC_INTERFACE
@router.get(
    "/class-term",
    response_model=ClassTermReport,
    summary="Class term report",
    description=(
        "Per-student totals of every assessment of the class in the academic year, with the "
        "percentage graded against the class's grading scale. Sorted by percentage, best first."
    ),
    dependencies=[Depends(require_roles(ADMIN))],
)
async def class_term_report(
    class_id: UUID = Query(...),
    academic_year_id: UUID = Query(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> ClassTermReport:
    return await ReportService(session).class_term_report(class_id, academic_year_id)


# PUBLIC_INTERFACE
@router.get(
    "/students/export",
    summary="Export students",
    description="Exports the student register.",
    response_description="File stream (CSV/XLSX/PDF)",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def export_students(
    school_code: str = Path(..., description="School code"),
    session: AsyncSession = Depends(get_tenant_session),
    class_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    format: str = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    """
    Export students with their profile, class and academic year.

    The file is named students-<school>-<YYYY-MM-DD>.
    """
    df = await ReportService(session).students_frame(
        class_id=class_id, academic_year_id=academic_year_id, is_active=is_active
    )
    today = datetime.now(timezone.utc).date().isoformat()
    return _export_dataframe(df, f"students-{school_code.strip().lower()}-{today}", format)
