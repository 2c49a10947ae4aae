"""
ID Card Service - Render the student ID card emailed after registration
"""

from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape
import io

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A6
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from aaghaaz.core.config import settings
from aaghaaz.core.logging_config import logger


class IdCardService:
    """Generate single-page PDF ID cards for students"""

    def generate_filename(self, roll_id: str) -> str:
        return f"id-card-{roll_id}.pdf"

    def render(self, student, course_names: Optional[list] = None) -> bytes:
        """
        Build the card for ``student`` and return the PDF bytes.

        User-supplied text is escaped before it reaches reportlab's
        paragraph markup.
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A6,
            rightMargin=6*mm,
            leftMargin=6*mm,
            topMargin=6*mm,
            bottomMargin=6*mm,
            title=f"ID Card {student.roll_id}",
        )

        styles = getSampleStyleSheet()
        header_style = ParagraphStyle(
            'CardHeader',
            parent=styles['Heading1'],
            fontSize=16,
            textColor=colors.HexColor('#1a365d'),
            alignment=TA_CENTER,
            spaceAfter=2
        )
        sub_style = ParagraphStyle(
            'CardSub',
            parent=styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#718096'),
            alignment=TA_CENTER,
            spaceAfter=6
        )
        name_style = ParagraphStyle(
            'CardName',
            parent=styles['Heading2'],
            fontSize=13,
            textColor=colors.HexColor('#2d3748'),
            alignment=TA_CENTER,
            spaceAfter=6
        )

        content = [
            Paragraph(escape(settings.APP_NAME.upper()), header_style),
            Paragraph("Student Identity Card", sub_style),
            Spacer(1, 4),
            Paragraph(f"<b>{escape(student.full_name)}</b>", name_style),
        ]

        rows = [
            ['Roll ID', student.roll_id],
            ['Email', student.email],
            ['CNIC', student.cnic or '-'],
            ['Phone', student.phone_number or '-'],
            ['Status', student.status.value if student.status is not None else '-'],
        ]
        if course_names:
            rows.append(['Courses', ", ".join(course_names)])

        table = Table(
            [[Paragraph(escape(str(k)), styles['Normal']), Paragraph(escape(str(v)), styles['Normal'])] for k, v in rows],
            colWidths=[22*mm, 60*mm],
        )
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#e2e8f0')),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e0')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        content.append(table)
        content.append(Spacer(1, 8))
        content.append(Paragraph(f"Issued On: {datetime.utcnow().strftime('%B %d, %Y')}", sub_style))

        doc.build(content)
        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.debug(f"[IdCard] Rendered card for {student.roll_id} ({len(pdf_bytes)} bytes)")
        return pdf_bytes


id_card_service = IdCardService()
