"""
Prescription PDF generation.
Renders a single-page A4 prescription: clinic header, patient card,
free-text prescription body, medication table and a signature block.
"""
import base64
import io
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

PAGE_WIDTH, PAGE_HEIGHT = A4

BRAND_BLUE = (37 / 255, 99 / 255, 235 / 255)
LIGHT_BLUE = (219 / 255, 234 / 255, 254 / 255)
DARK_GRAY = (31 / 255, 41 / 255, 55 / 255)
PALE_GRAY = (243 / 255, 244 / 255, 246 / 255)
ROW_SHADE = (249 / 255, 250 / 255, 251 / 255)
VERIFIED_GREEN = (34 / 255, 197 / 255, 94 / 255)


@dataclass
class PrescribedMedication:
    name: str
    dosage: str
    frequency: str
    duration: str


@dataclass
class PrescriptionData:
    patient_name: str
    patient_age: int
    patient_mrn: str
    doctor_name: str
    date: str  # ISO timestamp
    content: str
    medications: List[PrescribedMedication] = field(default_factory=list)
    doctor_signature: Optional[str] = None


def _y(top_mm: float) -> float:
    """Convert a distance from the top edge in mm to reportlab's bottom-up points."""
    return PAGE_HEIGHT - top_mm * mm


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None


def verification_hash(mrn: str, millis: Optional[int] = None) -> str:
    millis = int(time.time() * 1000) if millis is None else millis
    return base64.b64encode(f"{mrn}-{millis}".encode()).decode()[:16]


class PrescriptionPDFGenerator:
    """Draws prescriptions with reportlab's canvas API and returns the PDF bytes."""

    def generate(self, data: PrescriptionData) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Prescription - {data.patient_name}")

        self._draw_header(pdf)
        self._draw_patient_card(pdf, data)
        y = self._draw_body(pdf, data.content)
        if data.medications:
            y = self._draw_medications(pdf, data.medications, y)
        self._draw_signature(pdf, data, y)
        self._draw_footer(pdf)

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _draw_header(self, pdf: canvas.Canvas) -> None:
        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.rect(0, _y(40), PAGE_WIDTH, 40 * mm, stroke=0, fill=1)

        pdf.setFillColorRGB(1, 1, 1)
        pdf.circle(25 * mm, _y(20), 10 * mm, stroke=0, fill=1)
        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawCentredString(25 * mm, _y(23), "M")

        pdf.setFillColorRGB(1, 1, 1)
        pdf.setFont("Helvetica-Bold", 22)
        pdf.drawString(42 * mm, _y(18), "MedIQ Healthcare")
        pdf.setFont("Helvetica", 9)
        pdf.drawString(42 * mm, _y(25), "Advanced EHR System | Digital Prescription")
        pdf.drawString(42 * mm, _y(31), "+91-1800-MEDIQ | care@mediq.health")

        pdf.setFillColorRGB(*PALE_GRAY)
        pdf.rect(0, _y(52), PAGE_WIDTH, 12 * mm, stroke=0, fill=1)
        pdf.setFillColorRGB(*DARK_GRAY)
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawCentredString(PAGE_WIDTH / 2, _y(48), "Rx PRESCRIPTION")

    def _draw_patient_card(self, pdf: canvas.Canvas, data: PrescriptionData) -> None:
        top = 60
        pdf.setFillColorRGB(*LIGHT_BLUE)
        pdf.setStrokeColorRGB(*BRAND_BLUE)
        pdf.setLineWidth(0.5)
        pdf.roundRect(15 * mm, _y(top + 32), 180 * mm, 32 * mm, 3 * mm, stroke=1, fill=1)

        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(20 * mm, _y(top + 7), "PATIENT INFORMATION")

        issued = _parse_date(data.date)
        date_label = issued.strftime("%d/%m/%Y") if issued else data.date
        time_label = issued.strftime("%I:%M %p") if issued else ""

        rows = [
            (20, top + 14, "Name:", data.patient_name),
            (20, top + 20, "Age:", f"{data.patient_age} years"),
            (20, top + 26, "MRN:", data.patient_mrn),
            (120, top + 14, "Date:", date_label),
            (120, top + 20, "Time:", time_label),
        ]
        pdf.setFillColorRGB(*DARK_GRAY)
        for x, y, label, value in rows:
            pdf.setFont("Helvetica-Bold", 9)
            pdf.drawString(x * mm, _y(y), label)
            pdf.setFont("Helvetica", 9)
            pdf.drawString((x + 15) * mm, _y(y), value)

    def _draw_body(self, pdf: canvas.Canvas, content: str) -> float:
        top = 100
        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(15 * mm, _y(top), "PRESCRIPTION DETAILS")

        top += 6
        pdf.setStrokeColorRGB(200 / 255, 200 / 255, 200 / 255)
        pdf.setLineWidth(0.3)
        pdf.roundRect(15 * mm, _y(top + 50), 180 * mm, 50 * mm, 2 * mm, stroke=1, fill=0)

        pdf.setFillColorRGB(*DARK_GRAY)
        pdf.setFont("Helvetica", 9)
        top += 6
        for paragraph in (content or "").splitlines() or [""]:
            for line in simpleSplit(paragraph, "Helvetica", 9, 170 * mm) or [""]:
                pdf.drawString(20 * mm, _y(top), line)
                top += 5
        return top

    def _draw_medications(
        self, pdf: canvas.Canvas, medications: List[PrescribedMedication], top: float
    ) -> float:
        top = max(top + 10, 160)
        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(15 * mm, _y(top), "MEDICATIONS")

        top += 6
        pdf.rect(15 * mm, _y(top + 8), 180 * mm, 8 * mm, stroke=0, fill=1)
        pdf.setFillColorRGB(1, 1, 1)
        pdf.setFont("Helvetica-Bold", 8)
        columns = [(18, "#"), (25, "Medicine"), (85, "Dosage"), (120, "Frequency"), (160, "Duration")]
        for x, title in columns:
            pdf.drawString(x * mm, _y(top + 5), title)

        top += 8
        pdf.setFont("Helvetica", 8)
        for i, med in enumerate(medications):
            if i % 2 == 0:
                pdf.setFillColorRGB(*ROW_SHADE)
                pdf.rect(15 * mm, _y(top + 7), 180 * mm, 7 * mm, stroke=0, fill=1)
            pdf.setFillColorRGB(*DARK_GRAY)
            values = [str(i + 1), med.name, med.dosage, med.frequency, med.duration]
            for (x, _), value in zip(columns, values):
                pdf.drawString(x * mm, _y(top + 5), value)
            top += 7
        return top

    def _draw_signature(self, pdf: canvas.Canvas, data: PrescriptionData, top: float) -> None:
        top = max(top + 15, 245)
        pdf.setStrokeColorRGB(59 / 255, 130 / 255, 246 / 255)
        pdf.roundRect(120 * mm, _y(top + 30), 70 * mm, 30 * mm, 2 * mm, stroke=1, fill=0)

        pdf.setFillColorRGB(*BRAND_BLUE)
        pdf.setFont("Helvetica-Bold", 9)
        pdf.drawString(125 * mm, _y(top + 6), "Digitally Signed By:")

        pdf.setStrokeColorRGB(*BRAND_BLUE)
        pdf.setLineWidth(0.8)
        pdf.line(125 * mm, _y(top + 16), 185 * mm, _y(top + 16))

        pdf.setFillColorRGB(*DARK_GRAY)
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(125 * mm, _y(top + 21), data.doctor_name)

        pdf.setFillColorRGB(*VERIFIED_GREEN)
        pdf.setFont("Helvetica", 7)
        pdf.drawString(125 * mm, _y(top + 26), "VERIFIED")

        pdf.setFillColorRGB(100 / 255, 100 / 255, 100 / 255)
        pdf.setFont("Helvetica", 6)
        pdf.drawString(125 * mm, _y(top + 30), f"Hash: {verification_hash(data.patient_mrn)}")

    def _draw_footer(self, pdf: canvas.Canvas) -> None:
        pdf.setStrokeColorRGB(*BRAND_BLUE)
        pdf.setLineWidth(0.5)
        pdf.line(15 * mm, _y(280), 195 * mm, _y(280))

        pdf.setFillColorRGB(120 / 255, 120 / 255, 120 / 255)
        pdf.setFont("Helvetica-Oblique", 7)
        pdf.drawCentredString(PAGE_WIDTH / 2, _y(285), "This is a digitally generated prescription from MedIQ EHR System")
        pdf.drawCentredString(PAGE_WIDTH / 2, _y(289), "For verification, visit: mediq.health/verify")
