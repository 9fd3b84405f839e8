"""
Generate a synthetic PDF fixture for testing.
Five pages of medical record text: a dated clinic note with a DOB, an
undated continuation page, a radiology report, an exact copy of that
report, and a follow-up visit.
"""
from __future__ import annotations

import io
from pathlib import Path

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

CLINIC_NOTE = [
    "Southwest Regional Medical Center",
    "Patient: John Smith",
    "DOB: 01/02/1980",
    "Chief complaint: lower back pain after a motor vehicle collision.",
    "Date of Service: 03/15/2024",
    "Provider: Sarah Johnson, MD",
]

CONTINUATION = [
    "Assessment and plan continued.",
    "Naproxen 500 mg twice daily with food.",
    "Physical therapy two to three times per week.",
    "Follow up in two weeks or sooner if symptoms worsen.",
]

RADIOLOGY_REPORT = [
    "Southwest Radiology Associates",
    "Exam Date: 03/18/2024",
    "Study: MRI lumbar spine without contrast.",
    "Findings: disc herniation with mild foraminal narrowing.",
    "Impression: findings consistent with reported injury.",
]

FOLLOW_UP = [
    "Southwest Regional Medical Center",
    "Visit Date: 04/02/2024",
    "Follow-up visit. Patient reports improvement in back pain.",
    "Continue physical therapy and home exercise program.",
]

PAGES = [CLINIC_NOTE, CONTINUATION, RADIOLOGY_REPORT, RADIOLOGY_REPORT, FOLLOW_UP]


def create_synthetic_pdf(pages: list[list[str]] | None = None) -> bytes:
    """Create a multi-page synthetic medical record PDF, one list of lines per page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, invariant=1)
    _, height = letter
    for lines in pages or PAGES:
        y = height - inch
        for line in lines:
            c.drawString(inch, y, line)
            y -= 0.3 * inch
        c.showPage()
    c.save()
    return buf.getvalue()


def write_fixture(path: Path, pages: list[list[str]] | None = None) -> Path:
    path.write_bytes(create_synthetic_pdf(pages))
    return path


if __name__ == "__main__":
    out = Path(__file__).parent / "sample_record.pdf"
    write_fixture(out)
    print(f"Wrote {out}")
