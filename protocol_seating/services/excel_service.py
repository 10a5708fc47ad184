"""
Excel processing service for guest list import/export
"""

import io
import logging
from typing import List, Optional, Tuple

import pandas as pd
from openpyxl.utils import get_column_letter

from protocol_seating.schemas.guest import GuestRecord, GuestStatus, GuestType
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.errors import ExcelImportError
from protocol_seating.services.layout_service import LayoutService
from protocol_seating.services.repositories import NOTES_SEPARATOR, new_id, split_notes

logger = logging.getLogger(__name__)

SHEET_NAME = "내빈리스트"
GUIDE_SHEET_NAME = "작성가이드"

COL_NAME = "이름"
COL_ORGANIZATION = "소속"
COL_POSITION = "직함"
COL_TYPE = "구분"
COL_TYPE_LEGACY = "VIP 여부"
COL_SEAT = "좌석번호"
COL_STATUS = "상태"
COL_BIOGRAPHY = "내빈정보"
COL_NOTES = "의전특이사항"

STATUS_LABELS = {
    GuestStatus.ARRIVED: "도착",
    GuestStatus.NOT_ARRIVED: "미도착",
    GuestStatus.CANCELLED: "불참",
}

class ExcelService:
    """Service for handling Excel operations"""

    REQUIRED_COLUMNS = [COL_NAME]
    TEMPLATE_WIDTHS = [12, 20, 15, 10, 12, 40, 40]
    EXPORT_WIDTHS = [12, 20, 15, 10, 12, 10, 40, 40]

    @staticmethod
    def _write_sheet(writer: pd.ExcelWriter, df: pd.DataFrame, sheet_name: str, widths: List[int]) -> None:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        sheet = writer.sheets[sheet_name]
        for i, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(i)].width = width

    @staticmethod
    def create_template() -> bytes:
        """Create Excel template with sample rows and a column guide"""
        df = pd.DataFrame([
            {
                COL_NAME: "홍길동",
                COL_ORGANIZATION: "경기도청",
                COL_POSITION: "국장",
                COL_TYPE: "VIP",
                COL_SEAT: "A-1",
                COL_BIOGRAPHY: "경기도청 총무국장을 역임하고 있으며...",
                COL_NOTES: "휠체어 사용|좌석 앞쪽 배치 필요",
            },
            {
                COL_NAME: "김철수",
                COL_ORGANIZATION: "수원시청",
                COL_POSITION: "과장",
                COL_TYPE: "일반",
                COL_SEAT: "B-3",
                COL_BIOGRAPHY: "",
                COL_NOTES: "",
            },
        ])
        guide = pd.DataFrame([
            {"항목": COL_NAME, "필수여부": "필수", "설명": "내빈 성명"},
            {"항목": COL_ORGANIZATION, "필수여부": "필수", "설명": "소속 기관/단체명"},
            {"항목": COL_POSITION, "필수여부": "선택", "설명": "직책 또는 직함"},
            {"항목": COL_TYPE, "필수여부": "선택", "설명": "VIP 또는 일반 (기본값: 일반)"},
            {"항목": COL_SEAT, "필수여부": "선택", "설명": "배정할 좌석번호 (예: A-1, B-3)"},
            {"항목": COL_BIOGRAPHY, "필수여부": "선택", "설명": "내빈 약력 또는 소개"},
            {"항목": COL_NOTES, "필수여부": "선택", "설명": "여러 항목은 | 기호로 구분 (예: 항목1|항목2)"},
        ])

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            ExcelService._write_sheet(writer, df, SHEET_NAME, ExcelService.TEMPLATE_WIDTHS)
            ExcelService._write_sheet(writer, guide, GUIDE_SHEET_NAME, [15, 10, 50])

        return buffer.getvalue()

    @staticmethod
    def validate_excel_structure(df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """Validate Excel file structure"""
        errors = []
        columns = [str(col).strip() for col in df.columns]
        missing_columns = [col for col in ExcelService.REQUIRED_COLUMNS if col not in columns]
        if missing_columns:
            errors.append(f"Missing required columns: {', '.join(missing_columns)}")
        return len(errors) == 0, errors

    @staticmethod
    def _cell(row: pd.Series, column: str) -> str:
        value = row.get(column, "")
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    @staticmethod
    def row_to_guest(row: pd.Series, event_id: str) -> GuestRecord:
        guest_type = ExcelService._cell(row, COL_TYPE) or ExcelService._cell(row, COL_TYPE_LEGACY)
        return GuestRecord(
            id=new_id(),
            event_id=event_id,
            name=ExcelService._cell(row, COL_NAME),
            organization=ExcelService._cell(row, COL_ORGANIZATION),
            position=ExcelService._cell(row, COL_POSITION),
            guest_type=GuestType.VIP if "VIP" in guest_type.upper() else GuestType.REGULAR,
            status=GuestStatus.NOT_ARRIVED,
            seat_number=ExcelService._cell(row, COL_SEAT) or None,
            biography=ExcelService._cell(row, COL_BIOGRAPHY) or None,
            protocol_notes=split_notes(ExcelService._cell(row, COL_NOTES)),
        )

    @staticmethod
    def parse_file(file_content: bytes, event_id: str) -> List[GuestRecord]:
        """Read the first sheet of an uploaded workbook into guest records.

        Seat numbers are kept verbatim; rows without a name are skipped.
        """
        try:
            df = pd.read_excel(io.BytesIO(file_content), dtype=str)
        except Exception as e:
            raise ExcelImportError(f"Error reading Excel file: {e}") from e

        df.columns = [str(col).strip() for col in df.columns]
        valid_structure, structure_errors = ExcelService.validate_excel_structure(df)
        if not valid_structure:
            raise ExcelImportError("; ".join(structure_errors))

        guests = [ExcelService.row_to_guest(row, event_id) for _, row in df.iterrows()]
        guests = [guest for guest in guests if guest.name]
        logger.info("Parsed %d guests from spreadsheet (%d rows)", len(guests), len(df))
        return guests

    @staticmethod
    def process_upload(
        file_content: bytes,
        event_id: str,
        auto_layout: bool = True,
    ) -> Tuple[List[GuestRecord], Optional[GridLayout]]:
        """Parse an upload and, when seat numbers allow it, derive its grid"""
        guests = ExcelService.parse_file(file_content, event_id)
        if not guests:
            raise ExcelImportError("No valid guest rows found in the file")

        layout = None
        if auto_layout:
            size = LayoutService.compute_grid_size(guests)
            if not size.is_empty:
                layout = size.to_layout()
                logger.info("Generated %d x %d seat grid from upload", layout.rows, layout.cols)
        return guests, layout

    @staticmethod
    def export_guests(guests: List[GuestRecord]) -> bytes:
        """Export the current guest list to Excel"""
        data = [
            {
                COL_NAME: guest.name,
                COL_ORGANIZATION: guest.organization,
                COL_POSITION: guest.position,
                COL_TYPE: "VIP" if guest.guest_type == GuestType.VIP else "일반",
                COL_SEAT: guest.seat_number or "",
                COL_STATUS: STATUS_LABELS[guest.status],
                COL_BIOGRAPHY: guest.biography or "",
                COL_NOTES: f" {NOTES_SEPARATOR} ".join(guest.protocol_notes),
            }
            for guest in guests
        ]
        columns = [COL_NAME, COL_ORGANIZATION, COL_POSITION, COL_TYPE, COL_SEAT, COL_STATUS, COL_BIOGRAPHY, COL_NOTES]
        df = pd.DataFrame(data, columns=columns)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            ExcelService._write_sheet(writer, df, SHEET_NAME, ExcelService.EXPORT_WIDTHS)

        return buffer.getvalue()
