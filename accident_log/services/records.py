# records.py
import logging
from typing import List, Optional
from accident_log.config import settings
from accident_log.models.accident import AccidentRecord, AccidentSummary, format_date

logger = logging.getLogger(__name__)

class AccidentRegistry:
    """저장된 사고 기록 목록 (메모리 전용, 최신 기록이 맨 앞)"""

    def __init__(self):
        self._records: List[AccidentRecord] = []

    def prepend(self, record: AccidentRecord):
        self._records.insert(0, record)
        logger.debug(f"사고 기록 추가: {record.id} (총 {len(self._records)}건)")

    def list(self, skip: int = 0, limit: int = 100) -> List[AccidentRecord]:
        return self._records[skip:skip + limit]

    def recent(self, count: Optional[int] = None) -> List[AccidentRecord]:
        if count is None:
            count = settings.RECENT_RECORDS_SHOWN
        return self._records[:count]

    def get(self, record_id: str) -> Optional[AccidentRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def clear(self):
        self._records.clear()

    def __len__(self):
        return len(self._records)

def summarize(record: AccidentRecord) -> AccidentSummary:
    """기록을 목록 카드 형태로 변환합니다."""
    if record.location is not None:
        gps = f"{record.location.latitude}, {record.location.longitude}"
    else:
        gps = "(no location)"

    return AccidentSummary(
        id=record.id,
        title=f"{record.accident_type.label} • {format_date(record.occurred_at)}",
        plate_number=record.plate_number,
        driver_name=record.driver_name,
        driver_id=record.driver_id,
        gps=gps,
        photo="Yes" if record.photo is not None else "No",
        notes=record.notes if record.notes.strip() else None,
    )
