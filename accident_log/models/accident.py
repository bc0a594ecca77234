import uuid
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from accident_log.config import settings

class AccidentType(str, Enum):
    CRASH = "crash"
    COLLISION = "collision"
    RUN_OVER = "run_over"

    @property
    def label(self) -> str:
        return ACCIDENT_TYPE_LABELS[self]

# 화면 표시용 라벨
ACCIDENT_TYPE_LABELS = {
    AccidentType.CRASH: "Collision with object",
    AccidentType.COLLISION: "Collision with vehicle",
    AccidentType.RUN_OVER: "Pedestrian strike",
}

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _new_id() -> str:
    return str(uuid.uuid4())

def format_date(value: datetime) -> str:
    return value.strftime(settings.DATE_FORMAT)

class Location(BaseModel):
    latitude: float
    longitude: float
    accuracy_meters: float

    class Config:
        frozen = True

class AccidentRecord(BaseModel):
    """저장된 사고 기록. 생성 후 변경 불가"""
    id: str = Field(default_factory=_new_id)
    accident_type: AccidentType
    occurred_at: datetime
    plate_number: str
    driver_name: str
    driver_id: str
    notes: str = ""
    photo: Optional[bytes] = None
    location: Optional[Location] = None

    class Config:
        frozen = True

class FormState(BaseModel):
    """작성 중인 사고 기록 + 화면 상태 플래그"""
    accident_type: AccidentType = AccidentType.CRASH
    occurred_at: datetime = Field(default_factory=_now)
    plate_number: str = ""
    driver_name: str = ""
    driver_id: str = ""
    notes: str = ""
    photo: Optional[bytes] = None
    location: Optional[Location] = None
    location_loading: bool = False
    date_picker_open: bool = False

class ValidationResult(BaseModel):
    valid: bool
    message: Optional[str] = None

# --- API 스키마 ---

class FormUpdate(BaseModel):
    accident_type: Optional[AccidentType] = None
    plate_number: Optional[str] = None
    driver_name: Optional[str] = None
    driver_id: Optional[str] = None
    notes: Optional[str] = None

class DateUpdate(BaseModel):
    occurred_at: datetime

class PhotoUpload(BaseModel):
    image_data: str  # base64

class FormStateResponse(BaseModel):
    accident_type: AccidentType
    type_label: str
    occurred_at: datetime
    date_text: str
    plate_number: str
    driver_name: str
    driver_id: str
    notes: str
    has_photo: bool
    location: Optional[Location] = None
    location_loading: bool
    date_picker_open: bool

    @classmethod
    def from_state(cls, state: FormState) -> "FormStateResponse":
        return cls(
            accident_type=state.accident_type,
            type_label=state.accident_type.label,
            occurred_at=state.occurred_at,
            date_text=format_date(state.occurred_at),
            plate_number=state.plate_number,
            driver_name=state.driver_name,
            driver_id=state.driver_id,
            notes=state.notes,
            has_photo=state.photo is not None,
            location=state.location,
            location_loading=state.location_loading,
            date_picker_open=state.date_picker_open,
        )

class AccidentResponse(BaseModel):
    id: str
    accident_type: AccidentType
    type_label: str
    occurred_at: datetime
    date_text: str
    plate_number: str
    driver_name: str
    driver_id: str
    notes: str
    has_photo: bool
    location: Optional[Location] = None

    @classmethod
    def from_record(cls, record: AccidentRecord) -> "AccidentResponse":
        return cls(
            id=record.id,
            accident_type=record.accident_type,
            type_label=record.accident_type.label,
            occurred_at=record.occurred_at,
            date_text=format_date(record.occurred_at),
            plate_number=record.plate_number,
            driver_name=record.driver_name,
            driver_id=record.driver_id,
            notes=record.notes,
            has_photo=record.photo is not None,
            location=record.location,
        )

class AccidentSummary(BaseModel):
    """목록 화면의 카드 한 장"""
    id: str
    title: str
    plate_number: str
    driver_name: str
    driver_id: str
    gps: str
    photo: str
    notes: Optional[str] = None

class RecentAccidents(BaseModel):
    total: int
    records: List[AccidentSummary]
