# form_controller.py
import asyncio
import logging
from datetime import datetime
from typing import Set
from accident_log.config import settings
from accident_log.models.accident import (
    AccidentRecord, FormState, FormUpdate, ValidationResult
)
from accident_log.services.device import (
    Capability, CameraCapture, DatePicker, HapticFeedback,
    LocationProvider, PermissionGateway, device
)
from accident_log.services.records import AccidentRegistry
from accident_log.websocket import notify_clients

logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = "Complete plate, name, and ID."

class FormValidationError(Exception):
    """저장 시 필수 항목 누락"""

    def __init__(self, message: str = VALIDATION_MESSAGE):
        super().__init__(message)
        self.message = message

def validate(state: FormState) -> ValidationResult:
    """차량 번호, 운전자 이름, 운전자 ID가 모두 입력되었는지 확인합니다."""
    required = (state.plate_number, state.driver_name, state.driver_id)
    if all(value.strip() for value in required):
        return ValidationResult(valid=True)
    return ValidationResult(valid=False, message=VALIDATION_MESSAGE)

def save(state: FormState) -> AccidentRecord:
    """
    폼 상태로 새 사고 기록을 만듭니다. 상태는 변경하지 않습니다.

    Raises:
        FormValidationError: 필수 항목이 비어 있는 경우
    """
    result = validate(state)
    if not result.valid:
        raise FormValidationError(result.message)

    return AccidentRecord(
        accident_type=state.accident_type,
        occurred_at=state.occurred_at,
        plate_number=state.plate_number.strip(),
        driver_name=state.driver_name.strip(),
        driver_id=state.driver_id.strip(),
        notes=state.notes.strip(),
        photo=state.photo,
        location=state.location,
    )

class AccidentFormController:
    """사고 등록 폼 - 입력 상태, 저장, 초기화와 기기 기능 호출을 담당"""

    def __init__(
        self,
        registry: AccidentRegistry,
        permissions: PermissionGateway,
        camera: CameraCapture,
        locator: LocationProvider,
        haptics: HapticFeedback,
        date_picker: DatePicker,
    ):
        self.registry = registry
        self.permissions = permissions
        self.camera = camera
        self.locator = locator
        self.haptics = haptics
        self.date_picker = date_picker
        self.state = FormState()
        self._pending_locations = 0
        self._open_pickers = 0
        self._location_tasks: Set[asyncio.Task] = set()

    # --- 저장 ---

    def submit(self) -> AccidentRecord:
        """현재 폼을 저장하고 목록 맨 앞에 추가한 뒤 폼을 비웁니다."""
        try:
            record = save(self.state)
        except FormValidationError:
            logger.info("사고 기록 저장 실패: 필수 항목 누락")
            raise

        self.registry.prepend(record)
        self.reset()
        logger.info(f"사고 기록 저장: {record.id} ({record.accident_type.label})")
        return record

    async def acknowledge_save(self, record: AccidentRecord):
        """저장 완료 진동과 목록 갱신 알림"""
        try:
            await self.haptics.pulse(settings.HAPTIC_PULSE_MS)
        except Exception as e:
            logger.debug(f"진동 요청 무시: {str(e)}")

        await notify_clients({
            "type": "accident_saved",
            "data": {
                "id": record.id,
                "type_label": record.accident_type.label,
                "occurred_at": record.occurred_at.isoformat(),
                "total": len(self.registry),
            }
        })

    def reset(self):
        # 사고 유형과 날짜는 다음 입력을 위해 유지
        self.state.plate_number = ""
        self.state.driver_name = ""
        self.state.driver_id = ""
        self.state.notes = ""
        self.state.photo = None
        self.state.location = None

    # --- 입력 ---

    def update_fields(self, update: FormUpdate):
        for key, value in update.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(self.state, key, value)

    def set_date(self, occurred_at: datetime):
        self.state.occurred_at = occurred_at

    async def pick_date(self):
        """날짜 선택 화면을 띄우고 선택된 날짜를 반영합니다. 취소 시 기존 날짜 유지"""
        self._open_pickers += 1
        self.state.date_picker_open = True
        try:
            selected = await self.date_picker.select_date(self.state.occurred_at)
        except Exception as e:
            logger.debug(f"날짜 선택 실패: {str(e)}")
            selected = None
        finally:
            self._open_pickers -= 1
            self.state.date_picker_open = self._open_pickers > 0

        if selected is not None:
            self.set_date(selected)

    # --- 사진 ---

    async def request_photo(self):
        try:
            await self.permissions.request({Capability.CAMERA})
            photo = await self.camera.capture()
        except Exception as e:
            logger.debug(f"사진 촬영 실패: {str(e)}")
            photo = None

        # 촬영 취소 시 기존 사진 유지
        if photo is not None:
            self.state.photo = photo

    def attach_photo(self, photo: bytes):
        self.state.photo = photo

    def clear_photo(self):
        self.state.photo = None

    # --- 위치 ---

    async def request_location(self):
        """
        현재 위치를 요청합니다. 실패 시 기존 위치를 유지하며 오류는 표시하지 않습니다.
        여러 요청이 동시에 진행되면 마지막으로 성공한 응답이 반영됩니다.
        """
        self._pending_locations += 1
        self.state.location_loading = True
        try:
            await self.permissions.request({Capability.FINE_LOCATION, Capability.COARSE_LOCATION})
            location = await self.locator.get_current_location()
        except Exception as e:
            logger.debug(f"위치 조회 실패: {str(e)}")
            location = None
        finally:
            self._pending_locations -= 1
            self.state.location_loading = self._pending_locations > 0

        if location is not None:
            self.state.location = location

    def start_location_request(self) -> asyncio.Task:
        """위치 요청을 백그라운드 작업으로 시작합니다."""
        self._pending_locations += 1
        self.state.location_loading = True
        task = asyncio.create_task(self._run_location_request())
        self._location_tasks.add(task)
        task.add_done_callback(self._location_tasks.discard)
        return task

    async def _run_location_request(self):
        # start_location_request에서 미리 올린 카운터를 넘겨받음
        self._pending_locations -= 1
        await self.request_location()

# 폼 컨트롤러 인스턴스 (화면당 하나)
form_controller = AccidentFormController(
    registry=AccidentRegistry(),
    permissions=device,
    camera=device,
    locator=device,
    haptics=device,
    date_picker=device,
)

def get_controller() -> AccidentFormController:
    return form_controller
