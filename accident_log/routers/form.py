# form.py
import asyncio
import base64
import binascii
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from accident_log.models.accident import (
    AccidentResponse, DateUpdate, FormStateResponse, FormUpdate, PhotoUpload
)
from accident_log.services.form_controller import (
    AccidentFormController, FormValidationError, get_controller
)

router = APIRouter(
    prefix="/form",
    tags=["form"],
)

@router.get("/", response_model=FormStateResponse)
async def get_form(controller: AccidentFormController = Depends(get_controller)):
    """현재 작성 중인 폼 상태를 조회합니다."""
    return FormStateResponse.from_state(controller.state)

@router.patch("/", response_model=FormStateResponse)
async def update_form(
    update: FormUpdate,
    controller: AccidentFormController = Depends(get_controller)
):
    """입력 항목을 변경합니다."""
    controller.update_fields(update)
    return FormStateResponse.from_state(controller.state)

@router.put("/date", response_model=FormStateResponse)
async def set_date(
    date_update: DateUpdate,
    controller: AccidentFormController = Depends(get_controller)
):
    """사고 날짜를 지정합니다."""
    controller.set_date(date_update.occurred_at)
    return FormStateResponse.from_state(controller.state)

@router.post("/date/pick", response_model=FormStateResponse)
async def pick_date(controller: AccidentFormController = Depends(get_controller)):
    """기기의 날짜 선택 화면으로 사고 날짜를 선택합니다."""
    await controller.pick_date()
    return FormStateResponse.from_state(controller.state)

@router.post("/photo/capture", response_model=FormStateResponse)
async def capture_photo(controller: AccidentFormController = Depends(get_controller)):
    """기기 카메라로 사진을 촬영합니다."""
    await controller.request_photo()
    return FormStateResponse.from_state(controller.state)

@router.put("/photo", response_model=FormStateResponse)
async def upload_photo(
    upload: PhotoUpload,
    controller: AccidentFormController = Depends(get_controller)
):
    """클라이언트에서 촬영한 사진(Base64)을 첨부합니다."""
    try:
        photo = base64.b64decode(upload.image_data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image data.")
    if not photo:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image data.")

    controller.attach_photo(photo)
    return FormStateResponse.from_state(controller.state)

@router.delete("/photo", response_model=FormStateResponse)
async def clear_photo(controller: AccidentFormController = Depends(get_controller)):
    """첨부된 사진을 제거합니다."""
    controller.clear_photo()
    return FormStateResponse.from_state(controller.state)

@router.post("/location", response_model=FormStateResponse, status_code=status.HTTP_202_ACCEPTED)
async def request_location(controller: AccidentFormController = Depends(get_controller)):
    """
    현재 위치 요청을 시작합니다. 결과는 기기 응답 후 폼에 반영되며
    진행 중에는 location_loading이 true입니다.
    """
    controller.start_location_request()
    await asyncio.sleep(0)
    return FormStateResponse.from_state(controller.state)

@router.post("/save", response_model=AccidentResponse, status_code=status.HTTP_201_CREATED)
async def save_form(
    background_tasks: BackgroundTasks,
    controller: AccidentFormController = Depends(get_controller)
):
    """폼을 사고 기록으로 저장하고 폼을 비웁니다."""
    try:
        record = controller.submit()
    except FormValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    # 진동 및 클라이언트 알림
    background_tasks.add_task(controller.acknowledge_save, record)

    return AccidentResponse.from_record(record)
