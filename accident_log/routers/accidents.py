# accidents.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from typing import List
from accident_log.models.accident import AccidentResponse, RecentAccidents
from accident_log.services.form_controller import AccidentFormController, get_controller
from accident_log.services.records import summarize

router = APIRouter(
    prefix="/accidents",
    tags=["accidents"],
    responses={404: {"description": "Not found"}},
)

@router.get("/", response_model=List[AccidentResponse])
async def get_accidents(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    controller: AccidentFormController = Depends(get_controller)
):
    """저장된 사고 목록을 최신순으로 조회합니다."""
    return [AccidentResponse.from_record(r) for r in controller.registry.list(skip, limit)]

@router.get("/recent", response_model=RecentAccidents)
async def get_recent_accidents(controller: AccidentFormController = Depends(get_controller)):
    """화면에 표시할 최근 사고 기록을 조회합니다."""
    return RecentAccidents(
        total=len(controller.registry),
        records=[summarize(r) for r in controller.registry.recent()],
    )

@router.get("/{accident_id}", response_model=AccidentResponse)
async def get_accident(
    accident_id: str,
    controller: AccidentFormController = Depends(get_controller)
):
    """특정 사고 기록을 조회합니다."""
    record = controller.registry.get(accident_id)
    if not record:
        raise HTTPException(status_code=404, detail="Accident not found.")
    return AccidentResponse.from_record(record)

@router.get("/{accident_id}/photo")
async def get_accident_photo(
    accident_id: str,
    controller: AccidentFormController = Depends(get_controller)
):
    """사고 기록의 사진을 반환합니다."""
    record = controller.registry.get(accident_id)
    if not record:
        raise HTTPException(status_code=404, detail="Accident not found.")
    if record.photo is None:
        raise HTTPException(status_code=404, detail="No photo for this accident.")
    return Response(content=record.photo, media_type="application/octet-stream")
