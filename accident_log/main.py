#main.py
import json
import logging
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from accident_log.routers import accidents, form
from accident_log.services.form_controller import form_controller
from accident_log.websocket import manager
from accident_log.config import settings
import uvicorn

# 로깅 설정
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

# FastAPI 앱 생성
app = FastAPI(
    title=settings.APP_NAME,
    description="교통사고 현장 기록 폼 (사진, GPS 위치 포함)",
    version="1.0.0",
    debug=settings.DEBUG_MODE,
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(form.router)
app.include_router(accidents.router)

@app.get("/")
async def root():
    """API 서버 상태 확인"""
    return {
        "status": "online",
        "app_name": settings.APP_NAME,
        "saved_records": len(form_controller.registry),
        "endpoints": {
            "form": "/form",
            "accidents": "/accidents",
            "websocket": settings.WEBSOCKET_PATH
        }
    }

@app.websocket(settings.WEBSOCKET_PATH)
async def websocket_endpoint(websocket: WebSocket):
    """
    기기 채널. 권한 요청, 카메라, 위치, 진동, 날짜 선택 요청을 기기로 보내고
    device_reply 메시지로 결과를 받습니다.
    """
    await manager.connect(websocket)
    try:
        await websocket.send_json({
            "type": "connection_established",
            "message": "Device channel connected."
        })

        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                logger.warning("잘못된 기기 메시지 형식")
                continue
            if isinstance(data, dict):
                manager.handle_message(data)
    except WebSocketDisconnect:
        manager.disconnect(websocket)

@app.exception_handler(500)
async def internal_error_handler(request, exc):
    logger.error(f"Internal server error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )

if __name__ == "__main__":
    # 개발용 서버 실행
    uvicorn.run("accident_log.main:app", host="0.0.0.0", port=8000, reload=True)
