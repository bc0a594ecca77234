from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # 기본 설정
    APP_NAME: str = "Accident Log"
    DEBUG_MODE: bool = False

    # 로깅 설정
    LOG_LEVEL: str = "INFO"

    # CORS 설정 (모바일 클라이언트용)
    CORS_ORIGINS: List[str] = ["*"]

    # 웹소켓 설정 (기기 채널)
    WEBSOCKET_PATH: str = "/ws"

    # 기기 응답 대기 시간 (초). 초과 시 응답 없음으로 처리
    DEVICE_REPLY_TIMEOUT: float = 30.0

    # 저장 완료 진동 시간 (ms)
    HAPTIC_PULSE_MS: int = 5000

    # 화면에 표시할 최근 기록 수
    RECENT_RECORDS_SHOWN: int = 5

    # 날짜 표시 형식
    DATE_FORMAT: str = "%Y-%m-%d"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
