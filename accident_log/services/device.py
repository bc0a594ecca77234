# device.py
import base64
import binascii
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol, Set
from accident_log.config import settings
from accident_log.models.accident import Location
from accident_log.websocket import ConnectionManager, manager

logger = logging.getLogger(__name__)

class Capability(str, Enum):
    CAMERA = "camera"
    FINE_LOCATION = "fine_location"
    COARSE_LOCATION = "coarse_location"

# --- 폼 컨트롤러가 사용하는 기기 기능 ---

class PermissionGateway(Protocol):
    async def request(self, capabilities: Set[Capability]) -> None: ...

class CameraCapture(Protocol):
    async def capture(self) -> Optional[bytes]: ...

class LocationProvider(Protocol):
    async def get_current_location(self) -> Optional[Location]: ...

class HapticFeedback(Protocol):
    async def pulse(self, duration_ms: int) -> None: ...

class DatePicker(Protocol):
    async def select_date(self, initial: datetime) -> Optional[datetime]: ...

def _is_error(payload: Any) -> bool:
    return payload is None or not isinstance(payload, dict) or "error" in payload

def parse_image(payload: Any) -> Optional[bytes]:
    if _is_error(payload) or not payload.get("image_data"):
        return None
    try:
        return base64.b64decode(payload["image_data"], validate=True)
    except (binascii.Error, ValueError, TypeError):
        logger.warning("카메라 응답의 이미지 디코딩 실패")
        return None

def parse_location(payload: Any) -> Optional[Location]:
    if _is_error(payload):
        return None
    try:
        return Location(
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            accuracy_meters=float(payload["accuracy"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning(f"잘못된 위치 응답: {payload}")
        return None

def parse_date(payload: Any) -> Optional[datetime]:
    if _is_error(payload) or not payload.get("selected"):
        return None
    try:
        # JS toISOString() 형식의 Z 접미사 처리
        selected = datetime.fromisoformat(str(payload["selected"]).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"잘못된 날짜 응답: {payload}")
        return None
    # 날짜만 선택되므로 시간대가 없으면 UTC 기준으로 저장
    if selected.tzinfo is None:
        selected = selected.replace(tzinfo=timezone.utc)
    return selected

class DeviceBridge:
    """웹소켓으로 연결된 모바일 기기의 기능(권한, 카메라, 위치, 진동, 날짜 선택)을 호출합니다."""

    def __init__(self, connections: ConnectionManager, timeout: Optional[float] = None):
        self.connections = connections
        self.timeout = timeout if timeout is not None else settings.DEVICE_REPLY_TIMEOUT

    async def request(self, capabilities: Set[Capability]) -> None:
        await self.connections.broadcast({
            "type": "permission_request",
            "capabilities": sorted(c.value for c in capabilities),
        })

    async def pulse(self, duration_ms: int) -> None:
        await self.connections.broadcast({
            "type": "haptic_pulse",
            "duration_ms": duration_ms,
        })

    async def capture(self) -> Optional[bytes]:
        payload = await self.connections.request({"type": "camera_capture"}, self.timeout)
        return parse_image(payload)

    async def get_current_location(self) -> Optional[Location]:
        payload = await self.connections.request({"type": "location_request"}, self.timeout)
        return parse_location(payload)

    async def select_date(self, initial: datetime) -> Optional[datetime]:
        payload = await self.connections.request(
            {"type": "date_picker", "initial": initial.isoformat()},
            self.timeout,
        )
        return parse_date(payload)

# 기본 기기 브리지 인스턴스
device = DeviceBridge(manager)
