#websocket.py
import asyncio
import logging
import uuid
from fastapi import WebSocket
from typing import Dict, List, Any, Optional

logger = logging.getLogger(__name__)

# 기기(클라이언트) 연결 관리
class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []
        # request_id -> 응답 대기 future
        self.pending: Dict[str, asyncio.Future] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"새 웹소켓 연결 수락: 현재 {len(self.active_connections)}개 연결")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"웹소켓 연결 종료: 현재 {len(self.active_connections)}개 연결")

    @property
    def has_connections(self) -> bool:
        return len(self.active_connections) > 0

    async def broadcast(self, message: Dict[str, Any]):
        logger.debug(f"브로드캐스트: {len(self.active_connections)}개 연결에 {message['type']} 메시지")
        disconnected = []
        for ws in list(self.active_connections):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning(f"웹소켓 전송 오류: {str(e)}")
                disconnected.append(ws)

        # 연결이 끊긴 웹소켓 제거
        for ws in disconnected:
            self.disconnect(ws)

    async def request(self, message: Dict[str, Any], timeout: float) -> Optional[Any]:
        """
        기기에 요청을 보내고 device_reply 응답의 payload를 기다립니다.
        연결된 기기가 없거나 시간 내 응답이 없으면 None을 반환합니다.
        """
        if not self.has_connections:
            logger.debug(f"연결된 기기 없음: {message['type']} 요청 생략")
            return None

        request_id = str(uuid.uuid4())
        future = asyncio.get_running_loop().create_future()
        self.pending[request_id] = future

        try:
            await self.broadcast({**message, "request_id": request_id})
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"기기 응답 시간 초과: {message['type']} ({timeout}초)")
            return None
        finally:
            self.pending.pop(request_id, None)

    def resolve(self, request_id: Optional[str], payload: Any) -> bool:
        """대기 중인 요청에 응답을 전달합니다. 먼저 도착한 응답만 사용합니다."""
        future = self.pending.get(request_id) if request_id else None
        if future is None or future.done():
            logger.debug(f"대기 중이 아닌 응답 무시: {request_id}")
            return False
        future.set_result(payload)
        return True

    def handle_message(self, message: Dict[str, Any]) -> bool:
        """기기에서 받은 메시지를 처리합니다."""
        if message.get("type") == "device_reply":
            return self.resolve(message.get("request_id"), message.get("payload"))
        logger.debug(f"알 수 없는 기기 메시지: {message.get('type')}")
        return False

# 연결 관리자 인스턴스 생성
manager = ConnectionManager()

# 다른 서비스에서 호출하여 클라이언트에 알림을 보내는 함수
async def notify_clients(message: Dict[str, Any]):
    await manager.broadcast(message)
