"""
观察者推送
维护WebSocket连接集合，事件推送为即发即弃，不等待投递确认
"""

import asyncio
from typing import Any, Dict, Iterable, Set

from courtqueue.core.events import Event
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

INITIAL_DATA = 'initial_data'


class Broadcaster:
    """事件广播器: 推送失败的连接会被移除"""
    
    def __init__(self):
        self._connections: Set[Any] = set()
        self._pending: Set[asyncio.Task] = set()
    
    @property
    def connection_count(self) -> int:
        return len(self._connections)
    
    async def connect(self, websocket, initial_status: Dict[str, Any]) -> None:
        """接受连接并发送当前状态"""
        await websocket.accept()
        self._connections.add(websocket)
        logger.info(f"观察者已连接，当前连接数: {len(self._connections)}")
        await websocket.send_json({'type': INITIAL_DATA, 'data': initial_status})
    
    def disconnect(self, websocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info(f"观察者已断开，当前连接数: {len(self._connections)}")
    
    def publish(self, events: Iterable[Event]) -> None:
        """在当前事件循环中调度推送任务后立即返回"""
        for event in events:
            message = event.to_message()
            for websocket in list(self._connections):
                task = asyncio.create_task(self._send(websocket, message))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
    
    async def _send(self, websocket, message: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning(f"推送 {message.get('type')} 失败，移除连接: {type(e).__name__} - {e}")
            self.disconnect(websocket)
    
    async def drain(self) -> None:
        """等待已调度的推送全部完成"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
