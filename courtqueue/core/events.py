"""
撮合事件
核心只生成事件载荷，投递由边界层负责
"""

from dataclasses import dataclass, field
from typing import Any, Dict

QUEUE_UPDATED = 'queue_updated'
SESSION_CREATED = 'session_created'
SESSION_RESOLVED = 'session_resolved'


@dataclass(frozen=True)
class Event:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        """转换为推送给观察者的消息"""
        return {'type': self.kind, 'data': self.payload}
