"""
撮合核心
持有注册表、优先级队列与对局管理器，所有操作在同一把锁下执行
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from courtqueue.core.events import QUEUE_UPDATED, SESSION_CREATED, SESSION_RESOLVED, Event
from courtqueue.core.models import Participant, Session
from courtqueue.core.priority_queue import PriorityQueue
from courtqueue.core.rating_engine import ELORatingAlgorithm, RatingAlgorithm
from courtqueue.core.registry import ParticipantRegistry
from courtqueue.core.session_manager import DEFAULT_GROUP_SIZE, SessionManager
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """操作结果及需要推送给观察者的事件"""

    value: Any
    events: Tuple[Event, ...] = ()


class MatchmakingCore:
    """撮合核心: 唯一持有全部可变状态的对象，调用方持有同一实例"""

    def __init__(
        self,
        rating_algorithm: Optional[RatingAlgorithm] = None,
        queue: Optional[PriorityQueue] = None,
        group_size: int = DEFAULT_GROUP_SIZE,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.rating_algorithm = rating_algorithm or ELORatingAlgorithm()
        self.registry = ParticipantRegistry(initial_rating=self.rating_algorithm.get_initial_rating())
        self.queue = queue or PriorityQueue()
        self.sessions = SessionManager(self.queue, self.rating_algorithm, group_size=group_size)
        self.clock = clock
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config_manager, clock: Callable[[], datetime] = datetime.now) -> 'MatchmakingCore':
        """根据配置管理器构建撮合核心"""
        matchmaking = config_manager.get_matchmaking_settings()
        rating = config_manager.get_rating_settings()
        algorithm = ELORatingAlgorithm(
            init_rating=matchmaking['initial_rating'],
            k_factor=rating['k_factor'],
            logistic_constant=rating['logistic_constant'],
        )
        queue = PriorityQueue(**config_manager.get_queue_settings())
        return cls(
            rating_algorithm=algorithm,
            queue=queue,
            group_size=matchmaking['group_size'],
            clock=clock,
        )

    @property
    def group_size(self) -> int:
        return self.sessions.group_size

    # ==================== 事件载荷 ====================

    def _queue_event(self) -> Event:
        return Event(QUEUE_UPDATED, {
            'queue': self.queue.get_status(self.group_size),
            'active_sessions': [s.to_dict() for s in self.sessions.active_sessions()],
        })

    # ==================== 写操作 ====================

    def _admit(self, participant: Participant) -> OperationResult:
        position = self.queue.admit(participant, self.clock())
        return OperationResult(
            value={'participant': participant, 'position': position},
            events=(self._queue_event(),),
        )

    def admit(self, name: str) -> OperationResult:
        """按名称入队（不存在时先注册）"""
        with self._lock:
            participant = self.registry.get_or_create(name)
            return self._admit(participant)

    def rejoin(self, participant_id: str) -> OperationResult:
        """已注册参与者按ID重新入队"""
        with self._lock:
            participant = self.registry.get(participant_id)
            return self._admit(participant)

    def withdraw(self, participant_id: str) -> OperationResult:
        """退出队列"""
        with self._lock:
            self.registry.get(participant_id)
            participant = self.queue.withdraw(participant_id)
            return OperationResult(value=participant, events=(self._queue_event(),))

    def form_session(self, group_size: Optional[int] = None) -> OperationResult:
        """从队列组建对局"""
        with self._lock:
            session = self.sessions.form_session(self.clock(), group_size=group_size)
            return OperationResult(
                value=session,
                events=(Event(SESSION_CREATED, session.to_dict()), self._queue_event()),
            )

    def resolve_session(self, session_id: str, winning_ids: Iterable[str]) -> OperationResult:
        """提交对局结果并结算评分"""
        with self._lock:
            session = self.sessions.resolve_session(session_id, winning_ids, self.clock())
            return OperationResult(
                value=session,
                events=(Event(SESSION_RESOLVED, session.to_dict()), self._queue_event()),
            )

    # ==================== 只读操作 ====================

    def status(self) -> Dict[str, Any]:
        """队列快照、进行中的对局与全部参与者"""
        with self._lock:
            return {
                'queue': self.queue.get_status(self.group_size),
                'active_sessions': [s.to_dict() for s in self.sessions.active_sessions()],
                'participants': [p.to_dict() for p in self.registry.all()],
            }

    def get_participant(self, participant_id: str) -> Dict[str, Any]:
        with self._lock:
            return self.registry.get(participant_id).to_dict()

    def participants(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [p.to_dict() for p in self.registry.all()]

    def session_history(self) -> List[Dict[str, Any]]:
        """已结算对局的历史记录"""
        with self._lock:
            return [s.to_dict() for s in self.sessions.history()]

    def get_session(self, session_id: str) -> Session:
        with self._lock:
            return self.sessions.get_session(session_id)
