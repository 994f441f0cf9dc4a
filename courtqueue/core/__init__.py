"""
撮合核心
参与者注册表、评分引擎、优先级队列与对局管理
"""

from .errors import (
    MatchmakingError,
    AlreadyActiveError,
    NotQueuedError,
    InsufficientEntriesError,
    InvalidOutcomeError,
    SessionNotFoundError,
    ParticipantNotFoundError,
    InvalidRequestError,
)
from .events import Event, QUEUE_UPDATED, SESSION_CREATED, SESSION_RESOLVED
from .models import MembershipState, Participant, QueueEntry, Session, SessionOutcome, SessionStatus
from .rating_engine import RatingAlgorithm, ELORatingAlgorithm
from .registry import ParticipantRegistry
from .priority_queue import PriorityQueue
from .session_manager import SessionManager
from .matchmaking import MatchmakingCore, OperationResult

__all__ = [
    # 错误
    'MatchmakingError',
    'AlreadyActiveError',
    'NotQueuedError',
    'InsufficientEntriesError',
    'InvalidOutcomeError',
    'SessionNotFoundError',
    'ParticipantNotFoundError',
    'InvalidRequestError',
    # 事件
    'Event',
    'QUEUE_UPDATED',
    'SESSION_CREATED',
    'SESSION_RESOLVED',
    # 数据模型
    'MembershipState',
    'Participant',
    'QueueEntry',
    'Session',
    'SessionOutcome',
    'SessionStatus',
    # 组件
    'RatingAlgorithm',
    'ELORatingAlgorithm',
    'ParticipantRegistry',
    'PriorityQueue',
    'SessionManager',
    'MatchmakingCore',
    'OperationResult',
]
