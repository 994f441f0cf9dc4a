"""
撮合领域数据模型
参与者、队列条目、对局及其状态
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


DEFAULT_INITIAL_RATING = 1200


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def generate_id() -> str:
    """生成唯一ID"""
    return uuid.uuid4().hex


class MembershipState(str, Enum):
    """参与者所处状态，三者互斥"""

    IDLE = 'idle'
    QUEUED = 'queued'
    IN_SESSION = 'in_session'


class SessionStatus(str, Enum):
    """对局状态: ACTIVE -> RESOLVED，RESOLVED为终态"""

    ACTIVE = 'active'
    RESOLVED = 'resolved'


@dataclass(eq=False)
class Participant:
    """参与者: 评分、战绩与当前状态"""

    name: str
    rating: int = DEFAULT_INITIAL_RATING
    id: str = field(default_factory=generate_id)
    wins: int = 0
    losses: int = 0
    total_sessions: int = 0
    last_session_at: Optional[datetime] = None
    state: MembershipState = MembershipState.IDLE

    @property
    def is_active(self) -> bool:
        """是否在队列或对局中"""
        return self.state != MembershipState.IDLE

    def record_result(self, new_rating: int, won: bool, finished_at: datetime) -> None:
        """记录一场对局结果并回到空闲状态"""
        self.rating = new_rating
        if won:
            self.wins += 1
        else:
            self.losses += 1
        self.total_sessions += 1
        self.last_session_at = finished_at
        self.state = MembershipState.IDLE

    def summary(self) -> Dict[str, Any]:
        """精简信息，用于队列与对局载荷"""
        return {'id': self.id, 'name': self.name, 'rating': self.rating}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'rating': self.rating,
            'wins': self.wins,
            'losses': self.losses,
            'total_sessions': self.total_sessions,
            'last_session_at': _isoformat(self.last_session_at),
            'state': self.state.value,
        }


@dataclass(frozen=True)
class QueueEntry:
    """队列条目: 入队时计算并冻结权重"""

    participant: Participant
    weight: float
    admitted_at: datetime
    sequence: int

    def to_dict(self, position: int) -> Dict[str, Any]:
        return {
            'position': position,
            'participant': {**self.participant.summary(), 'weight': self.weight},
            'admitted_at': self.admitted_at.isoformat(),
        }


@dataclass(frozen=True)
class SessionOutcome:
    """对局结果: 胜方与负方人数相等，结算前后的评分在结算时冻结"""

    winners: Tuple[Participant, ...]
    losers: Tuple[Participant, ...]
    ratings_before: Dict[str, int] = field(default_factory=dict)
    ratings_after: Dict[str, int] = field(default_factory=dict)

    def _member(self, participant: Participant) -> Dict[str, Any]:
        before = self.ratings_before.get(participant.id, participant.rating)
        after = self.ratings_after.get(participant.id, participant.rating)
        return {
            'id': participant.id,
            'name': participant.name,
            'rating': after,
            'rating_before': before,
            'rating_change': after - before,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'winners': [self._member(p) for p in self.winners],
            'losers': [self._member(p) for p in self.losers],
        }


@dataclass(eq=False)
class Session:
    """对局: 阵容及开局评分在组局时冻结，只在结算时修改一次"""

    roster: Tuple[Participant, ...]
    started_at: datetime
    id: str = field(default_factory=generate_id)
    ended_at: Optional[datetime] = None
    outcome: Optional[SessionOutcome] = None
    status: SessionStatus = SessionStatus.ACTIVE
    roster_ratings: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if not self.roster_ratings:
            self.roster_ratings = {p.id: p.rating for p in self.roster}

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def roster_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self.roster)

    def resolve(self, outcome: SessionOutcome, ended_at: datetime) -> None:
        """标记对局已结算"""
        self.outcome = outcome
        self.ended_at = ended_at
        self.status = SessionStatus.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'players': [
                {'id': p.id, 'name': p.name, 'rating': self.roster_ratings.get(p.id, p.rating)}
                for p in self.roster
            ],
            'started_at': self.started_at.isoformat(),
            'ended_at': _isoformat(self.ended_at),
            'result': self.outcome.to_dict() if self.outcome else None,
            'status': self.status.value,
        }
