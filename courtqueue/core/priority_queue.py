"""
优先级等待队列
按入队时计算的权重排序，支持入队、退出和批量取出
"""

import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from courtqueue.core.errors import AlreadyActiveError, InsufficientEntriesError, NotQueuedError
from courtqueue.core.models import MembershipState, Participant, QueueEntry
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)


class PriorityQueue:
    """
    优先级队列: 权重降序，权重相差小于 tie_tolerance 视为相等，按入队时间先后排序
    
    权重 = 基础权重 + 等待加成（距上一场对局的分钟数 / wait_bonus_minutes，最多 max_wait_bonus）
           + 低分照顾加成（评分低于 assistance_threshold 时加 assistance_bonus），保留两位小数
    """
    
    def __init__(
        self,
        base_weight: float = 1.0,
        wait_bonus_minutes: float = 30,
        max_wait_bonus: float = 2.0,
        assistance_threshold: int = 1000,
        assistance_bonus: float = 0.3,
        tie_tolerance: float = 0.01
    ):
        self.base_weight = base_weight
        self.wait_bonus_minutes = wait_bonus_minutes
        self.max_wait_bonus = max_wait_bonus
        self.assistance_threshold = assistance_threshold
        self.assistance_bonus = assistance_bonus
        self.tie_tolerance = tie_tolerance
        self._entries: List[QueueEntry] = []
        self._sequence = 0
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __contains__(self, participant_id: str) -> bool:
        return self._find_index(participant_id) is not None
    
    def compute_weight(self, participant: Participant, now: datetime) -> float:
        """计算参与者当前的队列权重"""
        weight = self.base_weight
        
        if participant.last_session_at is not None:
            minutes_idle = (now - participant.last_session_at).total_seconds() / 60
            weight += min(max(minutes_idle, 0.0) / self.wait_bonus_minutes, self.max_wait_bonus)
        
        if participant.rating < self.assistance_threshold:
            weight += self.assistance_bonus
        
        return math.floor(weight * 100 + 0.5) / 100
    
    def _outranks(self, entry: QueueEntry, other: QueueEntry) -> bool:
        """entry 是否排在 other 之前"""
        if abs(entry.weight - other.weight) < self.tie_tolerance:
            return (entry.admitted_at, entry.sequence) < (other.admitted_at, other.sequence)
        return entry.weight > other.weight
    
    def _find_index(self, participant_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.participant.id == participant_id:
                return index
        return None
    
    def admit(self, participant: Participant, now: datetime) -> int:
        """参与者入队，返回从1开始的排名"""
        if participant.is_active or participant.id in self:
            raise AlreadyActiveError(f"参与者 {participant.name} 已在队列或对局中")
        
        self._sequence += 1
        entry = QueueEntry(
            participant=participant,
            weight=self.compute_weight(participant, now),
            admitted_at=now,
            sequence=self._sequence,
        )
        
        position = len(self._entries)
        for index, existing in enumerate(self._entries):
            if self._outranks(entry, existing):
                position = index
                break
        self._entries.insert(position, entry)
        participant.state = MembershipState.QUEUED
        
        logger.info(f"{participant.name} 入队，权重 {entry.weight}，排名 {position + 1}/{len(self._entries)}")
        return position + 1
    
    def withdraw(self, participant_id: str) -> Participant:
        """参与者退出队列"""
        index = self._find_index(participant_id)
        if index is None:
            raise NotQueuedError(f"参与者不在队列中: {participant_id}")
        
        entry = self._entries.pop(index)
        entry.participant.state = MembershipState.IDLE
        logger.info(f"{entry.participant.name} 退出队列，剩余 {len(self._entries)} 人")
        return entry.participant
    
    def extract_top(self, n: int) -> List[Participant]:
        """按排名取出前 n 位参与者，标记为对局中"""
        if n < 1:
            raise ValueError(f"取出人数必须为正整数: {n}")
        if len(self._entries) < n:
            raise InsufficientEntriesError(
                f"队列人数不足: 需要 {n} 人，当前 {len(self._entries)} 人",
                required=n,
                available=len(self._entries),
            )
        
        extracted, self._entries = self._entries[:n], self._entries[n:]
        participants = []
        for entry in extracted:
            entry.participant.state = MembershipState.IN_SESSION
            participants.append(entry.participant)
        return participants
    
    def position_of(self, participant_id: str) -> Optional[int]:
        """查询参与者排名（不在队列中返回None）"""
        index = self._find_index(participant_id)
        return index + 1 if index is not None else None
    
    def snapshot(self) -> Tuple[QueueEntry, ...]:
        """队列的只读有序视图"""
        return tuple(self._entries)
    
    def get_status(self, group_size: int) -> Dict:
        """队列状态（用于状态查询与推送）"""
        return {
            'queue': [entry.to_dict(position) for position, entry in enumerate(self._entries, 1)],
            'length': len(self._entries),
            'can_form_session': len(self._entries) >= group_size,
        }
