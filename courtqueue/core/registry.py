"""
参与者注册表
保存所有已知参与者及其评分与战绩
"""

from typing import Dict, List, Optional

from courtqueue.core.errors import InvalidRequestError, ParticipantNotFoundError
from courtqueue.core.models import DEFAULT_INITIAL_RATING, Participant
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)


class ParticipantRegistry:
    """参与者注册表: 按ID索引，按名称提供便捷查找"""

    def __init__(self, initial_rating: int = DEFAULT_INITIAL_RATING):
        self.initial_rating = initial_rating
        self._participants: Dict[str, Participant] = {}

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self._participants

    def get(self, participant_id: str) -> Participant:
        participant = self._participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(f"参与者不存在: {participant_id}")
        return participant

    def find_by_name(self, name: str) -> Optional[Participant]:
        """按名称查找（名称不保证唯一，返回最早注册的同名参与者）"""
        name = (name or '').strip()
        for participant in self._participants.values():
            if participant.name == name:
                return participant
        return None

    def register(self, name: str) -> Participant:
        """注册新参与者"""
        name = (name or '').strip()
        if not name:
            raise InvalidRequestError("参与者名称不能为空")
        participant = Participant(name=name, rating=self.initial_rating)
        self._participants[participant.id] = participant
        logger.info(f"新参与者注册: {participant.name} ({participant.id})，初始评分 {participant.rating}")
        return participant

    def get_or_create(self, name: str) -> Participant:
        """按名称查找参与者，不存在时注册"""
        participant = self.find_by_name(name)
        if participant is not None:
            return participant
        return self.register(name)

    def all(self) -> List[Participant]:
        """按注册顺序返回全部参与者"""
        return list(self._participants.values())
