"""
对局管理器
从队列组建对局，结算对局并通过评分引擎更新参与者评分
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from courtqueue.core.errors import InvalidOutcomeError, SessionNotFoundError
from courtqueue.core.models import Session, SessionOutcome
from courtqueue.core.priority_queue import PriorityQueue
from courtqueue.core.rating_engine import RatingAlgorithm
from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_GROUP_SIZE = 4


def validate_group_size(group_size: int) -> None:
    """对局人数必须是正偶数（胜负双方人数相等）"""
    if not isinstance(group_size, int) or isinstance(group_size, bool) or group_size < 2 or group_size % 2:
        raise ValueError(f"对局人数必须是正偶数: {group_size}")


class SessionManager:
    """对局管理器: 维护进行中的对局索引与历史记录"""
    
    def __init__(
        self,
        queue: PriorityQueue,
        rating_algorithm: RatingAlgorithm,
        group_size: int = DEFAULT_GROUP_SIZE
    ):
        validate_group_size(group_size)
        self.queue = queue
        self.rating_algorithm = rating_algorithm
        self.group_size = group_size
        self._active: Dict[str, Session] = {}
        self._history: List[Session] = []
    
    def form_session(self, now: datetime, group_size: Optional[int] = None) -> Session:
        """从队列头部取出 group_size 人组成对局；人数不足时队列保持不变"""
        size = self.group_size if group_size is None else group_size
        validate_group_size(size)
        
        roster = self.queue.extract_top(size)
        session = Session(roster=tuple(roster), started_at=now)
        self._active[session.id] = session
        
        logger.info(
            f"对局 {session.id} 已创建，阵容: "
            + ", ".join(f"{p.name}({p.rating})" for p in roster)
        )
        return session
    
    def _validate_outcome(self, session: Session, winning_ids: Iterable[str]) -> List[str]:
        winning_ids = list(winning_ids)
        roster_ids = session.roster_ids()
        expected = len(roster_ids) // 2
        
        if len(set(winning_ids)) != len(winning_ids):
            raise InvalidOutcomeError("胜方ID存在重复")
        if len(winning_ids) != expected:
            raise InvalidOutcomeError(f"胜方人数必须为 {expected}，实际为 {len(winning_ids)}")
        outsiders = [pid for pid in winning_ids if pid not in roster_ids]
        if outsiders:
            raise InvalidOutcomeError(f"胜方包含非本局成员: {', '.join(outsiders)}")
        return winning_ids
    
    def resolve_session(self, session_id: str, winning_ids: Iterable[str], now: datetime) -> Session:
        """结算对局：先完成全部校验，再一次性更新评分、战绩与状态"""
        session = self._active.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"进行中的对局不存在: {session_id}")
        
        winning_set = set(self._validate_outcome(session, winning_ids))
        winners = tuple(p for p in session.roster if p.id in winning_set)
        losers = tuple(p for p in session.roster if p.id not in winning_set)
        
        new_winner_ratings, new_loser_ratings = self.rating_algorithm.update_teams(
            [p.rating for p in winners],
            [p.rating for p in losers],
        )
        
        ratings_before = {p.id: p.rating for p in session.roster}
        ratings_after = dict(zip((p.id for p in winners), new_winner_ratings))
        ratings_after.update(zip((p.id for p in losers), new_loser_ratings))
        
        for participant, new_rating in zip(winners, new_winner_ratings):
            logger.debug(f"评分更新: {participant.name} {participant.rating}->{new_rating} (胜)")
            participant.record_result(new_rating, won=True, finished_at=now)
        for participant, new_rating in zip(losers, new_loser_ratings):
            logger.debug(f"评分更新: {participant.name} {participant.rating}->{new_rating} (负)")
            participant.record_result(new_rating, won=False, finished_at=now)
        
        outcome = SessionOutcome(
            winners=winners,
            losers=losers,
            ratings_before=ratings_before,
            ratings_after=ratings_after,
        )
        session.resolve(outcome, ended_at=now)
        del self._active[session_id]
        self._history.append(session)
        
        logger.info(
            f"对局 {session.id} 已结算，胜方: {', '.join(p.name for p in winners)}，"
            f"负方: {', '.join(p.name for p in losers)}"
        )
        return session
    
    def get_session(self, session_id: str) -> Session:
        """按ID查询对局（含已结算）"""
        session = self._active.get(session_id)
        if session is not None:
            return session
        for resolved in self._history:
            if resolved.id == session_id:
                return resolved
        raise SessionNotFoundError(f"对局不存在: {session_id}")
    
    def active_sessions(self) -> List[Session]:
        """进行中的对局（按创建顺序）"""
        return list(self._active.values())
    
    def history(self) -> List[Session]:
        """已结算的对局（按结算顺序）"""
        return list(self._history)
