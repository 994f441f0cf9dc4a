"""
撮合核心错误定义
所有错误均为可恢复的调用方错误，由边界层转换为客户端可见的响应
"""


class MatchmakingError(Exception):
    """撮合错误基类: 携带稳定的错误码"""

    code = 'matchmaking_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyActiveError(MatchmakingError):
    """参与者已在队列或对局中"""

    code = 'already_active'


class NotQueuedError(MatchmakingError):
    """参与者不在队列中"""

    code = 'not_queued'


class InsufficientEntriesError(MatchmakingError):
    """队列人数不足以组成对局"""

    code = 'insufficient_entries'

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class InvalidOutcomeError(MatchmakingError):
    """对局结果无效（胜方人数错误或包含非本局成员）"""

    code = 'invalid_outcome'


class SessionNotFoundError(MatchmakingError):
    """对局不存在或已结束"""

    code = 'session_not_found'


class ParticipantNotFoundError(MatchmakingError):
    """参与者不存在"""

    code = 'participant_not_found'


class InvalidRequestError(MatchmakingError):
    """请求参数无效"""

    code = 'invalid_request'
