"""
撮合核心单元测试
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

from courtqueue.core import (
    AlreadyActiveError,
    InsufficientEntriesError,
    InvalidOutcomeError,
    InvalidRequestError,
    MatchmakingCore,
    MembershipState,
    NotQueuedError,
    ParticipantNotFoundError,
    QUEUE_UPDATED,
    SESSION_CREATED,
    SESSION_RESOLVED,
    SessionNotFoundError,
)
from courtqueue.infra.config import ConfigManager


class FakeClock:
    """可手动推进的时钟"""
    
    def __init__(self):
        self.now = datetime(2024, 5, 1, 18, 0, 0)
    
    def __call__(self):
        return self.now
    
    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def core(clock):
    return MatchmakingCore(clock=clock)


def admit_all(core, clock, names):
    ids = []
    for name in names:
        ids.append(core.admit(name).value['participant'].id)
        clock.advance(seconds=1)
    return ids


def test_admit_creates_participant(core):
    """按名称入队时注册新参与者"""
    result = core.admit('  Alice ')
    
    participant = result.value['participant']
    assert participant.name == 'Alice'
    assert participant.rating == 1200
    assert participant.state == MembershipState.QUEUED
    assert result.value['position'] == 1
    assert [e.kind for e in result.events] == [QUEUE_UPDATED]
    assert result.events[0].payload['queue']['length'] == 1
    assert result.events[0].payload['active_sessions'] == []


def test_first_come_first_ranked(core, clock):
    """同分新参与者按入队先后排名"""
    first = core.admit('A')
    clock.advance(seconds=1)
    second = core.admit('B')
    
    assert first.value['position'] == 1
    assert second.value['position'] == 2


def test_admit_same_name_twice(core):
    """同名参与者重复入队失败，且不重复注册"""
    core.admit('Alice')
    
    with pytest.raises(AlreadyActiveError):
        core.admit('Alice')
    
    assert len(core.registry) == 1
    assert core.status()['queue']['length'] == 1


def test_admit_blank_name(core):
    """名称为空时入队失败"""
    with pytest.raises(InvalidRequestError):
        core.admit('   ')
    assert len(core.registry) == 0


def test_withdraw(core):
    """入队后退出恢复空闲，队列长度复原"""
    participant_id = core.admit('Alice').value['participant'].id
    
    result = core.withdraw(participant_id)
    
    assert result.value.state == MembershipState.IDLE
    assert [e.kind for e in result.events] == [QUEUE_UPDATED]
    assert core.status()['queue']['length'] == 0


def test_withdraw_unknown_participant(core):
    with pytest.raises(ParticipantNotFoundError):
        core.withdraw('missing')


def test_withdraw_idle_participant(core):
    participant_id = core.admit('Alice').value['participant'].id
    core.withdraw(participant_id)
    
    with pytest.raises(NotQueuedError):
        core.withdraw(participant_id)


def test_rejoin_unknown_participant(core):
    with pytest.raises(ParticipantNotFoundError):
        core.rejoin('missing')


def test_form_session_events(core, clock):
    """组局产生对局创建与队列更新事件"""
    admit_all(core, clock, ['A', 'B', 'C', 'D', 'E'])
    
    result = core.form_session()
    
    assert [e.kind for e in result.events] == [SESSION_CREATED, QUEUE_UPDATED]
    created = result.events[0].payload
    assert [p['name'] for p in created['players']] == ['A', 'B', 'C', 'D']
    assert created['status'] == 'active'
    queue_payload = result.events[1].payload
    assert queue_payload['queue']['length'] == 1
    assert len(queue_payload['active_sessions']) == 1


def test_form_session_insufficient(core, clock):
    admit_all(core, clock, ['A', 'B', 'C'])
    
    with pytest.raises(InsufficientEntriesError):
        core.form_session()
    
    assert core.status()['queue']['length'] == 3


def test_rejoin_during_session(core, clock):
    """对局中的参与者不能重新入队"""
    ids = admit_all(core, clock, ['A', 'B', 'C', 'D'])
    core.form_session()
    
    with pytest.raises(AlreadyActiveError):
        core.rejoin(ids[0])
    with pytest.raises(AlreadyActiveError):
        core.admit('A')


def test_full_cycle_and_rejoin_weight(core, clock):
    """结算后按ID重新入队，等待加成按距上一场的时间计算"""
    ids = admit_all(core, clock, ['A', 'B', 'C', 'D'])
    session = core.form_session().value
    clock.advance(minutes=20)
    
    result = core.resolve_session(session.id, ids[:2])
    
    assert [e.kind for e in result.events] == [SESSION_RESOLVED, QUEUE_UPDATED]
    payload = result.events[0].payload
    assert [p['name'] for p in payload['result']['winners']] == ['A', 'B']
    assert [p['name'] for p in payload['result']['losers']] == ['C', 'D']
    assert payload['ended_at'] == clock.now.isoformat()
    assert payload['status'] == 'resolved'
    
    clock.advance(minutes=45)
    position = core.rejoin(ids[2]).value['position']
    assert position == 1
    entry = core.queue.snapshot()[0]
    assert entry.weight == 2.5
    
    participant = core.get_participant(ids[0])
    assert participant['rating'] == 1216
    assert participant['wins'] == 1
    assert participant['total_sessions'] == 1
    assert participant['state'] == 'idle'


def test_history_keeps_ratings_at_resolution(core, clock):
    """已结算对局的历史记录保留结算时的评分，不随后续对局变化"""
    ids = admit_all(core, clock, ['A', 'B', 'C', 'D'])
    first = core.form_session().value
    core.resolve_session(first.id, ids[:2])
    before = core.session_history()[0]
    
    for participant_id in ids:
        core.rejoin(participant_id)
        clock.advance(seconds=1)
    second = core.form_session().value
    assert second.to_dict()['players'][0]['rating'] == 1216
    core.resolve_session(second.id, ids[:2])
    
    assert core.get_participant(ids[0])['rating'] == 1231
    history = core.session_history()
    assert history[0] == before
    winner = history[0]['result']['winners'][0]
    assert (winner['rating_before'], winner['rating'], winner['rating_change']) == (1200, 1216, 16)
    assert [p['rating'] for p in history[0]['players']] == [1200, 1200, 1200, 1200]
    assert [p['rating'] for p in history[1]['result']['winners']] == [1231, 1231]


def test_resolve_errors_emit_nothing(core, clock):
    ids = admit_all(core, clock, ['A', 'B', 'C', 'D'])
    session = core.form_session().value
    
    with pytest.raises(InvalidOutcomeError):
        core.resolve_session(session.id, ids[:1])
    with pytest.raises(SessionNotFoundError):
        core.resolve_session('missing', ids[:2])
    
    core.resolve_session(session.id, ids[:2])
    with pytest.raises(SessionNotFoundError):
        core.resolve_session(session.id, ids[:2])
    
    assert len(core.session_history()) == 1


def test_status_is_pure_read(core, clock):
    """状态查询不修改任何状态"""
    admit_all(core, clock, ['A', 'B', 'C', 'D', 'E'])
    core.form_session()
    
    first = core.status()
    second = core.status()
    
    assert first == second
    assert set(first) == {'queue', 'active_sessions', 'participants'}
    assert first['queue']['length'] == 1
    assert first['queue']['can_form_session'] is False
    assert len(first['active_sessions']) == 1
    assert [p['state'] for p in first['participants']] == ['in_session'] * 4 + ['queued']


def test_concurrent_admissions(clock):
    """并发入队不会互相干扰"""
    core = MatchmakingCore(clock=clock)
    names = [f'player-{i}' for i in range(50)]
    
    with ThreadPoolExecutor(max_workers=8) as executor:
        positions = list(executor.map(lambda n: core.admit(n).value['position'], names))
    
    assert len(positions) == 50
    assert core.status()['queue']['length'] == 50
    assert len(core.registry) == 50


def test_from_config(clock):
    """根据配置构建撮合核心"""
    config_manager = ConfigManager.from_dict({
        'matchmaking': {'group_size': 2, 'initial_rating': 1500},
        'rating': {'k_factor': 16},
    })
    core = MatchmakingCore.from_config(config_manager, clock=clock)
    
    ids = admit_all(core, clock, ['A', 'B'])
    session = core.form_session().value
    core.resolve_session(session.id, ids[:1])
    
    assert core.group_size == 2
    assert core.get_participant(ids[0])['rating'] == 1508
    assert core.get_participant(ids[1])['rating'] == 1492
