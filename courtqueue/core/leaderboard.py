"""
排行榜与结果导出
根据参与者评分生成排行榜，并将排行榜与对局历史导出为CSV
"""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from courtqueue.utils.logger import get_logger

logger = get_logger(__name__)

LEADERBOARD_COLUMNS = [
    'rank', 'participant_id', 'name', 'rating', 'wins', 'losses', 'total_sessions', 'win_rate',
]
HISTORY_COLUMNS = [
    'session_id', 'started_at', 'ended_at', 'winners', 'losers', 'winner_ratings', 'loser_ratings',
]


def build_leaderboard(participants: List[Dict[str, Any]]) -> pd.DataFrame:
    """按评分降序、胜场降序、名称升序生成排行榜"""
    if not participants:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)
    
    df = pd.DataFrame(participants).rename(columns={'id': 'participant_id'})
    df = df.sort_values(
        by=['rating', 'wins', 'name'],
        ascending=[False, False, True],
        kind='mergesort',
    ).reset_index(drop=True)
    
    totals = df['total_sessions'].to_numpy()
    df['win_rate'] = np.round(
        np.divide(df['wins'].to_numpy(), totals, out=np.zeros(len(df)), where=totals > 0),
        4,
    )
    df['rank'] = np.arange(1, len(df) + 1)
    return df[LEADERBOARD_COLUMNS]


def build_session_history(sessions: List[Dict[str, Any]]) -> pd.DataFrame:
    """已结算对局的历史表，每局一行"""
    records = []
    for session in sessions:
        result = session.get('result') or {}
        winners = result.get('winners', [])
        losers = result.get('losers', [])
        records.append({
            'session_id': session['id'],
            'started_at': session['started_at'],
            'ended_at': session['ended_at'],
            'winners': ' / '.join(p['name'] for p in winners),
            'losers': ' / '.join(p['name'] for p in losers),
            'winner_ratings': ' / '.join(str(p['rating']) for p in winners),
            'loser_ratings': ' / '.join(str(p['rating']) for p in losers),
        })
    return pd.DataFrame(records, columns=HISTORY_COLUMNS)


def export_results(core, output_dir: Path, timestamp: Optional[str] = None) -> Dict[str, str]:
    """导出排行榜与对局历史（仅作报表，不会被重新加载）"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    
    if timestamp is None:
        timestamp = time.strftime('%Y_%m_%d_%H_%M_%S', time.localtime())
    
    leaderboard_path = output_dir / f"leaderboard_{timestamp}.csv"
    build_leaderboard(core.participants()).to_csv(leaderboard_path, index=False)
    logger.info(f"已保存排行榜: {leaderboard_path}")
    
    history_path = output_dir / f"session_history_{timestamp}.csv"
    build_session_history(core.session_history()).to_csv(history_path, index=False)
    logger.info(f"已保存对局历史: {history_path}")
    
    return {
        'leaderboard_path': str(leaderboard_path),
        'history_path': str(history_path),
    }
