#!/usr/bin/env python3
"""
端到端演示脚本
在进程内模拟多名参与者入队、组局与结算，并打印排行榜
"""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

try:
    from courtqueue.core import MatchmakingCore, InsufficientEntriesError
    from courtqueue.core.leaderboard import build_leaderboard
    from courtqueue.infra.config import ConfigManager
    from courtqueue.utils.logger import configure_root_logger
except ImportError as e:
    print(f"导入错误: {e}")
    print("\n💡 提示: 请先安装项目依赖:")
    print("   pip install -e .")
    sys.exit(1)

PLAYER_NAMES = ['Alice', 'Bob', 'Charlie', 'Diana', 'Eve', 'Frank', 'Grace', 'Heidi']


class DemoClock:
    """可推进的模拟时钟"""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 18, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, minutes: float):
        self.now += timedelta(minutes=minutes)


def main(rounds: int = 6, seed: int = 7):
    configure_root_logger(level='INFO', log_to_file=False, log_to_console=True)
    rng = random.Random(seed)
    clock = DemoClock()
    config_manager = ConfigManager(str(ROOT_DIR / "courtqueue" / "configs" / "default.yaml"))
    core = MatchmakingCore.from_config(config_manager, clock=clock)

    for name in PLAYER_NAMES:
        core.admit(name)
        clock.advance(0.5)

    for _ in range(rounds):
        try:
            session = core.form_session().value
        except InsufficientEntriesError as e:
            print(f"无法组局: {e}")
            break
        clock.advance(rng.randint(15, 25))
        roster_ids = [p.id for p in session.roster]
        winners = rng.sample(roster_ids, len(roster_ids) // 2)
        core.resolve_session(session.id, winners)
        for participant_id in roster_ids:
            clock.advance(rng.uniform(0, 3))
            core.rejoin(participant_id)

    print(build_leaderboard(core.participants()).to_string(index=False))


if __name__ == "__main__":
    main()
