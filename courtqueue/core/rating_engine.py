"""
评分引擎
ELO评分计算，支持按双方平均分进行的组队结算
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple
import math

import numpy as np

from courtqueue.core.models import DEFAULT_INITIAL_RATING


def round_half_up(value: float) -> int:
    """四舍五入到整数（.5 向上取整）"""
    return int(math.floor(value + 0.5))


class RatingAlgorithm(ABC):
    """评分算法基类: 定义评分算法接口"""
    
    @abstractmethod
    def get_initial_rating(self) -> int:
        """获取初始评分"""
        pass
    
    @abstractmethod
    def get_expected_score(
        self, 
        rating: float, 
        opponent_rating: float
    ) -> float:
        """计算期望得分"""
        pass
    
    @abstractmethod
    def rate(
        self,
        rating: int,
        opponent_rating: float,
        won: bool
    ) -> int:
        """计算一场对局后的新评分"""
        pass
    
    def delta(
        self,
        rating: int,
        opponent_rating: float,
        won: bool
    ) -> int:
        """评分变化量"""
        return self.rate(rating, opponent_rating, won) - rating
    
    @staticmethod
    def team_average(ratings: Sequence[int]) -> float:
        """一方的平均评分"""
        if not ratings:
            raise ValueError("队伍评分列表为空")
        return float(np.mean(ratings))
    
    def update_teams(
        self,
        winner_ratings: Sequence[int],
        loser_ratings: Sequence[int]
    ) -> Tuple[List[int], List[int]]:
        """组队结算：双方都基于结算前的评分快照，与对方平均分比较"""
        winner_avg = self.team_average(winner_ratings)
        loser_avg = self.team_average(loser_ratings)
        
        new_winners = [self.rate(r, loser_avg, True) for r in winner_ratings]
        new_losers = [self.rate(r, winner_avg, False) for r in loser_ratings]
        return new_winners, new_losers


class ELORatingAlgorithm(RatingAlgorithm):
    """ELO评分算法: new_rating = round(old_rating + K * (actual - expected))"""
    
    def __init__(
        self, 
        init_rating: int = DEFAULT_INITIAL_RATING, 
        k_factor: float = 32, 
        logistic_constant: float = 400
    ):
        self.init_rating = init_rating
        self.k_factor = k_factor
        self.logistic_constant = logistic_constant
    
    def get_initial_rating(self) -> int:
        """获取初始评分"""
        return self.init_rating
    
    def get_expected_score(
        self, 
        rating: float, 
        opponent_rating: float
    ) -> float:
        """
        计算期望得分
        
        公式: E = 1 / (1 + 10^((R_opponent - R_self) / logistic_constant))
        """
        return 1 / (1 + 10 ** ((opponent_rating - rating) / self.logistic_constant))
    
    def rate(
        self,
        rating: int,
        opponent_rating: float,
        won: bool
    ) -> int:
        """计算新评分，不设上下限"""
        expected = self.get_expected_score(rating, opponent_rating)
        actual = 1.0 if won else 0.0
        return round_half_up(rating + self.k_factor * (actual - expected))
