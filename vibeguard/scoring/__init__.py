"""
评分

模块：
- levels: 风险等级划分
- config: 不可变、带版本的评分权重
- aggregator: 检测器并发调度与结果合并
"""

from vibeguard.scoring.levels import risk_level_for, LEVEL_BANDS
from vibeguard.scoring.config import (
    ScoringConfig,
    SCORING_V1,
    SCORING_VERSIONS,
    DEFAULT_SCORING,
    get_scoring_config,
)
from vibeguard.scoring.aggregator import (
    RiskAggregator,
    combine,
    merge_detection_fields,
    category_scores,
)

__all__ = [
    "risk_level_for",
    "LEVEL_BANDS",
    "ScoringConfig",
    "SCORING_V1",
    "SCORING_VERSIONS",
    "DEFAULT_SCORING",
    "get_scoring_config",
    "RiskAggregator",
    "combine",
    "merge_detection_fields",
    "category_scores",
]
