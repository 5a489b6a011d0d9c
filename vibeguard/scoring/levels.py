"""
风险等级划分

<=20 SAFE, <=40 LOW, <=60 MEDIUM, <=80 HIGH, 其余 CRITICAL
"""

from vibeguard.models.risk import RiskLevel

# (上限, 等级)
LEVEL_BANDS = (
    (20, RiskLevel.SAFE),
    (40, RiskLevel.LOW),
    (60, RiskLevel.MEDIUM),
    (80, RiskLevel.HIGH),
)


def risk_level_for(score: int) -> RiskLevel:
    """评分 -> 风险等级（纯函数，超出范围按边界处理）"""
    for upper, level in LEVEL_BANDS:
        if score <= upper:
            return level
    return RiskLevel.CRITICAL
