"""
评分配置

权重表是不可变、带版本号的配置；调整权重必须发布新版本，
不允许原地修改，以保证同一版本下的评分可复现。
"""

from dataclasses import dataclass, field as dc_field
from types import MappingProxyType
from typing import Dict, Mapping
import math

from vibeguard.models.risk import Category


def _frozen(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ScoringConfig:
    """聚合权重（不可变）"""
    version: str

    # 合约层面：7 个分类的加权
    contract_weights: Mapping[Category, float]

    # 蜜罐 = 合约蜜罐分 / 创建者风险
    honeypot_contract: float
    honeypot_creator: float

    # 跑路 = 合约跑路分 / 创建者风险 / (100 - 流动性健康度)
    rug_contract: float
    rug_creator: float
    rug_liquidity: float

    # 综合风险
    overall_weights: Mapping[str, float]

    # 两个合约检测器都降级时的合约风险
    neutral_contract_risk: int = 50

    # 检测器失败时的中性默认值
    neutral_defaults: Mapping[str, int] = dc_field(default_factory=lambda: _frozen({
        "creator": 50,
        "liquidity_health": 50,
        "flash_loan": 0,
        "mev": 0,
    }))

    def __post_init__(self):
        self._check_sum("contract_weights", self.contract_weights.values())
        self._check_sum("overall_weights", self.overall_weights.values())
        self._check_sum("honeypot", (self.honeypot_contract, self.honeypot_creator))
        self._check_sum("rug_pull", (self.rug_contract, self.rug_creator, self.rug_liquidity))
        missing = set(Category) - set(self.contract_weights)
        if missing:
            raise ValueError(f"contract_weights missing categories: {sorted(c.value for c in missing)}")

    @staticmethod
    def _check_sum(name: str, weights) -> None:
        total = sum(weights)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"{name} must sum to 1.0, got {total}")

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "contract_weights": {c.value: w for c, w in self.contract_weights.items()},
            "honeypot": {"contract": self.honeypot_contract, "creator": self.honeypot_creator},
            "rug_pull": {
                "contract": self.rug_contract,
                "creator": self.rug_creator,
                "liquidity": self.rug_liquidity,
            },
            "overall_weights": dict(self.overall_weights),
            "neutral_contract_risk": self.neutral_contract_risk,
            "neutral_defaults": dict(self.neutral_defaults),
        }


SCORING_V1 = ScoringConfig(
    version="1",
    contract_weights=_frozen({
        Category.HONEYPOT: 0.25,
        Category.RUG_PULL: 0.20,
        Category.OWNERSHIP: 0.15,
        Category.TAX: 0.10,
        Category.TRADING: 0.05,
        Category.FRAUD: 0.15,
        Category.CONTRACT_SECURITY: 0.10,
    }),
    honeypot_contract=0.7,
    honeypot_creator=0.3,
    rug_contract=0.5,
    rug_creator=0.3,
    rug_liquidity=0.2,
    overall_weights=_frozen({
        "contract": 0.30,
        "honeypot": 0.20,
        "rug_pull": 0.15,
        "liquidity": 0.10,
        "flash_loan": 0.13,
        "mev": 0.12,
    }),
)

SCORING_VERSIONS: Mapping[str, ScoringConfig] = _frozen({SCORING_V1.version: SCORING_V1})

DEFAULT_SCORING = SCORING_V1


def get_scoring_config(version: str) -> ScoringConfig:
    """按版本号获取评分配置"""
    try:
        return SCORING_VERSIONS[version]
    except KeyError:
        raise ValueError(f"Unknown scoring version: {version}") from None
