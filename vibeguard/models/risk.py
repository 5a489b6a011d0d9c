"""
风险数据模型

定义检测结果的数据结构：
- 检测字段 (DetectionField) 及其规范表
- 发现 (Finding)
- 单检测器报告 (SubReport)
- 聚合报告 (AggregateReport)
"""

from dataclasses import dataclass, field as dc_field
from typing import Dict, List, Optional, Any
from enum import Enum
import math


class Severity(str, Enum):
    """严重程度"""
    SAFE = "safe"
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    WARNING = "warning"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.SAFE: 0,
    Severity.INFO: 1,
    Severity.LOW: 2,
    Severity.MEDIUM: 3,
    Severity.WARNING: 4,
    Severity.HIGH: 5,
    Severity.CRITICAL: 6,
}


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上）"""
    return int(math.floor(value + 0.5))


def clamp_score(value: float, low: int = 0, high: int = 100) -> int:
    """限制到 [low, high] 并取整"""
    return int(max(low, min(high, value)))


def severity_for_weight(weight: int) -> Severity:
    """按权重确定严重程度：>=30 critical，>=15 warning，其余 info"""
    if weight >= 30:
        return Severity.CRITICAL
    if weight >= 15:
        return Severity.WARNING
    return Severity.INFO


class Category(str, Enum):
    """检测分类（固定 7 类）"""
    CONTRACT_SECURITY = "contract_security"
    HONEYPOT = "honeypot"
    OWNERSHIP = "ownership"
    TAX = "tax"
    TRADING = "trading"
    FRAUD = "fraud"
    RUG_PULL = "rug_pull"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.CONTRACT_SECURITY: "Contract Security",
    Category.HONEYPOT: "Honeypot Detection",
    Category.OWNERSHIP: "Ownership Risks",
    Category.TAX: "Tax & Fees",
    Category.TRADING: "Trading Restrictions",
    Category.FRAUD: "Fraud Detection",
    Category.RUG_PULL: "Rug Pull Indicators",
}


class RiskLevel(str, Enum):
    """风险等级"""
    SAFE = "SAFE"                    # 0-20
    LOW = "LOW"                      # 21-40
    MEDIUM = "MEDIUM"                # 41-60
    HIGH = "HIGH"                    # 61-80
    CRITICAL = "CRITICAL"            # 81-100
    PENDING = "PENDING"              # 已注册但尚未评分


@dataclass(frozen=True)
class FieldSpec:
    """规范检测字段定义"""
    key: str
    label: str
    category: Category
    weight: int
    # False 表示该字段"未检测到"时才构成风险（如 is_open_source）
    risk_when: bool = True


def _spec(key: str, label: str, category: Category, weight: int, risk_when: bool = True) -> FieldSpec:
    return FieldSpec(key=key, label=label, category=category, weight=weight, risk_when=risk_when)


_CS = Category.CONTRACT_SECURITY
_HP = Category.HONEYPOT
_OW = Category.OWNERSHIP
_TX = Category.TAX
_TR = Category.TRADING
_FR = Category.FRAUD
_RP = Category.RUG_PULL

DETECTION_FIELDS: Dict[str, FieldSpec] = {s.key: s for s in (
    # Contract Security
    _spec("is_open_source", "Contract source verified", _CS, 20, risk_when=False),
    _spec("is_proxy", "Proxy contract", _CS, 15),
    _spec("has_selfdestruct", "Self-destruct capability", _CS, 40),
    _spec("has_external_call", "External value transfer", _CS, 10),
    _spec("is_upgradeable", "Upgradeable logic", _CS, 20),
    _spec("has_assembly", "Inline assembly", _CS, 10),
    # Honeypot Detection
    _spec("is_honeypot", "Honeypot", _HP, 50),
    _spec("transfer_pausable", "Transfers pausable", _HP, 30),
    _spec("is_blacklisted", "Blacklist function", _HP, 25),
    _spec("is_whitelisted", "Whitelist function", _HP, 10),
    _spec("trading_cooldown", "Trading cooldown", _HP, 15),
    _spec("has_trading_toggle", "Trading can be toggled", _HP, 25),
    _spec("personal_slippage_mod", "Per-address slippage modifiable", _HP, 20),
    # Ownership Risks
    _spec("hidden_owner", "Hidden owner", _OW, 30),
    _spec("can_take_back_ownership", "Ownership can be reclaimed", _OW, 25),
    _spec("owner_change_balance", "Owner can change balances", _OW, 35),
    _spec("is_ownership_renounced", "Ownership renounced", _OW, -15),
    # Rug Pull Indicators (含供应量操纵)
    _spec("is_mintable", "Mintable supply", _RP, 30),
    _spec("is_burnable", "Burnable supply", _RP, 5),
    _spec("unlimited_supply", "Unlimited supply", _RP, 25),
    _spec("can_remove_liquidity", "Liquidity removable", _RP, 35),
    _spec("has_liquidity_lock", "Liquidity locked", _RP, -20),
    _spec("owner_can_drain", "Owner can withdraw funds", _RP, 40),
    # Tax & Fees
    _spec("tax_modifiable", "Tax modifiable", _TX, 25),
    _spec("has_buy_tax", "Buy tax", _TX, 10),
    _spec("has_sell_tax", "Sell tax", _TX, 10),
    _spec("high_tax_risk", "High tax", _TX, 30),
    _spec("is_buy_back", "Buy-back mechanism", _TX, 5),
    # Trading Restrictions
    _spec("is_anti_whale", "Anti-whale / anti-bot", _TR, 15),
    _spec("anti_whale_modifiable", "Anti-whale modifiable", _TR, 20),
    _spec("has_max_tx", "Max transaction limit", _TR, 15),
    _spec("has_max_wallet", "Max wallet limit", _TR, 10),
    # Fraud Detection
    _spec("fake_token", "Impersonates a known asset", _FR, 40),
    _spec("fake_standard_interface", "Non-standard token interface", _FR, 35),
    _spec("can_reinit", "Re-initializable", _FR, 20),
)}


@dataclass
class DetectionField:
    """检测字段结果"""
    key: str
    detected: bool
    severity: Severity
    category: Category
    weight: int

    @property
    def is_risky(self) -> bool:
        fs = DETECTION_FIELDS.get(self.key)
        risk_when = fs.risk_when if fs else True
        return self.detected == risk_when

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "detected": self.detected,
            "severity": self.severity.value,
            "category": self.category.value,
            "weight": self.weight,
        }


def make_field(key: str, detected: bool = True, severity: Optional[Severity] = None) -> DetectionField:
    """按规范表构造检测字段"""
    fs = DETECTION_FIELDS[key]
    if severity is None:
        severity = severity_for_weight(fs.weight) if detected == fs.risk_when else Severity.SAFE
    return DetectionField(
        key=key,
        detected=detected,
        severity=severity,
        category=fs.category,
        weight=fs.weight,
    )


@dataclass
class Finding:
    """检测发现"""
    name: str
    severity: Severity
    detail: str
    weight: int = 0
    detector: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "severity": self.severity.value,
            "detail": self.detail,
            "weight": self.weight,
            "detector": self.detector,
        }


@dataclass
class SubReport:
    """单个检测器的输出"""
    token_address: str
    detector: str
    score: int = 0
    findings: List[Finding] = dc_field(default_factory=list)
    detection_fields: Dict[str, DetectionField] = dc_field(default_factory=dict)
    metrics: Dict[str, Any] = dc_field(default_factory=dict)
    degraded: bool = False

    def add_finding(self, name: str, severity: Severity, detail: str, weight: int = 0) -> Finding:
        finding = Finding(name=name, severity=severity, detail=detail, weight=weight, detector=self.detector)
        self.findings.append(finding)
        return finding

    def set_field(self, key: str, detected: bool = True, severity: Optional[Severity] = None) -> DetectionField:
        detection = make_field(key, detected, severity)
        existing = self.detection_fields.get(key)
        if existing is None or detection.severity.rank > existing.severity.rank:
            self.detection_fields[key] = detection
        return self.detection_fields[key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_address": self.token_address,
            "detector": self.detector,
            "score": self.score,
            "degraded": self.degraded,
            "findings": [f.to_dict() for f in self.findings],
            "detection_fields": {k: v.to_dict() for k, v in self.detection_fields.items()},
            "metrics": self.metrics,
        }


@dataclass(frozen=True)
class AggregateReport:
    """聚合风险报告"""
    token_address: str
    overall_risk: int
    risk_level: RiskLevel

    # 分类评分
    contract_risk: int
    honeypot: int
    rug_pull: int
    flash_loan: int
    mev: int
    ownership: int
    tax: int
    liquidity_health: int
    creator_risk: int

    verified: bool
    is_proxy: bool
    detection_fields: Dict[str, DetectionField]
    findings: List[Finding]

    detector_scores: Dict[str, int] = dc_field(default_factory=dict)
    degraded_detectors: List[str] = dc_field(default_factory=list)
    scoring_version: str = ""
    contract_name: Optional[str] = None

    scan_duration_seconds: float = 0.0
    timestamp: Optional[float] = None

    def score_fields(self) -> Dict[str, int]:
        """所有评分字段（用于比较与发布）"""
        return {
            "overall_risk": self.overall_risk,
            "contract_risk": self.contract_risk,
            "honeypot": self.honeypot,
            "rug_pull": self.rug_pull,
            "flash_loan": self.flash_loan,
            "mev": self.mev,
            "ownership": self.ownership,
            "tax": self.tax,
            "liquidity_health": self.liquidity_health,
            "creator_risk": self.creator_risk,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_address": self.token_address,
            "contract_name": self.contract_name,
            "overall_risk": self.overall_risk,
            "risk_level": self.risk_level.value,
            "scores": self.score_fields(),
            "verified": self.verified,
            "is_proxy": self.is_proxy,
            "detection_fields": {k: v.to_dict() for k, v in sorted(self.detection_fields.items())},
            "findings": [f.to_dict() for f in self.findings],
            "detector_scores": dict(sorted(self.detector_scores.items())),
            "degraded_detectors": list(self.degraded_detectors),
            "scoring_version": self.scoring_version,
            "scan_duration_seconds": self.scan_duration_seconds,
            "timestamp": self.timestamp,
        }
