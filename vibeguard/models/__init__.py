"""
数据模型

模块：
- risk: 检测字段、发现、子报告、聚合报告
- chain: 链上输入上下文（pydantic）
"""

from vibeguard.models.risk import (
    Severity,
    Category,
    RiskLevel,
    FieldSpec,
    DETECTION_FIELDS,
    DetectionField,
    Finding,
    SubReport,
    AggregateReport,
    make_field,
    severity_for_weight,
)
from vibeguard.models.chain import (
    ZERO_ADDRESS,
    normalize_address,
    is_valid_address,
    SourceInfo,
    HolderBalance,
    TokenTransfer,
    CreatorStats,
    ScanContext,
)

__all__ = [
    "Severity",
    "Category",
    "RiskLevel",
    "FieldSpec",
    "DETECTION_FIELDS",
    "DetectionField",
    "Finding",
    "SubReport",
    "AggregateReport",
    "make_field",
    "severity_for_weight",
    "ZERO_ADDRESS",
    "normalize_address",
    "is_valid_address",
    "SourceInfo",
    "HolderBalance",
    "TokenTransfer",
    "CreatorStats",
    "ScanContext",
]
