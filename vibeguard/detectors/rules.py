"""
声明式规则表

每条规则 {pattern, field, category, weight, severity}，
由同一个通用匹配器对文本（源码或字节码十六进制）求值。
"""

from dataclasses import dataclass, field as dc_field
from typing import Dict, List, Optional, Sequence
import re
import logging

from vibeguard.models.risk import Category, Severity, SubReport, severity_for_weight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternRule:
    """模式规则"""
    name: str                        # 规则名称（发现名称）
    pattern: str                     # 正则表达式
    category: Category
    weight: int                      # 有符号权重
    field: Optional[str] = None      # 对应的规范检测字段；None 表示只计分
    severity: Optional[Severity] = None
    description: str = ""
    ignore_case: bool = True

    @property
    def effective_severity(self) -> Severity:
        return self.severity or severity_for_weight(self.weight)


@dataclass
class RuleHit:
    """规则命中"""
    rule: PatternRule
    excerpt: str = ""


@dataclass
class RuleMatcher:
    """通用规则匹配器

    每条规则最多命中一次。
    """
    rules: Sequence[PatternRule]
    _compiled: Dict[str, "re.Pattern"] = dc_field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        for rule in self.rules:
            flags = re.IGNORECASE if rule.ignore_case else 0
            try:
                self._compiled[rule.name] = re.compile(rule.pattern, flags)
            except re.error as e:
                logger.warning(f"Invalid regex pattern in rule {rule.name}: {e}")

    def scan(self, text: str) -> List[RuleHit]:
        """对文本求值，返回命中列表（保持规则顺序）"""
        hits: List[RuleHit] = []
        if not text:
            return hits
        for rule in self.rules:
            regex = self._compiled.get(rule.name)
            if regex is None:
                continue
            match = regex.search(text)
            if match:
                hits.append(RuleHit(rule=rule, excerpt=match.group(0)[:80]))
        return hits


def apply_hits(report: SubReport, hits: List[RuleHit]) -> int:
    """把命中写入子报告（字段 + 发现），返回权重之和"""
    total = 0
    for hit in hits:
        rule = hit.rule
        severity = rule.effective_severity
        if rule.field:
            report.set_field(rule.field, detected=True, severity=severity)
        detail = rule.description or f"Matched '{hit.excerpt}'"
        report.add_finding(rule.name, severity, detail, weight=rule.weight)
        total += rule.weight
    return total
