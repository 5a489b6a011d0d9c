"""
合约创建者画像

根据创建者钱包年龄、部署合约数量和余额评估风险。
"""

import logging

from vibeguard.detectors.base import Detector
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Severity, SubReport, clamp_score

logger = logging.getLogger(__name__)


class CreatorProfiler(Detector):
    """创建者画像"""

    name = "creator"
    neutral_score = 50
    unknown_creator_score = 30

    # (天数上限, 加分, 严重程度)
    AGE_TIERS = [
        (7, 30, Severity.HIGH),
        (30, 15, Severity.MEDIUM),
    ]
    VETERAN_AGE_DAYS = 365
    VETERAN_BONUS = -10

    # (部署数量下限, 加分, 严重程度)
    DEPLOYMENT_TIERS = [
        (20, 30, Severity.CRITICAL),
        (10, 15, Severity.HIGH),
        (5, 5, Severity.LOW),
    ]
    LOW_BALANCE = 0.01

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        creator = self._require(context, "creator")

        if creator is None:
            report.score = self.unknown_creator_score
            report.add_finding("Creator not found", Severity.MEDIUM,
                               "Deployer of this contract could not be identified",
                               weight=self.unknown_creator_score)
            return report

        report.metrics["creator_address"] = creator.address
        score = 0

        age = creator.wallet_age_days
        if age is not None:
            report.metrics["wallet_age_days"] = age
            for limit, weight, severity in self.AGE_TIERS:
                if age < limit:
                    report.add_finding("New creator wallet", severity,
                                       f"Creator wallet is {age:.0f} days old", weight=weight)
                    score += weight
                    break
            else:
                if age > self.VETERAN_AGE_DAYS:
                    report.add_finding("Established creator wallet", Severity.SAFE,
                                       f"Creator wallet is {age:.0f} days old", weight=self.VETERAN_BONUS)
                    score += self.VETERAN_BONUS

        deployed = creator.deployed_contracts
        report.metrics["deployed_contract_count"] = deployed
        for minimum, weight, severity in self.DEPLOYMENT_TIERS:
            if deployed > minimum:
                report.add_finding("Serial deployer", severity,
                                   f"Creator deployed {deployed} contracts", weight=weight)
                score += weight
                break

        if creator.balance is not None:
            report.metrics["creator_balance"] = creator.balance
            if creator.balance < self.LOW_BALANCE:
                report.add_finding("Drained creator wallet", Severity.MEDIUM,
                                   f"Creator balance is {creator.balance:.4f}", weight=15)
                score += 15

        report.score = clamp_score(score)
        return report
