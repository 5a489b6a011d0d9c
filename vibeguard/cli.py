#!/usr/bin/env python3
"""
VibeGuard 命令行
================

运行方式：
    vibeguard scan 0x...                      # 扫描代币（浏览器 + RPC）
    vibeguard scan 0x... --fixture data.json  # 使用本地夹具离线扫描
    vibeguard scan 0x... 0x...                # 扫描多个代币并输出汇总
    vibeguard publish 0x... --agent 0x... --db data/registry.db
    vibeguard query 0x... --owner 0x... --db data/registry.db
    vibeguard fields                          # 列出检测字段
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vibeguard.config import settings
from vibeguard.dashboard import ScanHistory
from vibeguard.errors import InvalidInput, RegistryError
from vibeguard.models.risk import AggregateReport, Category, DETECTION_FIELDS, RiskLevel
from vibeguard.provider import ExplorerChainDataProvider, StaticChainDataProvider
from vibeguard.publish import PublishAdapter
from vibeguard.registry import RiskRegistry, SQLiteEventStore
from vibeguard.scoring import RiskAggregator

console = Console()

LEVEL_STYLES = {
    RiskLevel.SAFE: "green",
    RiskLevel.LOW: "cyan",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "bold red",
    RiskLevel.PENDING: "dim",
}

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "warning": "yellow",
    "medium": "yellow",
    "low": "cyan",
    "info": "dim",
    "safe": "green",
}


def setup_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def build_aggregator(fixture: Optional[str], history: Optional[ScanHistory] = None) -> RiskAggregator:
    if fixture:
        provider = StaticChainDataProvider.from_file(fixture)
    else:
        provider = ExplorerChainDataProvider(settings)
    return RiskAggregator(provider, detector_timeout=settings.detector_timeout_seconds, history=history)


def open_registry(owner: str, db_path: Optional[str]) -> RiskRegistry:
    kwargs = dict(
        staleness_threshold=settings.staleness_threshold_seconds,
        strict_pending=settings.strict_pending_is_safe,
    )
    db_path = db_path or settings.event_db_path
    if db_path:
        return RiskRegistry.restore(owner, SQLiteEventStore(db_path), **kwargs)
    return RiskRegistry(owner, **kwargs)


def display_report(report: AggregateReport):
    """显示聚合报告"""
    style = LEVEL_STYLES.get(report.risk_level, "white")
    name = f" ({report.contract_name})" if report.contract_name else ""
    console.print(Panel(
        f"[bold]{report.token_address}{name}[/bold]\n"
        f"综合风险: [{style}]{report.overall_risk} {report.risk_level.value}[/{style}]\n"
        f"已验证: {'是' if report.verified else '否'} | 代理合约: {'是' if report.is_proxy else '否'} | "
        f"耗时: {report.scan_duration_seconds:.2f}s",
        title="扫描结果",
        border_style=style,
    ))

    table = Table(title="分类评分")
    table.add_column("分类", style="cyan")
    table.add_column("分数", justify="right")
    for label, value in [
        ("合约风险", report.contract_risk),
        ("蜜罐", report.honeypot),
        ("跑路", report.rug_pull),
        ("闪电贷", report.flash_loan),
        ("MEV", report.mev),
        ("所有权", report.ownership),
        ("税费", report.tax),
        ("流动性健康度", report.liquidity_health),
        ("创建者风险", report.creator_risk),
    ]:
        table.add_row(label, str(value))
    console.print(table)

    if report.degraded_detectors:
        console.print(f"[yellow]⚠ 降级检测器: {', '.join(report.degraded_detectors)}[/yellow]")

    findings = Table(title="发现")
    findings.add_column("检测器", style="dim")
    findings.add_column("名称")
    findings.add_column("严重程度")
    findings.add_column("权重", justify="right")
    findings.add_column("详情")
    for f in report.findings:
        sev_style = SEVERITY_STYLES.get(f.severity.value, "white")
        findings.add_row(
            f.detector or "",
            f.name,
            f"[{sev_style}]{f.severity.value}[/{sev_style}]",
            str(f.weight) if f.weight else "",
            f.detail,
        )
    console.print(findings)


def display_fields():
    table = Table(title=f"检测字段 ({len(DETECTION_FIELDS)})")
    table.add_column("分类", style="cyan")
    table.add_column("字段")
    table.add_column("说明")
    table.add_column("权重", justify="right")
    for category in Category:
        for fs in DETECTION_FIELDS.values():
            if fs.category == category:
                table.add_row(category.label, fs.key, fs.label, str(fs.weight))
    console.print(table)


def display_summary(history: ScanHistory):
    """多个代币扫描后的汇总"""
    stats = history.stats()
    table = Table(title=f"扫描汇总 (共 {stats['total_scans']} 个, 威胁 {stats['threats_detected']} 个)")
    table.add_column("代币", style="cyan")
    table.add_column("名称")
    table.add_column("综合风险", justify="right")
    table.add_column("等级")
    for scan in stats["recent_scans"]:
        table.add_row(
            scan["token_address"],
            scan["contract_name"] or "",
            str(scan["overall_risk"]),
            scan["risk_level"],
        )
    console.print(table)


def cmd_scan(args) -> int:
    history = ScanHistory(max_size=settings.scan_history_size)
    aggregator = build_aggregator(args.fixture, history)
    for address in args.addresses:
        report = aggregator.aggregate(address)
        if args.json:
            console.print_json(json.dumps(report.to_dict(), default=str))
        else:
            display_report(report)
    if len(args.addresses) > 1 and not args.json:
        display_summary(history)
    return 0


def cmd_publish(args) -> int:
    registry = open_registry(args.owner or args.agent, args.db)
    adapter = PublishAdapter(build_aggregator(args.fixture), registry, args.agent)
    result = adapter.scan_and_publish(args.address)
    display_report(result.report)
    if result.published:
        console.print(f"[green]✓ 已发布 (token id {result.token_id})[/green]")
        return 0
    console.print(f"[red]发布失败: {result.error}[/red]")
    return 1


def cmd_query(args) -> int:
    registry = open_registry(args.owner, args.db)
    full = registry.get_full_risk_report(args.address)
    table = Table(title=f"注册表记录 #{full.token_id}")
    table.add_column("字段", style="cyan")
    table.add_column("值")
    for key, value in full.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)
    if args.max_risk is not None:
        safe = registry.is_safe(args.address, args.max_risk)
        console.print(f"is_safe(≤{args.max_risk}): {'[green]是[/green]' if safe else '[red]否[/red]'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="VibeGuard 代币风险扫描")
    parser.add_argument("--log-level", default=settings.log_level, help="日志级别")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="扫描代币")
    scan.add_argument("addresses", nargs="+", metavar="address", help="代币地址（可多个）")
    scan.add_argument("--fixture", "-f", help="JSON 夹具文件（离线扫描）")
    scan.add_argument("--json", action="store_true", help="输出 JSON")
    scan.set_defaults(func=cmd_scan)

    publish = sub.add_parser("publish", help="扫描并发布到注册表")
    publish.add_argument("address", help="代币地址")
    publish.add_argument("--agent", required=True, help="写入者地址")
    publish.add_argument("--owner", help="注册表 owner（默认与 agent 相同）")
    publish.add_argument("--db", help="事件日志 SQLite 文件")
    publish.add_argument("--fixture", "-f", help="JSON 夹具文件（离线扫描）")
    publish.set_defaults(func=cmd_publish)

    query = sub.add_parser("query", help="查询注册表")
    query.add_argument("address", help="代币地址")
    query.add_argument("--owner", required=True, help="注册表 owner")
    query.add_argument("--db", help="事件日志 SQLite 文件")
    query.add_argument("--max-risk", type=int, help="同时检查 is_safe")
    query.set_defaults(func=cmd_query)

    fields = sub.add_parser("fields", help="列出检测字段")
    fields.set_defaults(func=lambda args: display_fields() or 0)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return args.func(args)
    except InvalidInput as e:
        console.print(f"[red]输入错误: {e}[/red]")
        return 2
    except RegistryError as e:
        console.print(f"[red]注册表错误: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
