"""
VibeGuard

代币合约风险扫描与权威风险注册表。

子包：
- detectors: 六个独立检测器
- scoring: 评分配置与聚合
- registry: 风险注册表状态机
- publish: 扫描并发布
- provider: 链上数据源
- dashboard: 展示层数据
"""

__version__ = "0.1.0"
