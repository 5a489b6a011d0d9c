"""
EVM 字节码工具

- 函数选择器计算与存在性检查
- 操作码遍历（跳过 PUSH 数据）
- 代理合约识别
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from eth_utils import keccak


# 检测器关心的操作码
OPCODES = {
    0x04: "DIV",
    0x54: "SLOAD",
    0x55: "SSTORE",
    0xf1: "CALL",
    0xf4: "DELEGATECALL",
    0xfa: "STATICCALL",
    0xfd: "REVERT",
    0xff: "SELFDESTRUCT",
}

# EIP-1167 最小代理
MINIMAL_PROXY_PREFIX = "363d3d373d3d3d363d73"
MINIMAL_PROXY_SUFFIX = "5af43d82803e903d91602b57fd5bf3"

UPGRADE_SELECTORS = (
    "3659cfe6",  # upgradeTo(address)
    "4f1ef286",  # upgradeToAndCall(address,bytes)
    "5c60da1b",  # implementation()
)


def compute_selector(signature: str) -> str:
    """计算函数选择器

    Args:
        signature: 如 "transfer(address,uint256)"

    Returns:
        0x开头的选择器
    """
    return "0x" + keccak(text=signature).hex()[:8]


def strip_code(bytecode: Optional[str]) -> str:
    """去掉 0x 前缀并转小写；空代码返回空串"""
    if not bytecode:
        return ""
    code = bytecode.strip().lower()
    if code.startswith("0x"):
        code = code[2:]
    # 奇数长度时丢弃末尾半字节
    if len(code) % 2:
        code = code[:-1]
    return code


def has_selector(code: str, signature_or_selector: str) -> bool:
    """字节码中是否出现某个选择器（子串匹配）"""
    if "(" in signature_or_selector:
        selector = compute_selector(signature_or_selector)[2:]
    else:
        selector = signature_or_selector.lower().replace("0x", "")
    return selector in code


def find_selectors(code: str, signatures: Iterable[str]) -> List[str]:
    """返回字节码中出现的签名列表"""
    return [sig for sig in signatures if has_selector(code, sig)]


def iter_opcodes(code: str) -> Iterator[Tuple[int, int]]:
    """遍历 (偏移, 操作码)，跳过 PUSH 数据"""
    data = bytes.fromhex(code)
    i = 0
    length = len(data)
    while i < length:
        opcode = data[i]
        yield i, opcode
        # 跳过PUSH数据
        if 0x60 <= opcode <= 0x7f:
            i += opcode - 0x5f
        i += 1


def count_opcodes(code: str) -> Dict[str, int]:
    """统计关心的操作码出现次数"""
    counts: Dict[str, int] = {name: 0 for name in OPCODES.values()}
    for _, opcode in iter_opcodes(code):
        name = OPCODES.get(opcode)
        if name:
            counts[name] += 1
    return counts


def is_minimal_proxy(code: str) -> bool:
    """检测是否为EIP-1167最小代理"""
    return code.startswith(MINIMAL_PROXY_PREFIX) and MINIMAL_PROXY_SUFFIX in code


def is_upgradeable_proxy(code: str, opcode_counts: Optional[Dict[str, int]] = None) -> bool:
    """DELEGATECALL + 升级相关选择器"""
    counts = opcode_counts if opcode_counts is not None else count_opcodes(code)
    if not counts.get("DELEGATECALL"):
        return False
    return any(selector in code for selector in UPGRADE_SELECTORS)


def has_reentrancy_guard(opcode_counts: Dict[str, int]) -> bool:
    """SLOAD + SSTORE + REVERT 同时出现视为存在互斥锁模式"""
    return all(opcode_counts.get(name, 0) > 0 for name in ("SLOAD", "SSTORE", "REVERT"))
