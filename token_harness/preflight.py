"""
Preflight checks for the token under test.

Checks:
 - CONTRACT_ADDRESS has runtime bytecode deployed
 - the runtime bytecode contains the 4-byte selector of every function we call

Selector presence is a heuristic (a selector can be reached through a proxy
or a fallback), so only a missing required selector is treated as fatal.
"""

from typing import Dict, Iterable, List

from eth_utils import to_checksum_address

from .abi import parse_functions, selector


def read_runtime_code(w3, address: str) -> str:
    code = w3.eth.get_code(to_checksum_address(address))
    return code.hex() if isinstance(code, (bytes, bytearray)) else str(code)


def check_selectors_in_code(code_hex: str, selectors: Dict[str, str]) -> Dict[str, bool]:
    code = code_hex.lower()
    res = {}
    for sig, sel in selectors.items():
        needle = sel[2:].lower() if sel.startswith("0x") else sel.lower()
        res[sig] = needle in code
    return res


def check_contract(w3, address: str, abi, names: Iterable[str]) -> Dict:
    """
    Returns a report:
      {"address", "deployed", "code_length", "selector_presence": {sig: bool}, "missing": [sig, ...]}
    """
    wanted = set(names)
    sels = {fn.signature: selector(fn.signature) for fn in parse_functions(abi) if fn.name in wanted}

    code_hex = read_runtime_code(w3, address)
    stripped = code_hex[2:] if code_hex.startswith("0x") else code_hex
    report = {
        "address": address,
        "deployed": len(stripped) > 0,
        "code_length": len(stripped),
        "selector_presence": {},
        "missing": [],
    }
    if not report["deployed"]:
        return report

    presence = check_selectors_in_code(stripped, sels)
    report["selector_presence"] = presence
    report["missing"] = [sig for sig, ok in presence.items() if not ok]
    return report


def format_report(report: Dict) -> List[str]:
    lines = [
        f"Address: {report['address']}",
        f"Deployed (has runtime code): {report['deployed']}",
        f"Code length (hex chars): {report['code_length']}",
    ]
    for sig, ok in report["selector_presence"].items():
        lines.append(f"  {sig:45} -> {'FOUND' if ok else 'MISSING'}")
    return lines
