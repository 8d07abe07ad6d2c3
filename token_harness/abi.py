"""
Token ABI surface and ABI helpers.

TOKEN_ABI is the minimal interface the actions use: the ERC-20 calls plus the
token's own prank/startPrank/stopPrank/mint entry points. A full ABI can be
loaded from a Forge artifact instead with load_abi().
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import keccak


def _fn(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"internalType": t, "name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
        "type": "function",
    }


TOKEN_ABI = [
    _fn("mint", [("to", "address"), ("amount", "uint256")]),
    _fn("prank", [("sender", "address")]),
    _fn("startPrank", [("sender", "address")]),
    _fn("stopPrank", []),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], ["bool"]),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"]),
    _fn("transferFrom", [("from", "address"), ("to", "address"), ("amount", "uint256")], ["bool"]),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], ["uint256"], "view"),
    _fn("decimals", [], ["uint8"], "view"),
]

# Functions the actions cannot run without, whatever the impersonation mode.
REQUIRED_FUNCTIONS = ("mint", "transfer", "approve", "transferFrom", "balanceOf", "allowance")
PRANK_FUNCTIONS = ("prank", "startPrank", "stopPrank")


@dataclass
class FunctionParameter:
    name: str
    type: str


@dataclass
class ContractFunction:
    name: str
    inputs: List[FunctionParameter] = field(default_factory=list)
    outputs: List[FunctionParameter] = field(default_factory=list)
    state_mutability: str = "nonpayable"

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.inputs)})"

    @property
    def is_write(self) -> bool:
        return self.state_mutability not in ("view", "pure")


def load_abi(path) -> List[Dict[str, Any]]:
    """Read an ABI from a Forge artifact ({"abi": [...]}), a solc output or a bare list."""
    with open(Path(path), "r") as f:
        data = json.load(f)

    if isinstance(data, list):
        abi = data
    else:
        # Forge wraps the ABI under "abi", some solc outputs under "output"
        abi = data.get("abi") or data.get("output", {}).get("abi")

    if not isinstance(abi, list):
        raise ValueError(f"no ABI list found in {path}")
    return abi


def parse_functions(abi: List[Dict[str, Any]]) -> List[ContractFunction]:
    functions = []
    for item in abi:
        if item.get("type") != "function":
            continue
        if "name" not in item:
            raise ValueError(f"function entry without a name: {item}")
        functions.append(ContractFunction(
            name=item["name"],
            inputs=[FunctionParameter(p.get("name", ""), p["type"]) for p in item.get("inputs", [])],
            outputs=[FunctionParameter(p.get("name", ""), p["type"]) for p in item.get("outputs", [])],
            # pre-0.6 ABIs only carry "constant"
            state_mutability=item.get("stateMutability") or ("view" if item.get("constant") else "nonpayable"),
        ))
    return functions


def find_function(abi, name: str) -> Optional[ContractFunction]:
    for fn in parse_functions(abi):
        if fn.name == name:
            return fn
    return None


def has_function(abi, name: str) -> bool:
    return find_function(abi, name) is not None


def selector(signature: str) -> str:
    """'transfer(address,uint256)' -> '0xa9059cbb'"""
    return "0x" + keccak(text=signature)[:4].hex()


def missing_functions(abi, names) -> List[str]:
    present = {fn.name for fn in parse_functions(abi)}
    return [n for n in names if n not in present]
