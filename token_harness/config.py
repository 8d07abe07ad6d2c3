"""
Harness configuration.

All settings come from environment variables (a local .env file is loaded
first when present):

    PRIVATE_KEY          operator key; signs every transaction we send
    TOKEN_PRIVATE_KEY    token owner key; mints the initial balance
    ALICE_PRIVATE_KEY    participant A
    BOB_PRIVATE_KEY      participant B
    RPC_URL              chain node endpoint (anvil: http://127.0.0.1:8545)
    CONTRACT_ADDRESS     deployed token contract

Optional:

    ABI_PATH             Forge artifact (out/Token.sol/Token.json); built-in ABI otherwise
    IMPERSONATION_MODE   "contract" (call prank/startPrank/stopPrank on the token)
                         or "node" (anvil_impersonateAccount)
    TOKEN_DECIMALS       fallback when the token has no decimals(); default 18
    INITIAL_MINT         whole tokens minted to alice at bootstrap; default 1000
    ARTIFACT_DIR         run summaries; default ./artifacts/token-tests
    ISOLATE_ACTIONS      truthy -> wrap each action in evm_snapshot/evm_revert
    RECEIPT_TIMEOUT      seconds to wait for a receipt; default 120
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_utils import is_address, to_checksum_address

from .errors import SetupError

REQUIRED_KEYS = {
    "operator": "PRIVATE_KEY",
    "token_owner": "TOKEN_PRIVATE_KEY",
    "alice": "ALICE_PRIVATE_KEY",
    "bob": "BOB_PRIVATE_KEY",
}

IMPERSONATION_MODES = ("contract", "node")

DEFAULT_DECIMALS = 18
DEFAULT_INITIAL_MINT = Decimal(1000)
DEFAULT_ARTIFACT_DIR = "./artifacts/token-tests"
DEFAULT_RECEIPT_TIMEOUT = 120

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class HarnessConfig:
    rpc_url: str
    contract_address: str
    private_keys: Dict[str, str]
    abi_path: Optional[Path] = None
    impersonation_mode: str = "contract"
    token_decimals: int = DEFAULT_DECIMALS
    initial_mint: Decimal = DEFAULT_INITIAL_MINT
    artifact_dir: Path = Path(DEFAULT_ARTIFACT_DIR)
    isolate_actions: bool = False
    receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT

    def key_for(self, role: str) -> str:
        return self.private_keys[role]


def load_config(env: Optional[Mapping[str, str]] = None) -> HarnessConfig:
    """Read and validate settings. Every problem is collected before raising."""
    if env is None:
        load_dotenv()
        env = os.environ

    problems = []

    private_keys = {}
    for role, var in REQUIRED_KEYS.items():
        key = (env.get(var) or "").strip()
        if not key:
            problems.append(f"{var} is required")
            continue
        try:
            Account.from_key(key)
        except Exception as e:
            problems.append(f"{var} is not a valid private key ({e})")
            continue
        private_keys[role] = key

    rpc_url = (env.get("RPC_URL") or "").strip()
    if not rpc_url:
        problems.append("RPC_URL is required")

    contract_address = (env.get("CONTRACT_ADDRESS") or "").strip()
    if not contract_address:
        problems.append("CONTRACT_ADDRESS is required")
    elif not is_address(contract_address):
        problems.append(f"CONTRACT_ADDRESS is not an address: {contract_address}")
    else:
        contract_address = to_checksum_address(contract_address)

    abi_path = None
    if env.get("ABI_PATH"):
        abi_path = Path(env["ABI_PATH"])
        if not abi_path.exists():
            problems.append(f"ABI_PATH not found: {abi_path}")

    mode = (env.get("IMPERSONATION_MODE") or "contract").strip().lower()
    if mode not in IMPERSONATION_MODES:
        problems.append(f"IMPERSONATION_MODE must be one of {IMPERSONATION_MODES}, got {mode!r}")

    decimals = _int_setting(env, "TOKEN_DECIMALS", DEFAULT_DECIMALS, problems)
    timeout = _int_setting(env, "RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT, problems)

    initial_mint = DEFAULT_INITIAL_MINT
    if env.get("INITIAL_MINT"):
        try:
            initial_mint = Decimal(env["INITIAL_MINT"])
        except InvalidOperation:
            problems.append(f"INITIAL_MINT is not a number: {env['INITIAL_MINT']!r}")
        else:
            if initial_mint <= 0:
                problems.append("INITIAL_MINT must be positive")

    if problems:
        raise SetupError("invalid configuration", problems)

    return HarnessConfig(
        rpc_url=rpc_url,
        contract_address=contract_address,
        private_keys=private_keys,
        abi_path=abi_path,
        impersonation_mode=mode,
        token_decimals=decimals,
        initial_mint=initial_mint,
        artifact_dir=Path(env.get("ARTIFACT_DIR") or DEFAULT_ARTIFACT_DIR),
        isolate_actions=(env.get("ISOLATE_ACTIONS") or "").strip().lower() in _TRUTHY,
        receipt_timeout=timeout,
    )


def _int_setting(env, name, default, problems):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        problems.append(f"{name} must be an integer, got {raw!r}")
        return default
    if value < 0:
        problems.append(f"{name} must be >= 0")
        return default
    return value
