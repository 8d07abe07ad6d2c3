"""
Shared fixtures.

FakeToken is an in-memory ERC-20 with the same prank/startPrank/stopPrank
entry points as the token under test, so actions, runner and shell can be
exercised without a chain node. FakeW3 answers the handful of node RPC
methods the harness sends (snapshots and impersonation).
"""

import copy
from decimal import Decimal
from pathlib import Path

import pytest
from eth_account import Account

from token_harness.abi import TOKEN_ABI
from token_harness.config import HarnessConfig
from token_harness.errors import CallReverted
from token_harness.impersonation import ContractPrankBackend, Impersonator, NodePrankBackend
from token_harness.session import Session
from token_harness.token import CallResult

# anvil's default development keys (public, funded on every anvil instance)
ANVIL_KEYS = {
    "operator": "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "token_owner": "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "alice": "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "bob": "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
}

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class FakeToken:
    """ERC-20 ledger with contract-level impersonation, mirroring the token under test."""

    def __init__(self, operator: str, owner: str, decimals: int = 18):
        self.address = CONTRACT_ADDRESS
        self.abi = TOKEN_ABI
        self.operator = operator
        self.owner = owner
        self._decimals = decimals
        self.balances = {}
        self.allowances = {}
        self.prank_once = None
        self.prank_bracket = None
        self.calls = []  # (name, args, msg_sender)
        self.block = 0
        self.ignore_balance_check = False

    # -------------------------
    # state helpers
    # -------------------------
    def state(self):
        return copy.deepcopy((self.balances, self.allowances, self.prank_once, self.prank_bracket))

    def restore(self, state):
        self.balances, self.allowances, self.prank_once, self.prank_bracket = copy.deepcopy(state)

    def has_function(self, name):
        return any(item["name"] == name for item in self.abi)

    # -------------------------
    # contract surface
    # -------------------------
    def read(self, name, *args, sender=None):
        if name == "balanceOf":
            return self.balances.get(args[0], 0)
        if name == "allowance":
            return self.allowances.get((args[0], args[1]), 0)
        if name == "decimals":
            return self._decimals
        raise AttributeError(name)

    def balance_of(self, account):
        return int(self.read("balanceOf", account))

    def allowance(self, owner, spender):
        return int(self.read("allowance", owner, spender))

    def decimals(self):
        return self._decimals

    def write(self, name, *args, sender=None):
        label = f"{name}({', '.join(str(a) for a in args)})"
        saved = self.state()
        msg_sender = self._msg_sender(sender, name)
        try:
            value = getattr(self, "_" + name)(msg_sender, *args)
        except CallReverted:
            self.restore(saved)
            raise
        self.calls.append((name, args, msg_sender))
        self.block += 1
        receipt = {"status": 1, "blockNumber": self.block}
        return CallResult(name, f"0x{self.block:064x}", receipt, value)

    def _msg_sender(self, sender, name):
        if sender:
            return sender
        if name in ("prank", "startPrank", "stopPrank"):
            return self.operator
        if self.prank_once:
            who = self.prank_once
            self.prank_once = None
            return who
        return self.prank_bracket or self.operator

    def _revert(self, name, reason):
        raise CallReverted(name, reason)

    def _prank(self, msg_sender, who):
        self.prank_once = who

    def _startPrank(self, msg_sender, who):
        self.prank_bracket = who

    def _stopPrank(self, msg_sender):
        self.prank_once = None
        self.prank_bracket = None

    def _mint(self, msg_sender, to, amount):
        if msg_sender != self.owner:
            self._revert("mint", "caller is not the owner")
        self.balances[to] = self.balances.get(to, 0) + amount

    def _transfer(self, msg_sender, to, amount):
        self._move(msg_sender, to, amount)
        return True

    def _approve(self, msg_sender, spender, amount):
        self.allowances[(msg_sender, spender)] = amount
        return True

    def _transferFrom(self, msg_sender, frm, to, amount):
        allowed = self.allowances.get((frm, msg_sender), 0)
        if allowed < amount:
            self._revert("transferFrom", "ERC20: insufficient allowance")
        self.allowances[(frm, msg_sender)] = allowed - amount
        self._move(frm, to, amount)
        return True

    def _move(self, frm, to, amount):
        if self.balances.get(frm, 0) < amount and not self.ignore_balance_check:
            self._revert("transfer", "ERC20: transfer amount exceeds balance")
        self.balances[frm] = self.balances.get(frm, 0) - amount
        self.balances[to] = self.balances.get(to, 0) + amount


class FakeProvider:
    def __init__(self, token):
        self.token = token
        self.requests = []
        self.snapshots = {}

    def make_request(self, method, params):
        self.requests.append((method, list(params)))
        if method == "evm_snapshot":
            snap_id = hex(len(self.snapshots) + 1)
            self.snapshots[snap_id] = self.token.state()
            return {"jsonrpc": "2.0", "id": 1, "result": snap_id}
        if method == "evm_revert":
            state = self.snapshots.pop(params[0], None)
            if state is None:
                return {"jsonrpc": "2.0", "id": 1, "result": False}
            self.token.restore(state)
            return {"jsonrpc": "2.0", "id": 1, "result": True}
        if method in ("anvil_impersonateAccount", "anvil_stopImpersonatingAccount"):
            return {"jsonrpc": "2.0", "id": 1, "result": None}
        return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": f"unknown method {method}"}}


class FakeW3:
    def __init__(self, token):
        self.provider = FakeProvider(token)


@pytest.fixture
def anvil_env(tmp_path):
    return {
        "PRIVATE_KEY": ANVIL_KEYS["operator"],
        "TOKEN_PRIVATE_KEY": ANVIL_KEYS["token_owner"],
        "ALICE_PRIVATE_KEY": ANVIL_KEYS["alice"],
        "BOB_PRIVATE_KEY": ANVIL_KEYS["bob"],
        "RPC_URL": "http://127.0.0.1:8545",
        "CONTRACT_ADDRESS": CONTRACT_ADDRESS.lower(),
        "ARTIFACT_DIR": str(tmp_path / "artifacts"),
    }


@pytest.fixture
def accounts():
    return {role: Account.from_key(key) for role, key in ANVIL_KEYS.items()}


@pytest.fixture
def config(tmp_path):
    return HarnessConfig(
        rpc_url="http://127.0.0.1:8545",
        contract_address=CONTRACT_ADDRESS,
        private_keys=dict(ANVIL_KEYS),
        initial_mint=Decimal(1000),
        artifact_dir=Path(tmp_path / "artifacts"),
    )


@pytest.fixture
def fake_token(accounts):
    return FakeToken(operator=accounts["operator"].address, owner=accounts["token_owner"].address)


def make_session(config, accounts, token, mode="contract"):
    w3 = FakeW3(token)
    backend = NodePrankBackend(w3) if mode == "node" else ContractPrankBackend(token)
    return Session(
        config=config,
        w3=w3,
        accounts=accounts,
        token=token,
        impersonator=Impersonator(backend),
        decimals=token.decimals(),
    )


@pytest.fixture
def session(config, accounts, fake_token):
    """Contract-mode session with alice funded by INITIAL_MINT, as bootstrap leaves it."""
    from token_harness.bootstrap import fund_participant

    s = make_session(config, accounts, fake_token)
    fund_participant(s)
    return s


@pytest.fixture
def node_session(config, accounts, fake_token):
    from token_harness.bootstrap import fund_participant

    s = make_session(config, accounts, fake_token, mode="node")
    fund_participant(s)
    return s
