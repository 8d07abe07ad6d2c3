"""
Session context shared by the test actions.

Everything an action touches (clients, accounts, contract handle,
impersonation state) lives here and is passed in explicitly, so actions can
be run in any order or against a fresh session.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import chain, log
from .config import HarnessConfig
from .impersonation import Directive, Impersonator
from .token import CallResult
from .units import Amount, format_units, to_units


@dataclass
class Session:
    config: HarnessConfig
    w3: Any
    accounts: Dict[str, Any]
    token: Any
    impersonator: Impersonator
    decimals: int = 18
    snapshots: List[Any] = field(default_factory=list)

    # -------------------------
    # accounts
    # -------------------------
    @property
    def operator(self) -> str:
        return self.accounts["operator"].address

    @property
    def token_owner(self) -> str:
        return self.accounts["token_owner"].address

    @property
    def alice(self) -> str:
        return self.accounts["alice"].address

    @property
    def bob(self) -> str:
        return self.accounts["bob"].address

    def name_of(self, address: str) -> str:
        for name, acct in self.accounts.items():
            if acct.address.lower() == str(address).lower():
                return name
        return str(address)

    # -------------------------
    # amounts
    # -------------------------
    def units(self, amount: Amount) -> int:
        return to_units(amount, self.decimals)

    def fmt(self, value: int) -> str:
        return format_units(value, self.decimals)

    # -------------------------
    # calls
    # -------------------------
    def read(self, name: str, *args):
        return self.token.read(name, *args, sender=self.impersonator.sender_for_call())

    def write(self, name: str, *args) -> CallResult:
        sender = self.impersonator.sender_for_call()
        ok = False
        try:
            result = self.token.write(name, *args, sender=sender)
            ok = True
            return result
        finally:
            self.impersonator.call_finished(name, ok)

    def mint(self, to: str, amount: int) -> CallResult:
        """Mint amount (base units) to `to`, sent as the token owner."""
        self.prank(self.token_owner)
        return self.write("mint", to, amount)

    def top_up(self, account: str, needed: int):
        """Mint INITIAL_MINT more tokens to account if it holds less than needed."""
        balance = self.balance_of(account)
        if balance >= needed:
            return
        amount = max(self.units(self.config.initial_mint), needed - balance)
        self.mint(account, amount)
        log.info(f"Topped up {self.name_of(account)} with {self.fmt(amount)} tokens (held {self.fmt(balance)})")

    def balance_of(self, address: str) -> int:
        return self.token.balance_of(address)

    def allowance(self, owner: str, spender: str) -> int:
        return self.token.allowance(owner, spender)

    # -------------------------
    # impersonation
    # -------------------------
    def prank(self, address: str):
        self.impersonator.prank(address)

    def start_prank(self, address: str):
        self.impersonator.start_prank(address)

    def stop_prank(self):
        self.impersonator.stop_prank()

    @property
    def trace(self) -> List[Directive]:
        return self.impersonator.trace

    # -------------------------
    # isolation
    # -------------------------
    def snapshot(self):
        snap = chain.evm_snapshot(self.w3)
        self.snapshots.append(snap)
        return snap

    def revert(self, snapshot_id: Optional[Any] = None):
        if snapshot_id is None:
            snapshot_id = self.snapshots.pop()
        elif snapshot_id in self.snapshots:
            self.snapshots.remove(snapshot_id)
        chain.evm_revert(self.w3, snapshot_id)
