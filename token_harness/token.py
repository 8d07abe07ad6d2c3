"""Contract handle for the token under test."""

from dataclasses import dataclass
from typing import Any, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError

from .abi import has_function
from .chain import TxSender, revert_reason
from .errors import CallReverted


@dataclass
class CallResult:
    function: str
    tx_hash: str
    receipt: Any
    return_value: Any = None

    @property
    def succeeded(self) -> bool:
        # a write that returns bool (transfer/approve) must also return true
        return self.receipt["status"] == 1 and self.return_value is not False


class TokenContract:
    """
    Address + ABI bound to a read client and the operator write client.

    write(..., sender=addr) sends unsigned from addr (node impersonation);
    write(..., sender=None) signs with the operator account.
    """

    def __init__(self, w3: Web3, address: str, abi, tx_sender: TxSender):
        self.w3 = w3
        self.abi = abi
        self.address = Web3.to_checksum_address(address)
        self.tx_sender = tx_sender
        self.contract = w3.eth.contract(address=self.address, abi=abi)

    def has_function(self, name: str) -> bool:
        return has_function(self.abi, name)

    def _fn(self, name, args):
        return getattr(self.contract.functions, name)(*args)

    def read(self, name: str, *args, sender: Optional[str] = None):
        tx = {"from": sender} if sender else {}
        return self._fn(name, args).call(tx)

    def write(self, name: str, *args, sender: Optional[str] = None) -> CallResult:
        fn_call = self._fn(name, args)
        from_addr = sender or self.tx_sender.address
        label = f"{name}({', '.join(str(a) for a in args)})"

        # Static call first: it surfaces the revert reason and the bool return value
        try:
            return_value = fn_call.call({"from": from_addr})
        except ContractLogicError as e:
            raise CallReverted(label, revert_reason(e)) from e

        if sender:
            tx_hash, receipt = self.tx_sender.send_as(fn_call, sender, label)
        else:
            tx_hash, receipt = self.tx_sender.send(fn_call, label)
        return CallResult(name, tx_hash, receipt, return_value)

    # -------------------------
    # ERC-20 views
    # -------------------------
    def balance_of(self, account: str) -> int:
        return int(self.read("balanceOf", account))

    def allowance(self, owner: str, spender: str) -> int:
        return int(self.read("allowance", owner, spender))

    def decimals(self) -> Optional[int]:
        if not self.has_function("decimals"):
            return None
        return int(self.read("decimals"))
