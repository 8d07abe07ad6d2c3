"""
Chain client layer: connection, transaction sending and node-level RPC helpers.

State-changing calls are sent exactly once. A transaction that fails is
reported, never re-sent: re-sending a transfer could execute it twice.
"""

from typing import Any, Optional, Tuple

from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError

from . import log
from .errors import CallReverted, HarnessError, SetupError


def connect(rpc_url: str) -> Web3:
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise SetupError(f"Web3 not connected. Check RPC_URL ({rpc_url})")
    return w3


def acct_from_key(key_hex: str):
    return Account.from_key(key_hex)


def to_hex(tx_hash) -> str:
    if isinstance(tx_hash, (bytes, bytearray, HexBytes)):
        return Web3.to_hex(tx_hash)
    return str(tx_hash)


def revert_reason(err: Exception) -> str:
    # ContractLogicError carries "execution reverted: <reason>" in its message
    msg = getattr(err, "message", None) or str(err)
    return msg.replace("execution reverted: ", "", 1) if msg else repr(err)


class TxSender:
    """Write client bound to one signing account."""

    def __init__(self, w3: Web3, account, receipt_timeout: int = 120):
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout
        self._chain_id = None

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    def send(self, fn_call, label: str) -> Tuple[str, Any]:
        """Build, sign and send fn_call from the bound account; wait for the receipt."""
        tx = self._build(fn_call, label, {
            "from": self.address,
            "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
            "chainId": self.chain_id,
        })
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return self._wait(tx_hash, label)

    def send_as(self, fn_call, sender: str, label: str) -> Tuple[str, Any]:
        """Send fn_call unsigned from an address the node is impersonating."""
        tx = self._build(fn_call, label, {"from": sender, "chainId": self.chain_id})
        tx_hash = self.w3.eth.send_transaction(tx)
        return self._wait(tx_hash, label)

    def _build(self, fn_call, label, params):
        # build_transaction estimates gas, so a call that would revert fails here
        try:
            return fn_call.build_transaction(params)
        except ContractLogicError as e:
            raise CallReverted(label, revert_reason(e)) from e

    def _wait(self, tx_hash, label):
        txh = to_hex(tx_hash)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            log.log(f"{label} mined with status 0 in block {receipt['blockNumber']}: {txh}", "REVERT")
            raise CallReverted(label, "transaction status 0", txh)
        log.info(f"Sent tx {txh} ({label}) -> mined in block {receipt['blockNumber']}")
        return txh, receipt


# -------------------------
# Node RPC helpers (anvil / hardhat / eth-tester)
# -------------------------
def rpc_request(w3: Web3, method: str, params: list):
    resp = w3.provider.make_request(method, params)
    if resp.get("error"):
        raise HarnessError(f"{method} failed: {resp['error']}")
    return resp.get("result")


def impersonate_account(w3: Web3, address: str):
    rpc_request(w3, "anvil_impersonateAccount", [address])


def stop_impersonating_account(w3: Web3, address: str):
    rpc_request(w3, "anvil_stopImpersonatingAccount", [address])


def evm_snapshot(w3: Web3):
    return rpc_request(w3, "evm_snapshot", [])


def evm_revert(w3: Web3, snapshot_id: Optional[Any]):
    if not rpc_request(w3, "evm_revert", [snapshot_id]):
        raise HarnessError(f"evm_revert to snapshot {snapshot_id} was refused")
