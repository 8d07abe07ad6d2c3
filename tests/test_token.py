from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from token_harness.abi import TOKEN_ABI
from token_harness.errors import CallReverted
from token_harness.token import TokenContract

from .conftest import CONTRACT_ADDRESS

OPERATOR = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ALICE = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
BOB = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"


@pytest.fixture
def parts():
    w3 = MagicMock()
    sender = MagicMock()
    sender.address = OPERATOR
    sender.send.return_value = ("0xaa", {"status": 1, "blockNumber": 1})
    sender.send_as.return_value = ("0xbb", {"status": 1, "blockNumber": 2})
    token = TokenContract(w3, CONTRACT_ADDRESS.lower(), TOKEN_ABI, sender)
    return token, w3, sender


def test_contract_handle_is_checksummed(parts):
    token, w3, _ = parts
    assert token.address == CONTRACT_ADDRESS
    w3.eth.contract.assert_called_once_with(address=CONTRACT_ADDRESS, abi=TOKEN_ABI)


def test_write_signs_as_operator_and_keeps_return_value(parts):
    token, _, sender = parts
    fn_call = token.contract.functions.transfer.return_value
    fn_call.call.return_value = True

    result = token.write("transfer", BOB, 10)

    fn_call.call.assert_called_once_with({"from": OPERATOR})
    sender.send.assert_called_once()
    sender.send_as.assert_not_called()
    assert result.return_value is True
    assert result.succeeded
    assert result.tx_hash == "0xaa"


def test_write_as_impersonated_sender(parts):
    token, _, sender = parts
    fn_call = token.contract.functions.approve.return_value
    fn_call.call.return_value = True

    result = token.write("approve", BOB, 10, sender=ALICE)

    fn_call.call.assert_called_once_with({"from": ALICE})
    assert sender.send_as.call_args[0][1] == ALICE
    assert result.tx_hash == "0xbb"


def test_false_return_value_is_not_success(parts):
    token, _, _ = parts
    token.contract.functions.transfer.return_value.call.return_value = False
    assert not token.write("transfer", BOB, 10).succeeded


def test_static_call_revert_stops_before_sending(parts):
    token, _, sender = parts
    token.contract.functions.transfer.return_value.call.side_effect = ContractLogicError(
        "execution reverted: ERC20: transfer amount exceeds balance")

    with pytest.raises(CallReverted) as exc:
        token.write("transfer", BOB, 10**30)

    assert exc.value.reason == "ERC20: transfer amount exceeds balance"
    sender.send.assert_not_called()


def test_views_return_ints(parts):
    token, _, _ = parts
    token.contract.functions.balanceOf.return_value.call.return_value = 2**64 + 1
    token.contract.functions.decimals.return_value.call.return_value = 6
    assert token.balance_of(ALICE) == 2**64 + 1
    assert token.decimals() == 6
