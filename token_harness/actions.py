"""
Token test actions.

Each action reads the balances it cares about right before mutating them and
asserts on the deltas, so an action gives the same verdict however many times
it has already run against the same chain. Alice is topped up with a fresh
INITIAL_MINT whenever the balance cannot cover the amount an action spends.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from . import log
from .assertions import Checks
from .session import Session

TRANSFER_AMOUNT = 100
APPROVE_AMOUNT = 100
TRANSFER_FROM_AMOUNT = 50


@dataclass
class TestAction:
    name: str
    func: Callable[[Session, Checks], None]
    description: str = ""
    # success means the underlying call raised CallReverted
    expect_revert: bool = False

    __test__ = False  # not a pytest class


def test_transfer(session: Session, checks: Checks):
    amount = session.units(TRANSFER_AMOUNT)
    session.top_up(session.alice, amount)
    alice_before = session.balance_of(session.alice)
    bob_before = session.balance_of(session.bob)
    log.info(f"alice={session.fmt(alice_before)} bob={session.fmt(bob_before)} before transfer")

    session.start_prank(session.alice)
    result = session.write("transfer", session.bob, amount)
    checks.assert_true(result.succeeded, "transfer(bob, 100) did not succeed")
    checks.assert_eq(session.balance_of(session.bob), bob_before + amount, "bob balance after transfer")
    checks.assert_eq(session.balance_of(session.alice), alice_before - amount, "alice balance after transfer")
    session.stop_prank()


def test_fail_transfer_insufficient_balance(session: Session, checks: Checks):
    alice_balance = session.balance_of(session.alice)
    too_much = alice_balance + 1
    log.info(f"alice holds {session.fmt(alice_balance)}, attempting to send {session.fmt(too_much)}")

    session.prank(session.alice)
    session.write("transfer", session.bob, too_much)


def test_approve_and_transfer_from(session: Session, checks: Checks):
    approved = session.units(APPROVE_AMOUNT)
    moved = session.units(TRANSFER_FROM_AMOUNT)
    session.top_up(session.alice, moved)

    session.prank(session.alice)
    result = session.write("approve", session.bob, approved)
    checks.assert_true(result.succeeded, "approve(bob, 100) did not succeed")

    alice_before = session.balance_of(session.alice)
    bob_before = session.balance_of(session.bob)

    session.prank(session.bob)
    result = session.write("transferFrom", session.alice, session.bob, moved)
    checks.assert_true(result.succeeded, "transferFrom(alice, bob, 50) did not succeed")

    checks.assert_eq(session.balance_of(session.bob), bob_before + moved, "bob balance after transferFrom")
    checks.assert_eq(session.balance_of(session.alice), alice_before - moved, "alice balance after transferFrom")
    checks.assert_eq(session.allowance(session.alice, session.bob), approved - moved, "remaining allowance")


ACTIONS = OrderedDict((a.name, a) for a in [
    TestAction("testTransfer", test_transfer,
               "alice sends 100 tokens to bob inside a startPrank/stopPrank block"),
    TestAction("testFailTransferInsufficientBalance", test_fail_transfer_insufficient_balance,
               "alice tries to send more than alice holds; the transfer must revert",
               expect_revert=True),
    TestAction("testApproveAndTransferFrom", test_approve_and_transfer_from,
               "alice approves bob for 100, bob pulls 50 with transferFrom"),
])


def get_action(name: str) -> Optional[TestAction]:
    return ACTIONS.get(name)
