"""
Impersonation ("prank") directives.

    prank(addr)        the next state-changing call is sent as addr
    startPrank(addr)   every call until stopPrank() is sent as addr
    stopPrank()        closes a startPrank

The Impersonator keeps the single "currently impersonating" slot. Directives
issued in the wrong state raise ImpersonationError; an action that ends with
the slot still taken is unbalanced. The backend decides how a directive
reaches the chain:

    ContractPrankBackend  the token's own prank/startPrank/stopPrank entry points
    NodePrankBackend      anvil_impersonateAccount / anvil_stopImpersonatingAccount
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from . import log
from .chain import impersonate_account, stop_impersonating_account
from .errors import ImpersonationError, UnbalancedPrankError

PRANK = "prank"
START_PRANK = "startPrank"
STOP_PRANK = "stopPrank"
CALL = "call"


@dataclass(frozen=True)
class Directive:
    kind: str
    target: Optional[str] = None  # address for prank kinds, function name for calls

    def __str__(self):
        return f"{self.kind}({self.target or ''})"


class ContractPrankBackend:
    """Impersonation handled by the token contract; the operator signs every tx."""

    def __init__(self, token):
        self.token = token

    def begin(self, address: str, once: bool):
        self.token.write(PRANK if once else START_PRANK, address)

    def end(self, address: str, once: bool, consumed: bool):
        # A one-shot prank is cleared by the call that uses it. If that call
        # reverted, the prank is still set on-chain and must be stopped.
        if once and consumed:
            return
        self.token.write(STOP_PRANK)

    def sender(self, address: str) -> Optional[str]:
        return None


class NodePrankBackend:
    """Impersonation handled by the node; calls are sent unsigned from the address."""

    def __init__(self, w3):
        self.w3 = w3

    def begin(self, address: str, once: bool):
        impersonate_account(self.w3, address)

    def end(self, address: str, once: bool, consumed: bool):
        stop_impersonating_account(self.w3, address)

    def sender(self, address: str) -> Optional[str]:
        return address


class _DryRunBackend:
    def begin(self, address, once):
        pass

    def end(self, address, once, consumed):
        pass

    def sender(self, address):
        return address


class Impersonator:
    def __init__(self, backend):
        self.backend = backend
        self.current: Optional[str] = None
        self.once = False
        self.release_failed = False
        self.trace: List[Directive] = []

    @property
    def active(self) -> bool:
        return self.current is not None

    def prank(self, address: str):
        self._enter(PRANK, address, once=True)

    def start_prank(self, address: str):
        self._enter(START_PRANK, address, once=False)

    def stop_prank(self):
        if self.current is None:
            raise ImpersonationError("stopPrank() without an active startPrank")
        if self.once:
            raise ImpersonationError(f"stopPrank() cannot close the one-shot prank({self.current})")
        # the slot is freed only after the chain released the bracket
        try:
            self.backend.end(self.current, once=False, consumed=True)
        except Exception:
            self.release_failed = True
            raise
        self.trace.append(Directive(STOP_PRANK))
        self._clear()

    def sender_for_call(self) -> Optional[str]:
        if self.current is None:
            return None
        return self.backend.sender(self.current)

    def call_finished(self, function: str, ok: bool = True):
        """Record a state-changing call; a one-shot prank is used up by it."""
        self.trace.append(Directive(CALL, function))
        if self.current is None or not self.once or self.release_failed:
            return
        try:
            self.backend.end(self.current, once=True, consumed=ok)
        except Exception as e:
            # keep the call's own error; finish() retries the release
            log.warn(f"could not release prank({self.current}) after {function}: {e}")
            self.release_failed = True
            return
        self._clear()

    def finish(self):
        """
        Close out an action. If impersonation is still active it is released
        so the next action starts clean, then UnbalancedPrankError is raised.
        When the release itself fails the slot stays taken, so later
        directives fail loudly instead of running as the stale address.
        """
        if self.current is None:
            return
        address, once, release_failed = self.current, self.once, self.release_failed
        try:
            self.backend.end(address, once=once, consumed=False)
        except Exception as e:
            log.warn(f"could not release impersonation of {address}: {e}")
            self.release_failed = True
            raise UnbalancedPrankError(f"{PRANK if once else START_PRANK}({address}) could not be released")
        self._clear()
        if release_failed:
            kind = PRANK if once else START_PRANK
            raise UnbalancedPrankError(f"{kind}({address}) could not be released")
        if once:
            raise UnbalancedPrankError(f"prank({address}) was never used by a call")
        raise UnbalancedPrankError(f"startPrank({address}) has no matching stopPrank()")

    def _enter(self, kind, address, once):
        if self.current is not None:
            raise ImpersonationError(f"{kind}({address}) while already impersonating {self.current}")
        self.backend.begin(address, once)
        self.current = address
        self.once = once
        self.trace.append(Directive(kind, address))

    def _clear(self):
        self.current = None
        self.once = False
        self.release_failed = False


def check_brackets(directives: Iterable[Directive]):
    """Validate a directive trace without touching a chain. Raises on the first problem."""
    imp = Impersonator(_DryRunBackend())
    for d in directives:
        if d.kind == PRANK:
            imp.prank(d.target)
        elif d.kind == START_PRANK:
            imp.start_prank(d.target)
        elif d.kind == STOP_PRANK:
            imp.stop_prank()
        elif d.kind == CALL:
            imp.call_finished(d.target)
        else:
            raise ValueError(f"unknown directive kind: {d.kind!r}")
    imp.finish()
