"""Exceptions raised by the harness."""

from typing import Optional


class HarnessError(Exception):
    """Base class for every harness error."""


class SetupError(HarnessError):
    """Bootstrap could not complete. Fatal: no action may run after this."""

    def __init__(self, message: str, problems: Optional[list] = None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + ": " + "; ".join(self.problems)
        super().__init__(message)


class ImpersonationError(HarnessError):
    """An impersonation directive was issued in the wrong state."""


class UnbalancedPrankError(ImpersonationError):
    """A startPrank was never closed by a matching stopPrank."""


class CallReverted(HarnessError):
    """A state-changing contract call was rejected by the node or contract."""

    def __init__(self, function: str, reason: str, tx_hash: Optional[str] = None):
        self.function = function
        self.reason = reason
        self.tx_hash = tx_hash
        msg = f"{function} reverted: {reason}"
        if tx_hash:
            msg += f" (tx {tx_hash})"
        super().__init__(msg)
