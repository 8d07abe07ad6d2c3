"""
Non-halting assertions.

A failed check is logged and recorded; the action keeps going so every
mismatch in one run is reported. Token amounts are compared as exact ints.
"""

from typing import Any, List

from . import log


class Checks:
    def __init__(self, action_name: str = ""):
        self.action_name = action_name
        self.failures: List[str] = []
        self.count = 0

    @property
    def passed(self) -> bool:
        return not self.failures

    def _fail(self, message: str):
        self.failures.append(message)
        log.log(f"{self.action_name}: {message}", "FAIL")

    def assert_true(self, value: Any, message: str = "assertTrue failed") -> bool:
        self.count += 1
        if not value:
            self._fail(message)
            return False
        return True

    def assert_eq(self, actual: Any, expected: Any, message: str = "assertEq failed") -> bool:
        self.count += 1
        if isinstance(actual, float) or isinstance(expected, float):
            self._fail(f"{message}: refusing to compare floating point amounts ({actual!r} vs {expected!r})")
            return False
        if actual != expected:
            self._fail(f"{message}: {actual!r} != {expected!r}")
            return False
        return True
