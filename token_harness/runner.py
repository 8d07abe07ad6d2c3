"""
Action runner.

run_action() is the error boundary for a single action:

  - assertion failures are recorded, the action runs to its end      -> FAIL
  - expect_revert actions pass only if the call raised CallReverted
  - any other exception aborts the action                             -> FAIL
  - impersonation left open at the end                                -> FAIL

No exception escapes, so one broken action never stops the others.
"""

import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional

from hexbytes import HexBytes
from web3.datastructures import AttributeDict

from . import log
from .actions import ACTIONS, TestAction
from .assertions import Checks
from .errors import CallReverted, UnbalancedPrankError
from .session import Session


@dataclass
class ActionResult:
    name: str
    passed: bool = False
    failures: List[str] = field(default_factory=list)
    error: Optional[str] = None
    reverted: bool = False
    checks_run: int = 0
    trace: List[str] = field(default_factory=list)
    duration: float = 0.0


def run_action(session: Session, action: TestAction, isolate: bool = False) -> ActionResult:
    log.section_header(action.name)
    checks = Checks(action.name)
    result = ActionResult(action.name)
    trace_start = len(session.trace)
    start = time.time()

    snapshot_id = None
    if isolate:
        try:
            snapshot_id = session.snapshot()
        except Exception as e:
            result.error = f"could not snapshot chain state: {e}"
            log.log(f"{action.name} not run: {result.error}", "FAIL")
            return result

    try:
        _execute(session, action, checks, result)
        try:
            session.impersonator.finish()
        except UnbalancedPrankError as e:
            checks.failures.append(str(e))
            log.log(f"{action.name}: {e}", "FAIL")
    finally:
        if snapshot_id is not None:
            try:
                session.revert(snapshot_id)
            except Exception as e:
                log.error(f"could not restore chain state after {action.name}: {e}")
                result.error = result.error or f"state restore failed: {e}"

    result.failures = list(checks.failures)
    result.checks_run = checks.count
    result.trace = [str(d) for d in session.trace[trace_start:]]
    result.duration = round(time.time() - start, 3)
    result.passed = not result.failures and result.error is None

    if result.passed:
        log.log(f"{action.name} passed", "PASS")
    else:
        log.log(f"{action.name} failed", "FAIL")
    return result


def _execute(session, action, checks, result):
    try:
        action.func(session, checks)
    except CallReverted as e:
        if action.expect_revert:
            result.reverted = True
            log.log(f"{action.name}: reverted as expected: {e.reason}", "REVERT")
        else:
            result.error = str(e)
            log.log(f"{action.name}: unexpected revert: {e}", "FAIL")
    except Exception as e:
        result.error = f"{type(e).__name__}: {e}"
        log.log(f"{action.name}: aborted: {result.error}", "FAIL")
    else:
        if action.expect_revert:
            result.error = "expected revert did not happen"
            log.log(f"{action.name}: call succeeded but was expected to revert", "FAIL")


def resolve_actions(names: Optional[Iterable[str]] = None) -> List[TestAction]:
    if names is None:
        return list(ACTIONS.values())
    names = list(names)
    unknown = [n for n in names if n not in ACTIONS]
    if unknown:
        raise ValueError(f"unknown action(s): {', '.join(unknown)}")
    return [ACTIONS[n] for n in names]


def run_actions(session: Session, names: Optional[Iterable[str]] = None,
                isolate: Optional[bool] = None) -> List[ActionResult]:
    if isolate is None:
        isolate = session.config.isolate_actions
    return [run_action(session, action, isolate=isolate) for action in resolve_actions(names)]


def print_summary(results: List[ActionResult]):
    passed = sum(1 for r in results if r.passed)
    print(f"\n---- {passed}/{len(results)} actions passed ----", flush=True)
    for r in results:
        status = "PASS" if r.passed else "FAIL"
        print(f"  [{status}] {r.name}", flush=True)
        if r.error:
            print(f"         error: {r.error}", flush=True)
        for f in r.failures:
            print(f"         {f}", flush=True)


# -------------------------
# Artifacts
# -------------------------
def to_jsonable(obj):
    """Recursively convert Web3 AttributeDict, HexBytes, and other objects into JSON-serializable types."""
    if isinstance(obj, (AttributeDict, dict)):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, (HexBytes, bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    return obj


def save_json(obj, path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(to_jsonable(obj), f, indent=2, sort_keys=True)


def save_summary(results: List[ActionResult], artifact_dir: Path, meta: Optional[Any] = None) -> Path:
    path = Path(artifact_dir) / f"summary_{time.strftime('%Y%m%d_%H%M%S', time.gmtime())}.json"
    save_json({
        "finished_at": log.now_ts(),
        "meta": meta or {},
        "results": [asdict(r) for r in results],
    }, path)
    log.info(f"Summary saved to {path}")
    return path
