"""
Command line shell: one triggerable command per test action.

Usage:
    token-harness list
    token-harness run testTransfer [testApproveAndTransferFrom ...]
    token-harness run --all [--isolate]
    token-harness preflight
    token-harness menu          (default: numbered buttons, one per action)

Configuration comes from the environment (see token_harness.config).
Exit codes: 0 all passed, 1 an action failed, 2 bad command line (argparse),
3 setup problem (nothing was run).
"""

import argparse
import sys

from . import log
from .actions import ACTIONS
from .bootstrap import bootstrap, required_functions, resolve_abi
from .chain import connect
from .config import load_config
from .errors import SetupError
from .preflight import check_contract, format_report
from .runner import print_summary, run_action, run_actions, save_summary

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2  # argparse exits with 2 on bad arguments
EXIT_SETUP = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="token-harness", description="Run token contract test actions against a local chain")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list", help="List the available test actions")

    run = sub.add_parser("run", help="Run one or more test actions")
    run.add_argument("names", nargs="*", help="Action names (see 'list')")
    run.add_argument("--all", action="store_true", help="Run every action in registry order")
    run.add_argument("--isolate", action="store_true", default=None,
                     help="Revert chain state after each action (evm_snapshot/evm_revert)")
    run.add_argument("--no-summary", action="store_true", help="Do not write the JSON summary artifact")

    sub.add_parser("preflight", help="Check the deployed contract code and selectors")
    sub.add_parser("menu", help="Interactive menu (default)")
    return parser


def cmd_list() -> int:
    for i, action in enumerate(ACTIONS.values(), 1):
        marker = " (expects revert)" if action.expect_revert else ""
        print(f"  [{i}] {action.name}{marker} - {action.description}")
    return EXIT_OK


def cmd_preflight(config) -> int:
    w3 = connect(config.rpc_url)
    abi = resolve_abi(config)
    try:
        report = check_contract(w3, config.contract_address, abi, required_functions(config.impersonation_mode))
    except Exception as e:
        raise SetupError(f"preflight failed: {e}") from e
    for line in format_report(report):
        print(line)
    if not report["deployed"] or report["missing"]:
        print("\nOne or more checks failed (missing code or selectors).", file=sys.stderr)
        return EXIT_FAILED
    print("\nAll checks passed (selectors found where expected).")
    return EXIT_OK


def cmd_run(session, names, isolate, write_summary=True) -> int:
    results = run_actions(session, names, isolate=isolate)
    print_summary(results)
    if write_summary:
        save_summary(results, session.config.artifact_dir, meta={
            "contract": session.token.address,
            "impersonation_mode": session.config.impersonation_mode,
        })
    return EXIT_OK if all(r.passed for r in results) else EXIT_FAILED


def cmd_menu(session, input_fn=input) -> int:
    actions = list(ACTIONS.values())
    isolate = session.config.isolate_actions
    while True:
        print("\n==== Token tests ====")
        for i, action in enumerate(actions, 1):
            print(f"  [{i}] Run {action.name}")
        print("  [a] Run all")
        print("  [q] Quit")
        try:
            choice = input_fn("> ").strip().lower()
        except EOFError:
            return EXIT_OK
        if choice in ("q", "quit", "exit"):
            return EXIT_OK
        if choice == "a":
            print_summary(run_actions(session, isolate=isolate))
        elif choice.isdigit() and 1 <= int(choice) <= len(actions):
            print_summary([run_action(session, actions[int(choice) - 1], isolate=isolate)])
        else:
            log.warn(f"unknown choice {choice!r}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "menu"

    if command == "list":
        return cmd_list()

    if command == "run":
        # parser.error() exits with EXIT_USAGE
        if args.all and args.names:
            parser.error("give action names or --all, not both")
        if not args.all and not args.names:
            parser.error("nothing to run: give action names or --all")
        unknown = [n for n in args.names if n not in ACTIONS]
        if unknown:
            parser.error(f"unknown action(s): {', '.join(unknown)}")

    try:
        config = load_config()
        if command == "preflight":
            return cmd_preflight(config)
        session = bootstrap(config)
    except SetupError as e:
        log.error(f"setup failed, no actions offered: {e}")
        return EXIT_SETUP

    if command == "run":
        return cmd_run(session, None if args.all else args.names, args.isolate, not args.no_summary)
    return cmd_menu(session)


if __name__ == "__main__":
    sys.exit(main())
