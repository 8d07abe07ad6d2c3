"""
Console output helpers.

Every line goes to stdout with a UTC timestamp and a bracketed tag so a run
can be followed (and grepped) the same way as the rest of our runners.
"""

import sys
import time


def now_ts() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())


def log(msg: str, level: str = "INFO"):
    print(f"[{now_ts()}] [{level}] {msg}", flush=True)


def info(msg: str):
    log(msg, "INFO")


def warn(msg: str):
    log(msg, "WARN")


def error(msg: str):
    print(f"[{now_ts()}] [ERROR] {msg}", file=sys.stderr, flush=True)


def section_header(name: str):
    print("\n" + "=" * 8 + f" {name} " + "=" * 8, flush=True)
