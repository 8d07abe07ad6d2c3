"""Token contract test harness: Foundry-style prank tests run over web3.py."""

__version__ = "0.1.0"
