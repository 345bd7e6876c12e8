"""
tixctl - ticket lifecycle CLI

Commands:
- tixctl compose mint/list/buy/check-in - Dry-run batch composition
- tixctl effects - Inspect an execution report
- tixctl reconcile - Verify a purchase report's settlements
- tixctl demo - Full lifecycle on the simulated ledger
"""

__version__ = "0.1.0"
