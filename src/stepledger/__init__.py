"""
Stepledger: runtime state of batch-job step executions.

Tracks the status, exit status, counters and execution context of a single
step run while many workers fold chunk-sized contributions into it.
"""

__version__ = "0.1.0"
