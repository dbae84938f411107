"""
FlowCast - Household Cash-Flow Projection.

A deterministic month-by-month simulator that projects cash, debt and
investment balances under base, best and worst scenarios.

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "FlowCast Team"
