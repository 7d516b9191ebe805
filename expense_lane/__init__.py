"""
Expense Fast Lane — payment receipt → verification → ticket → document → confirmation.
"""

__version__ = "0.1.0"
