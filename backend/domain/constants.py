"""
Domain constants used across services/routers.
"""
from decimal import Decimal

# Correlation id prefixes for traced transactions
CREATE_TXN_PREFIX = "txn_"
CANCEL_TXN_PREFIX = "cancel_txn_"

# Prices and totals are fixed-point with two decimals
MONEY_QUANTUM = Decimal("0.01")
