"""
Public rules of the prize wheel.

These values define how odds are computed and what a pool may contain.
Changing them changes every probability table and MUST be publicly announced.
"""

# 100% expressed in basis points
BASIS_POINTS = 10_000

# Every available item keeps at least this many basis points
MIN_PROBABILITY_BP = 1

# raw_weight = 1 / (value / ticket_price) ** WEIGHT_EXPONENT
WEIGHT_EXPONENT = 1.5

# Amounts and counters are unsigned 64-bit
U64_MAX = 2**64 - 1

# Catalog bounds
MAX_ITEMS = 10
MAX_COMPANY_NAME_LEN = 50
MAX_COMPANY_IMAGE_LEN = 200
MAX_ITEM_NAME_LEN = 50
MAX_ITEM_IMAGE_LEN = 200
MAX_ITEM_DESCRIPTION_LEN = 200
