"""Score pipeline: validation, ledger writes, aggregate rollups and rankings.

Routes and socket handlers import from here so that transport concerns stay
out of the ranking and submission logic.
"""
