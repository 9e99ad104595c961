"""
Watchtower backend — cross-app user aggregation and write-back.
"""
