"""
Price aggregation and broadcast core for the Spread Monitor.
"""
