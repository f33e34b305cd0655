"""
Persistence: SQLite document store and the per-aggregate stores built on it
"""
