"""
Catalog and stock ledger operations
"""
