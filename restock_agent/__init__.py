"""
Restocker core: models, document store, inventory operations and AI intents
"""
