"""
marketplace_api.api.routers

Router modules, one per resource (auth, products, users, health).
"""
