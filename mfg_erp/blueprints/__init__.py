"""
mfg_erp/blueprints

JSON API blueprints. Each package exposes a single <name>_bp for the app factory.
"""
