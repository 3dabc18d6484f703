"""
Domain services for the mobile API: row mapping, settings rules and radio freshness.
"""
