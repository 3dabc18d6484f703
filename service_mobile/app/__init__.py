"""
Mobile API application package.
"""
