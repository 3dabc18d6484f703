"""
Mobile API service for Trend Ankara Access Layer.
"""
