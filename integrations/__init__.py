"""
External service clients.

Google Drive is the asset source; Shopify is the destination catalog.
"""
