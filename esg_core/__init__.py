"""
Domain library for the ESG advisor.

Score normalization, the curated ESG dataset, the FMP data client,
holdings and price-alert models. Nothing here depends on the chat layer.
"""
