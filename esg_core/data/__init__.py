"""
Market data access for the ESG advisor.

Provides the Financial Modeling Prep client used by the chat tools
for live quotes and ESG ratings.
"""

from esg_core.data.fmp import ESGData, FMPClient, StockInfo, StockQuote

__all__ = [
    "ESGData",
    "FMPClient",
    "StockInfo",
    "StockQuote",
]
