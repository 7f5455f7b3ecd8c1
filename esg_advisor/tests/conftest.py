import pytest

from esg_advisor.backend.backend_core.session import ChatSessionContext
from esg_core.models.holding import Holding, PortfolioSnapshot


@pytest.fixture
def portfolio():
    """Three-holding demo portfolio (values in USD)."""
    return PortfolioSnapshot(holdings=(
        Holding("AAPL", "Apple Inc.", 50, 10000.0, 83, "Technology", 85, 80, 84),
        Holding("MSFT", "Microsoft Corporation", 30, 12000.0, 87, "Technology", 88, 86, 87),
        Holding("VWS.CO", "Vestas Wind Systems A/S", 100, 3000.0, 89, "Energy", 93, 86, 88),
    ))


@pytest.fixture
def session(portfolio):
    return ChatSessionContext(session_id="test-session", portfolio=portfolio)
