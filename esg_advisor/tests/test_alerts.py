"""
Tests for price alert helpers.
"""

from esg_core.alerts import PriceAlert, build_alert, get_operator_text, parse_alert_type, should_trigger


def test_parse_alert_type():
    assert parse_alert_type("price_above") == "gt"
    assert parse_alert_type("PRICE_BELOW") == "lt"
    assert parse_alert_type("esg_change") is None


def test_should_trigger_per_operator():
    assert should_trigger(PriceAlert("AAPL", "gt", 200.0), 200.01)
    assert not should_trigger(PriceAlert("AAPL", "gt", 200.0), 200.0)
    assert should_trigger(PriceAlert("AAPL", "gte", 200.0), 200.0)
    assert should_trigger(PriceAlert("AAPL", "lt", 150.0), 149.5)
    assert should_trigger(PriceAlert("AAPL", "lte", 150.0), 150.0)
    assert not should_trigger(PriceAlert("AAPL", "lte", 150.0), 150.5)


def test_operator_text():
    assert get_operator_text("gt") == "above"
    assert get_operator_text("gte") == "at or above"
    assert get_operator_text("lt") == "below"
    assert get_operator_text("lte") == "at or below"
    assert get_operator_text("eq") == ""


def test_build_alert():
    alert = build_alert(" tsla ", "price_below", 180)
    assert alert.symbol == "TSLA"
    assert alert.operator == "lt"
    assert alert.target_price == 180.0
    assert alert.status == "active"
    assert alert.describe() == "TSLA below 180"
    assert alert.to_dict()["targetPrice"] == 180.0
    assert alert.with_status("dismissed").status == "dismissed"
    assert build_alert("TSLA", "esg_change", 5) is None
