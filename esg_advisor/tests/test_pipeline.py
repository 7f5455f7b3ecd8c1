"""
Tests for the action execution pipeline.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from esg_advisor.backend.backend_core.actions import validate_action
from esg_advisor.backend.backend_core.actions.pipeline import (
    ActionCallbacks,
    ActionPipeline,
    ExecutionPolicy,
)
from esg_advisor.backend.backend_core.session import ChatSessionContext


def action(kind, **payload):
    return validate_action({"type": kind, "payload": payload})


@pytest.fixture
def callbacks():
    return ActionCallbacks(
        on_add_holding=MagicMock(return_value=None),
        on_remove_holding=MagicMock(return_value=None),
        on_sell_holding=MagicMock(return_value=None),
        on_create_alert=MagicMock(return_value=None),
        on_navigate=MagicMock(return_value=None),
    )


def test_auto_policy_runs_safe_actions_and_queues_mutations(session, callbacks):
    pipeline = ActionPipeline(callbacks, ExecutionPolicy.AUTO)

    result = asyncio.run(pipeline.process(session, action("navigate", section="esg")))
    assert result.success
    assert result.message == "Navigated to esg"
    callbacks.on_navigate.assert_called_once_with("esg")

    pending_id = asyncio.run(pipeline.process(session, action("add_holding", symbol="GOOGL", shares=10)))
    assert isinstance(pending_id, str)
    callbacks.on_add_holding.assert_not_called()
    pending = session.pending_actions[pending_id]
    assert pending.description == "Add 10 shares of GOOGL"
    assert not pending.confirmed and not pending.executed


def test_queue_policy_queues_everything(session, callbacks):
    pipeline = ActionPipeline(callbacks, "queue")
    outcome = asyncio.run(pipeline.process(session, action("highlight", symbols=["AAPL"])))
    assert isinstance(outcome, str)
    assert session.highlighted_symbols == []


def test_trusted_policy_runs_mutations(session, callbacks):
    pipeline = ActionPipeline(callbacks, ExecutionPolicy.AUTO)
    result = asyncio.run(pipeline.process(session, action("sell_holding", symbol="AAPL", shares=5), "trusted"))
    assert result.success
    assert result.message == "Sold 5 shares of AAPL"
    callbacks.on_sell_holding.assert_called_once_with("AAPL", 5)
    assert session.pending_actions == {}


@pytest.mark.parametrize("shares, shown", [(5.0, "5"), (2.5, "2.5"), (3, "3")])
def test_share_counts_match_queued_description(session, callbacks, shares, shown):
    pipeline = ActionPipeline(callbacks, "auto")
    pending_id = asyncio.run(pipeline.process(session, action("add_holding", symbol="NEE", shares=shares)))
    assert session.pending_actions[pending_id].description == f"Add {shown} shares of NEE"

    result = asyncio.run(pipeline.confirm(session, pending_id))
    assert result.message == f"Added {shown} shares of NEE"


def test_unknown_policy_falls_back_to_auto():
    assert ExecutionPolicy.from_value("yolo") is ExecutionPolicy.AUTO
    assert ExecutionPolicy.from_value(" Trusted ") is ExecutionPolicy.TRUSTED


def test_ui_state_actions_update_session(session):
    pipeline = ActionPipeline(policy="auto")

    result = asyncio.run(pipeline.execute(session, action("filter_holdings", sector="Energy", minEsg=70)))
    assert result.message == "Holdings filtered by Energy"
    assert session.holdings_filter == {"sector": "Energy", "minEsg": 70}

    result = asyncio.run(pipeline.execute(session, action("highlight", symbols=["AAPL", "MSFT"])))
    assert result.message == "Highlighted: AAPL, MSFT"
    assert session.highlighted_symbols == ["AAPL", "MSFT"]

    result = asyncio.run(pipeline.execute(session, action("show_comparison", symbols=["AAPL", "MSFT"])))
    assert result.message == "Comparing: AAPL vs MSFT"
    assert session.comparison_symbols == ["AAPL", "MSFT"]

    pipeline.clear_highlights(session)
    pipeline.clear_comparison(session)
    pipeline.clear_filter(session)
    assert session.highlighted_symbols == []
    assert session.comparison_symbols == []
    assert session.holdings_filter is None


def test_mutation_without_callback_fails(session):
    pipeline = ActionPipeline(policy="trusted")
    result = asyncio.run(pipeline.process(session, action("remove_holding", symbol="AAPL")))
    assert not result.success
    result = asyncio.run(pipeline.process(session, action("navigate", section="holdings")))
    assert not result.success


def test_confirm_executes_once(session, callbacks):
    pipeline = ActionPipeline(callbacks, "auto")
    pending_id = asyncio.run(pipeline.process(session, action("remove_holding", symbol="XOM")))

    first = asyncio.run(pipeline.confirm(session, pending_id))
    second = asyncio.run(pipeline.confirm(session, pending_id))

    assert first.success
    assert first.message == "Removed XOM from portfolio"
    assert second is first
    callbacks.on_remove_holding.assert_called_once_with("XOM")
    pending = session.pending_actions[pending_id]
    assert pending.confirmed and pending.executed
    assert session.list_pending() == []


def test_concurrent_confirmation_runs_callback_once(session):
    calls = []

    async def slow_add(symbol, shares, name):
        calls.append(symbol)
        await asyncio.sleep(0.01)
        return {"symbol": symbol, "shares": shares}

    pipeline = ActionPipeline(ActionCallbacks(on_add_holding=slow_add), "auto")

    async def scenario():
        pending_id = await pipeline.process(session, action("add_holding", symbol="NVDA", shares=3))
        return await asyncio.gather(
            pipeline.confirm(session, pending_id),
            pipeline.confirm(session, pending_id),
        )

    first, second = asyncio.run(scenario())
    assert calls == ["NVDA"]
    assert first.success and first.data == {"symbol": "NVDA", "shares": 3}
    assert not second.success
    assert "already being executed" in second.message


def test_failed_callback_keeps_action_pending_for_retry(session):
    attempts = []

    def flaky_alert(symbol, alert_type, value):
        attempts.append(symbol)
        if len(attempts) == 1:
            raise RuntimeError("alert store unavailable")

    pipeline = ActionPipeline(ActionCallbacks(on_create_alert=flaky_alert), "auto")
    pending_id = asyncio.run(pipeline.process(
        session, action("create_alert", symbol="AAPL", alertType="price_above", value=200)
    ))

    failed = asyncio.run(pipeline.confirm(session, pending_id))
    assert not failed.success
    assert failed.message == "Action failed: alert store unavailable"
    assert session.pending_actions[pending_id].executed is False
    assert session.pending_actions[pending_id].state == "pending"

    retried = asyncio.run(pipeline.confirm(session, pending_id))
    assert retried.success
    assert retried.message == "Alert created for AAPL"
    assert retried.data["operator"] == "gt"
    assert retried.data["targetPrice"] == 200.0
    assert len(attempts) == 2


def test_confirm_and_cancel_unknown_ids(session, callbacks):
    pipeline = ActionPipeline(callbacks, "auto")
    result = asyncio.run(pipeline.confirm(session, "missing"))
    assert not result.success
    assert result.message == "Action not found"
    assert pipeline.cancel(session, "missing") is False


def test_cancel_removes_without_side_effects(session, callbacks):
    pipeline = ActionPipeline(callbacks, "auto")
    pending_id = asyncio.run(pipeline.process(session, action("add_holding", symbol="GOOGL", shares=10)))
    assert pipeline.cancel(session, pending_id) is True
    assert pending_id not in session.pending_actions
    callbacks.on_add_holding.assert_not_called()


def test_process_response_under_auto(session, callbacks):
    pipeline = ActionPipeline(callbacks, "auto")
    text = (
        'Adding it now. {"action":{"type":"add_holding","payload":{"symbol":"GOOGL","shares":10}}} '
        '{"action":{"type":"highlight","payload":{"symbols":["GOOGL"]}}} Done. '
        '{"surfaceUpdate":{"component":"HoldingCard","props":{"symbol":"GOOGL"}}}'
    )
    processed = asyncio.run(pipeline.process_response(session, text))

    assert processed.display_text == "Adding it now. Done."
    assert [a.type for a in processed.actions] == ["add_holding", "highlight"]
    assert [c.component for c in processed.components] == ["HoldingCard"]
    assert len(processed.queued_ids) == 1
    assert processed.results[0].message == "Action queued for confirmation: Add 10 shares of GOOGL"
    assert processed.results[1].message == "Highlighted: GOOGL"
    assert session.highlighted_symbols == ["GOOGL"]


def test_process_response_under_queue(session, callbacks):
    pipeline = ActionPipeline(callbacks, "auto")
    text = '{"action":{"type":"navigate","payload":{"section":"dashboard"}}}'
    processed = asyncio.run(pipeline.process_response(session, text, ExecutionPolicy.QUEUE))
    assert processed.results[0].message == "Action queued: Navigate to dashboard"
    callbacks.on_navigate.assert_not_called()
