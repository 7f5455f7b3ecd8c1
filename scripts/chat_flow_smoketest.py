"""
Smoke test for one full advisor chat turn.

This does NOT call the model endpoint or FMP. It validates:
- a scripted model reply that requests get_portfolio and get_stock_info is
  answered through the tool registry (FMP client in mock mode)
- directives in the final reply are split from the display text
- under the "auto" policy, highlight runs at once and add_holding is queued
- confirming the queued action runs the portfolio callback exactly once
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


def _response(content=None, tool_calls=None):
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="tool_calls" if tool_calls else "stop")],
        usage=SimpleNamespace(prompt_tokens=100, completion_tokens=20, total_tokens=120),
    )


def _tool_call(call_id: str, name: str, arguments: dict):
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments)),
    )


FINAL_REPLY = (
    "Your portfolio scores well overall. "
    '{"surfaceUpdate": {"component": "ESGScoreGauge", "props": {"score": 86}}} '
    "Vestas is your ESG leader. "
    '{"action": {"type": "highlight", "payload": {"symbols": ["VWS.CO"]}}} '
    "Orsted would raise the score further. "
    '{"action": {"type": "add_holding", "payload": {"symbol": "ORSTED.CO", "shares": 10}}}'
)


class _ScriptedCompletions:
    def __init__(self):
        self.requests = []
        self._responses = [
            _response(tool_calls=[
                _tool_call("call_1", "get_portfolio", {}),
                _tool_call("call_2", "get_stock_info", {"symbol": "ORSTED.CO"}),
            ]),
            _response(content=FINAL_REPLY),
        ]

    async def create(self, **params):
        self.requests.append(params)
        return self._responses.pop(0)


async def _run() -> int:
    from esg_advisor.backend.backend_core.actions.pipeline import ActionCallbacks, ActionPipeline
    from esg_advisor.backend.backend_core.orchestrator import ChatOrchestrator
    from esg_advisor.backend.backend_core.session import ChatSessionContext
    from esg_advisor.backend.backend_core.tools.portfolio_tools import register_portfolio_tools
    from esg_advisor.backend.backend_core.tools.registry import ToolRegistry
    from esg_core.data.fmp import FMPClient, StockInfo
    from esg_core.models.holding import Holding, PortfolioSnapshot

    portfolio = PortfolioSnapshot([
        Holding("AAPL", "Apple Inc.", 50, 10000.0, 83, "Technology", 85, 80, 84),
        Holding("MSFT", "Microsoft Corporation", 30, 12000.0, 87, "Technology", 88, 86, 87),
        Holding("VWS.CO", "Vestas Wind Systems A/S", 100, 3000.0, 89, "Energy", 93, 86, 88),
    ])
    session = ChatSessionContext(portfolio=portfolio)

    fmp = FMPClient(use_mock=True)

    async def lookup(symbol: str):
        # Mock mode has no quotes; serve a fixed price with the curated rating
        esg = await fmp.fetch_esg_data(symbol)
        if esg is None:
            return None
        return StockInfo(
            symbol=symbol, name=esg.company_name, price=100.0, change=0.0, change_percent=0.0,
            currency="USD", exchange="CPH", market_cap=0.0, pe=None,
            esg_score=esg.esg_score, environmental_score=esg.environmental_score,
            social_score=esg.social_score, governance_score=esg.governance_score,
        )

    registry = ToolRegistry()
    register_portfolio_tools(registry, portfolio, lookup)

    added = []
    pipeline = ActionPipeline(
        ActionCallbacks(on_add_holding=lambda symbol, shares, name: added.append((symbol, shares))),
        policy="auto",
    )

    completions = _ScriptedCompletions()
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    orchestrator = ChatOrchestrator(client=client, tool_registry=registry, quota=None)

    try:
        result, processed = await orchestrator.chat_turn(session, "How sustainable is my portfolio?", pipeline)
    finally:
        await fmp.aclose()

    if result.tools_used != ["get_portfolio", "get_stock_info"] or result.iterations != 1:
        print(f"FAIL: unexpected tool usage {result.tools_used} / {result.iterations}", file=sys.stderr)
        return 2

    tool_messages = [m for m in completions.requests[1]["messages"] if m["role"] == "tool"]
    portfolio_payload = json.loads(tool_messages[0]["content"])
    stock_payload = json.loads(tool_messages[1]["content"])
    if portfolio_payload.get("esgScore") != 86 or stock_payload.get("esgScore") != 92:
        print(f"FAIL: tool payloads {portfolio_payload} / {stock_payload}", file=sys.stderr)
        return 3

    if "{" in processed.display_text or "Vestas is your ESG leader." not in processed.display_text:
        print(f"FAIL: directives leaked into display text: {processed.display_text!r}", file=sys.stderr)
        return 4
    if [c.component for c in processed.components] != ["ESGScoreGauge"]:
        print(f"FAIL: components {processed.components}", file=sys.stderr)
        return 5

    if session.highlighted_symbols != ["VWS.CO"] or len(processed.queued_ids) != 1:
        print(f"FAIL: highlight={session.highlighted_symbols} queued={processed.queued_ids}", file=sys.stderr)
        return 6

    action_id = processed.queued_ids[0]
    first = await pipeline.confirm(session, action_id)
    second = await pipeline.confirm(session, action_id)
    if not first.success or second is not first or added != [("ORSTED.CO", 10)]:
        print(f"FAIL: confirmation {first} / {second} / {added}", file=sys.stderr)
        return 7

    if len(session.history) != 2 or session.messages_sent != 1:
        print(f"FAIL: session history {session.history}", file=sys.stderr)
        return 8

    print("OK: chat flow smoke test passed")
    print(processed.display_text)
    for outcome in processed.results:
        print(f"- {outcome.message}")
    print(f"tokens: {result.token_usage}")
    return 0


def main() -> int:
    _ensure_repo_on_path()

    from esg_advisor.backend.backend_core.config import setup_logging

    setup_logging()
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
