"""
LLM Orchestrator for the ESG advisor.

Runs the tool-calling exchange with the model: send the conversation and
tool schemas, execute whatever tools the model asks for, feed the results
back, and repeat until the model answers or the iteration cap is hit.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import asyncio
import inspect
import json
import logging

from openai import AsyncOpenAI

from esg_advisor.backend.backend_core.actions.pipeline import (
    ActionPipeline,
    ExecutionPolicy,
    ProcessedResponse,
)
from esg_advisor.backend.backend_core.config import Settings, settings
from esg_advisor.backend.backend_core.errors import (
    ModelResponseError,
    OrchestratorExhausted,
    ToolExecutionError,
)
from esg_advisor.backend.backend_core.guardrails import MessageQuotaTracker
from esg_advisor.backend.backend_core.prompts import get_system_prompt
from esg_advisor.backend.backend_core.session import ChatSessionContext
from esg_advisor.backend.backend_core.tools.registry import ToolExecutor, ToolRegistry
from esg_core.utils.logging import preview_secret

logger = logging.getLogger(__name__)


def build_openai_client(config: Settings = settings) -> AsyncOpenAI:
    """Create an async OpenAI client for the configured endpoint (OpenAI or OpenRouter)."""
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; model calls will be rejected")
    logger.debug(
        f"OpenAI client for {config.OPENAI_BASE_URL} (key={preview_secret(config.OPENAI_API_KEY)})"
    )
    return AsyncOpenAI(api_key=config.OPENAI_API_KEY, base_url=config.OPENAI_BASE_URL)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


@dataclass
class OrchestratorResult:
    content: str
    tools_used: List[str] = field(default_factory=list)
    token_usage: Dict[str, int] = field(default_factory=dict)
    iterations: int = 0  # tool-calling rounds executed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "toolsUsed": self.tools_used,
            "tokenUsage": self.token_usage,
            "iterations": self.iterations,
        }


class ChatOrchestrator:
    """
    Orchestrates chat interactions with the LLM and the data tools.

    Responsibilities:
    - Manage LLM calls
    - Route tool calls (concurrently within a round)
    - Bound the number of tool-calling rounds
    - Track token usage
    - Maintain conversation context per session
    """

    def __init__(
        self,
        client: Any = None,
        tool_registry: Optional[ToolRegistry] = None,
        model: Optional[str] = None,
        max_iterations: Optional[int] = None,
        history_window: Optional[int] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        quota: Optional[MessageQuotaTracker] = None,
        system_prompt: Optional[str] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Anything exposing chat.completions.create(**params), sync or
                async. Defaults to an AsyncOpenAI client built from settings.
            tool_registry: Tools offered to the model
            system_prompt: Fixed system prompt; by default it is built per
                session from the session's portfolio
        """
        self.client = client if client is not None else build_openai_client(settings)
        self.tool_registry = tool_registry or ToolRegistry()
        self.model = model or settings.OPENAI_MODEL
        self.max_iterations = settings.MAX_TOOL_ITERATIONS if max_iterations is None else max_iterations
        self.history_window = settings.HISTORY_WINDOW if history_window is None else history_window
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.max_tokens = settings.OPENAI_MAX_TOKENS if max_tokens is None else max_tokens
        self.quota = quota or MessageQuotaTracker()
        self.system_prompt = system_prompt

    async def _call_model(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> Any:
        llm_params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tools:
            llm_params["tools"] = [{"type": "function", "function": tool} for tool in tools]
            llm_params["tool_choice"] = "auto"

        try:
            response = self.client.chat.completions.create(**llm_params)
            if inspect.isawaitable(response):
                response = await response
        except Exception as e:
            logger.error(f"Error in LLM call: {e}", exc_info=True)
            raise
        return response

    @staticmethod
    def _add_usage(totals: Dict[str, int], response: Any) -> None:
        usage = _get(response, "usage")
        if usage is None:
            return
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            totals[key] += int(_get(usage, key, 0) or 0)

    @staticmethod
    def _serialize_tool_calls(tool_calls: List[Any]) -> List[Dict[str, Any]]:
        serialized = []
        for call in tool_calls:
            function = _get(call, "function")
            arguments = _get(function, "arguments")
            if not isinstance(arguments, str):
                arguments = json.dumps(arguments or {})
            serialized.append({
                "id": _get(call, "id"),
                "type": "function",
                "function": {"name": _get(function, "name"), "arguments": arguments},
            })
        return serialized

    async def _execute_tool_call(
        self,
        call: Dict[str, Any],
        tool_executor: ToolExecutor,
    ) -> Tuple[str, Any]:
        """Run one tool call. Errors come back as {"error": ...} payloads."""
        tool_name = call["function"]["name"]
        raw_args = call["function"]["arguments"]

        try:
            tool_args = json.loads(raw_args) if raw_args and raw_args.strip() else {}
        except ValueError as e:
            logger.warning(f"Invalid JSON arguments for tool {tool_name}: {e}")
            return call["id"], {"error": f"Invalid arguments for {tool_name}: {e}"}
        if not isinstance(tool_args, dict):
            return call["id"], {"error": f"Invalid arguments for {tool_name}: expected a JSON object"}

        logger.info(f"Executing tool: {tool_name} with args: {tool_args}")
        try:
            result = await tool_executor(tool_name, tool_args)
        except ToolExecutionError as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            return call["id"], {"error": str(e)}
        except Exception as e:
            logger.error(f"Error executing tool {tool_name}: {e}", exc_info=True)
            return call["id"], {"error": str(e)}
        return call["id"], result

    async def run(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        tool_executor: ToolExecutor,
    ) -> OrchestratorResult:
        """
        Drive the model until it answers without requesting tools.

        Args:
            messages: Conversation so far (system, history, user). Not modified.
            tools: Function definitions ({name, description, parameters})
            tool_executor: async (tool_name, arguments) -> result

        Returns:
            OrchestratorResult with the final content and the tools used, in order

        Raises:
            OrchestratorExhausted: The model requested tools again after
                max_iterations rounds had already run
            ModelResponseError: The model returned neither content nor tool
                calls without finishing
        """
        transcript = list(messages)
        tools_used: List[str] = []
        token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        rounds = 0

        while True:
            response = await self._call_model(transcript, tools)
            self._add_usage(token_usage, response)

            choices = _get(response, "choices") or []
            if not choices:
                raise ModelResponseError("Model returned no choices")
            choice = choices[0]
            message = _get(choice, "message")
            tool_calls = _get(message, "tool_calls") or []

            if not tool_calls:
                content = _get(message, "content")
                if content is None:
                    finish_reason = _get(choice, "finish_reason")
                    if finish_reason != "stop":
                        raise ModelResponseError(
                            f"Model returned no content (finish_reason={finish_reason!r})"
                        )
                    content = ""
                return OrchestratorResult(
                    content=content,
                    tools_used=tools_used,
                    token_usage=token_usage,
                    iterations=rounds,
                )

            if rounds >= self.max_iterations:
                logger.error(f"Tool-calling cap of {self.max_iterations} rounds reached")
                raise OrchestratorExhausted(self.max_iterations, tools_used)
            rounds += 1

            calls = self._serialize_tool_calls(tool_calls)
            transcript.append({
                "role": "assistant",
                "content": _get(message, "content") or "",
                "tool_calls": calls,
            })
            tools_used.extend(call["function"]["name"] for call in calls)

            results = await asyncio.gather(
                *(self._execute_tool_call(call, tool_executor) for call in calls)
            )
            for call_id, result in results:
                transcript.append({
                    "role": "tool",
                    "tool_call_id": call_id,
                    "content": result if isinstance(result, str) else json.dumps(result, default=str),
                })

    async def process_message(
        self,
        session: ChatSessionContext,
        message: str,
        tool_registry: Optional[ToolRegistry] = None,
    ) -> OrchestratorResult:
        """
        Process a user message and generate a response.

        The session history is only updated once the turn succeeds.

        Args:
            session: Conversation state
            message: User message text
            tool_registry: Overrides the orchestrator's registry for this turn

        Returns:
            OrchestratorResult

        Raises:
            MessageQuotaExceeded: Before any model call, if the session is out of messages
        """
        self.quota.enforce(session)
        registry = tool_registry or self.tool_registry

        system_prompt = self.system_prompt or get_system_prompt(session.portfolio)
        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(session.recent_history(self.history_window))
        messages.append({"role": "user", "content": message})

        result = await self.run(
            messages,
            registry.get_function_definitions(),
            registry.executor_for(session.session_id),
        )

        self.quota.record_message(session)
        session.history.append({"role": "user", "content": message})
        session.history.append({"role": "assistant", "content": result.content})
        return result

    async def chat_turn(
        self,
        session: ChatSessionContext,
        message: str,
        pipeline: ActionPipeline,
        mode: Union[ExecutionPolicy, str, None] = None,
    ) -> Tuple[OrchestratorResult, ProcessedResponse]:
        """Full turn: ask the model, then parse its reply and run or queue the actions in it."""
        result = await self.process_message(session, message)
        processed = await pipeline.process_response(session, result.content, mode)
        return result, processed
