"""LangGraph-based orchestration strategy for chat dispatch."""

import logging
from dataclasses import replace
from typing import Any, Literal, NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from chat_relay.error_classifier import error_message
from chat_relay.errors import ChatRelayError

from .base import ChatOrchestrator, DispatchRequest, DispatchResult
from .steps import DispatchSteps, PreparedDispatch

logger = logging.getLogger(__name__)


class DispatchGraphState(TypedDict):
    request: DispatchRequest
    prepared: NotRequired[PreparedDispatch]
    model_id: NotRequired[str]
    attempts: NotRequired[int]
    result: NotRequired[DispatchResult | None]
    error: NotRequired[Exception | None]
    original_error: NotRequired[str | None]
    failure: NotRequired[ChatRelayError | None]


class LangGraphChatOrchestrator(ChatOrchestrator):
    def __init__(self, steps: DispatchSteps) -> None:
        self._steps = steps
        graph = StateGraph(DispatchGraphState)
        graph.add_node("prepare", self._prepare)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_node("select_fallback", self._select_fallback)
        graph.add_node("finish", self._finish)
        graph.add_node("fail", self._fail)
        graph.add_edge(START, "prepare")
        graph.add_edge("prepare", "invoke_provider")
        graph.add_conditional_edges(
            "invoke_provider",
            self._route_after_invoke,
            {"finish": "finish", "fallback": "select_fallback", "fail": "fail"},
        )
        graph.add_edge("select_fallback", "invoke_provider")
        graph.add_edge("finish", END)
        graph.add_edge("fail", END)
        self._graph = graph.compile()

    def _prepare(self, state: DispatchGraphState) -> dict[str, Any]:
        request = state["request"]
        return {
            "prepared": self._steps.prepare(request),
            "model_id": request.model_id,
            "attempts": 0,
            "result": None,
            "error": None,
            "original_error": None,
        }

    async def _invoke_provider(self, state: DispatchGraphState) -> dict[str, Any]:
        prepared = state["prepared"]
        handle = self._steps.build_handle(prepared, state["model_id"])
        attempts = state.get("attempts", 0) + 1
        try:
            result = await self._steps.invoke(prepared, handle)
        except Exception as error:
            return {"attempts": attempts, "error": error, "result": None}
        return {"attempts": attempts, "error": None, "result": result}

    def _route_after_invoke(
        self, state: DispatchGraphState
    ) -> Literal["finish", "fallback", "fail"]:
        if state.get("result") is not None:
            return "finish"
        error = state.get("error")
        if (
            error is not None
            and state.get("attempts", 0) == 1
            and self._steps.fallback_model_for(state["prepared"], error) is not None
        ):
            return "fallback"
        return "fail"

    def _select_fallback(self, state: DispatchGraphState) -> dict[str, Any]:
        error = cast(Exception, state.get("error"))
        fallback_model_id = self._steps.fallback_model_for(state["prepared"], error)
        original_error = error_message(error)
        logger.warning(
            "Model unavailable, retrying with fallback model",
            extra={
                "provider": state["prepared"].descriptor.provider,
                "model": state["request"].model_id,
                "fallback_model": fallback_model_id,
                "original_error": original_error,
            },
        )
        return {"model_id": fallback_model_id, "original_error": original_error, "error": None}

    def _finish(self, state: DispatchGraphState) -> dict[str, Any]:
        result = cast(DispatchResult, state.get("result"))
        original_error = state.get("original_error")
        if original_error is not None:
            result = replace(result, fallback_applied=True, original_error=original_error)
        return {"result": result}

    def _fail(self, state: DispatchGraphState) -> dict[str, Any]:
        original_error = state.get("original_error")
        failure = self._steps.to_failure(
            cast(Exception, state.get("error")),
            state["prepared"],
            failed_model_id=state["model_id"] if original_error is not None else None,
            original_error=original_error,
        )
        return {"failure": failure}

    async def run(self, request: DispatchRequest) -> DispatchResult:
        initial_state: DispatchGraphState = {"request": request}
        result = cast("DispatchGraphState", await self._graph.ainvoke(initial_state))
        failure = result.get("failure")
        if failure is not None:
            raise failure from result.get("error")
        response = result.get("result")
        if response is None:
            raise RuntimeError("LangGraph execution did not return a dispatch result")
        return response
