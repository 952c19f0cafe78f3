import os
import unittest
from collections.abc import AsyncIterator, Sequence
from contextlib import ExitStack
from typing import Any
from unittest.mock import Mock, patch

from fastapi.testclient import TestClient

import app as app_module
from chat_relay.infra.credentials import CredentialSnapshot
from chat_relay.model_registry import ModelRegistry
from chat_relay.orchestration.direct import DirectChatOrchestrator
from chat_relay.orchestration.steps import DispatchSteps
from chat_relay.persistence.hooks import PersistenceHooks, PersistenceWorker
from chat_relay.persistence.in_memory import InMemorySessionStore
from chat_relay.providers.base import ProviderCompletion, ProviderHandle, Usage, require_api_key
from chat_relay.services.chat_service import ChatService
from chat_relay.turns import ChatTurn

DECOMMISSIONED = "The model `gemma2-9b-it` has been decommissioned and is no longer supported."


class ScriptedGroqProvider:
    """Groq stand-in; a scripted exception inside a chunk list is raised mid-stream."""

    provider = "groq"
    credential_env = ("GROQ_API_KEY",)

    def __init__(self, outcomes: dict[str, Any]) -> None:
        self._outcomes = outcomes

    def build_handle(self, model_id: str, credentials: CredentialSnapshot) -> ProviderHandle:
        require_api_key(self.provider, self.credential_env, credentials, model_id)
        return ProviderHandle(provider=self.provider, model_id=model_id, client=None)

    def _outcome(self, model_id: str) -> Any:
        outcome = self._outcomes[model_id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def complete(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> ProviderCompletion:
        text = "".join(self._outcome(handle.model_id))
        return ProviderCompletion(text=text, usage=Usage(5, 7, 12))

    async def complete_streaming(
        self, handle: ProviderHandle, turns: Sequence[ChatTurn], temperature: float
    ) -> AsyncIterator[str]:
        for chunk in self._outcome(handle.model_id):
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def postprocess(self, text: str) -> str:
        return text


def build_service(
    outcomes: dict[str, Any],
    environ: dict[str, str] | None = None,
    store: Any | None = None,
) -> ChatService:
    credentials = CredentialSnapshot.from_environ(
        {"GROQ_API_KEY": "gsk_test"} if environ is None else environ
    )
    registry = ModelRegistry()
    steps = DispatchSteps(
        registry, {"groq": ScriptedGroqProvider(outcomes)}, get_credentials=lambda: credentials
    )
    return ChatService(
        registry=registry,
        orchestrator=DirectChatOrchestrator(steps),
        persistence=PersistenceHooks(store or InMemorySessionStore(), PersistenceWorker()),
        get_credentials=lambda: credentials,
    )


class ApiContractTests(unittest.TestCase):
    def setUp(self) -> None:
        app_module.get_chat_service.cache_clear()

    def post_chat(self, service: Any, payload: dict[str, Any]) -> Any:
        with ExitStack() as stack:
            stack.enter_context(
                patch.object(app_module, "ensure_langsmith_configured", return_value=None)
            )
            self.flush_mock = stack.enter_context(
                patch.object(app_module, "flush_langsmith_traces", return_value=None)
            )
            stack.enter_context(patch.object(app_module, "get_chat_service", return_value=service))
            with TestClient(app_module.app) as client:
                return client.post("/api/chat", json=payload)

    def test_health_endpoint(self) -> None:
        with TestClient(app_module.app) as client:
            response = client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_models_endpoint_without_credentials_returns_empty_list(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with TestClient(app_module.app) as client:
                response = client.get("/api/models")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["count"], 0)
        self.assertEqual(payload["models"], [])
        self.assertIn("No API keys configured", payload["message"])

    def test_models_endpoint_returns_metadata_fields(self) -> None:
        service = build_service({})
        with patch.object(app_module, "get_chat_service", return_value=service):
            with TestClient(app_module.app) as client:
                response = client.get("/api/models")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertGreaterEqual(payload["count"], 1)
        first = payload["models"][0]
        for field in ("id", "name", "provider", "maxTokens", "supportsStreaming", "description"):
            self.assertIn(field, first)
        self.assertEqual(first["provider"], "groq")

    def test_non_streaming_fallback_response_shape(self) -> None:
        service = build_service(
            {"gemma2-9b-it": RuntimeError(DECOMMISSIONED), "llama-3.1-8b-instant": ["4"]}
        )

        response = self.post_chat(
            service,
            {
                "model": "gemma2-9b-it",
                "stream": False,
                "messages": [{"role": "user", "content": "What is 2+2?"}],
            },
        )

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["model"], "llama-3.1-8b-instant")
        self.assertEqual(payload["message"]["role"], "assistant")
        self.assertEqual(payload["message"]["content"], "4")
        self.assertEqual(payload["message"]["model"], "llama-3.1-8b-instant")
        self.assertIn("id", payload["message"])
        self.assertIn("timestamp", payload["message"])
        self.assertTrue(payload["fallbackUsed"])
        self.assertEqual(payload["originalModelError"], DECOMMISSIONED)
        self.assertEqual(
            payload["usage"], {"promptTokens": 5, "completionTokens": 7, "totalTokens": 12}
        )
        self.assertEqual(self.flush_mock.call_count, 1)

    def test_non_streaming_without_fallback_omits_fallback_fields(self) -> None:
        service = build_service({"llama-3.1-8b-instant": ["hi"]})

        response = self.post_chat(
            service,
            {
                "model": "llama-3.1-8b-instant",
                "stream": False,
                "messages": [{"role": "user", "content": "hello"}],
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("fallbackUsed", response.json())
        self.assertNotIn("originalModelError", response.json())

    def test_streaming_response_body_and_headers(self) -> None:
        service = build_service({"llama-3.1-8b-instant": ["Once", " upon", " a time"]})

        response = self.post_chat(
            service,
            {"model": "llama-3.1-8b-instant", "messages": [{"role": "user", "content": "story"}]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))
        self.assertEqual(response.headers["x-model-used"], "llama-3.1-8b-instant")
        self.assertEqual(response.headers["x-fallback-used"], "false")
        self.assertEqual(response.text, "Once upon a time")

    def test_mid_stream_error_is_appended_to_body(self) -> None:
        service = build_service(
            {"llama-3.1-8b-instant": ["partial", RuntimeError("connection reset")]}
        )

        response = self.post_chat(
            service,
            {"model": "llama-3.1-8b-instant", "messages": [{"role": "user", "content": "hi"}]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "partial\n\n[Error: connection reset]")

    def test_whitespace_only_messages_return_400(self) -> None:
        service = build_service({})

        response = self.post_chat(
            service,
            {"model": "llama-3.1-8b-instant", "messages": [{"role": "user", "content": "   "}]},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "No valid messages"})
        self.assertEqual(self.flush_mock.call_count, 1)

    def test_unknown_model_returns_400(self) -> None:
        response = self.post_chat(
            build_service({}),
            {"model": "invalid-model", "messages": [{"role": "user", "content": "hi"}]},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid model ID: invalid-model")

    def test_missing_credential_returns_500_naming_provider(self) -> None:
        service = build_service({"llama-3.1-8b-instant": ["never"]}, environ={})

        response = self.post_chat(
            service,
            {"model": "llama-3.1-8b-instant", "messages": [{"role": "user", "content": "hi"}]},
        )

        self.assertEqual(response.status_code, 500)
        payload = response.json()
        self.assertEqual(payload["provider"], "groq")
        self.assertIn("GROQ_API_KEY", payload["error"])
        self.assertIn("switch to a model", payload["error"])

    def test_rate_limit_returns_429(self) -> None:
        service = build_service(
            {"llama-3.1-8b-instant": RuntimeError("Rate limit reached for requests")}
        )

        response = self.post_chat(
            service,
            {
                "model": "llama-3.1-8b-instant",
                "stream": False,
                "messages": [{"role": "user", "content": "hi"}],
            },
        )

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["provider"], "groq")

    def test_schema_violation_returns_422(self) -> None:
        response = self.post_chat(
            build_service({}),
            {
                "model": "llama-3.1-8b-instant",
                "temperature": 3,
                "messages": [{"role": "user", "content": "hi"}],
            },
        )

        self.assertEqual(response.status_code, 422)

    def test_unexpected_error_returns_generic_500(self) -> None:
        chat_service = Mock()
        chat_service.handle_chat.side_effect = RuntimeError("boom")

        response = self.post_chat(
            chat_service,
            {"model": "llama-3.1-8b-instant", "messages": [{"role": "user", "content": "hi"}]},
        )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Internal server error"})
        self.assertEqual(self.flush_mock.call_count, 1)

    def test_failing_session_store_does_not_change_response(self) -> None:
        payload = {
            "model": "llama-3.1-8b-instant",
            "stream": False,
            "chatSessionId": "session-1",
            "messages": [{"role": "user", "content": "hi"}],
        }
        failing_store = Mock()
        failing_store.get_session.side_effect = ConnectionError("dynamodb down")

        baseline = self.post_chat(build_service({"llama-3.1-8b-instant": ["hello"]}), payload)
        degraded = self.post_chat(
            build_service({"llama-3.1-8b-instant": ["hello"]}, store=failing_store), payload
        )

        self.assertEqual(degraded.status_code, baseline.status_code)
        expected, actual = baseline.json(), degraded.json()
        for body in (expected, actual):
            body["message"].pop("id")
            body["message"].pop("timestamp")
        self.assertEqual(actual, expected)


if __name__ == "__main__":
    unittest.main()
