import sys
from pathlib import Path
import unittest

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from warband.domain.models.location import Location
from warband.domain.models.quest import Quest
from warband.application.errors import MalformedPayloadError, ProviderError, ProviderRateLimitError
from warband.infrastructure.gemini_provider import GeminiContentProvider, parse_json_text
from warband.infrastructure.resilient_http import reset_circuit_breakers


def _reply(text: str, tokens: int = 42) -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {"totalTokenCount": tokens},
    }


class _FakeGeminiClient:
    def __init__(self, *bodies, status_code: int = 200) -> None:
        self.base_url = "https://gemini.invalid"
        self.bodies = list(bodies)
        self.status_code = status_code
        self.calls = []
        self.closed = False

    def post(self, path, json=None, params=None, headers=None):
        self.calls.append({"path": path, "json": json, "params": params})
        body = self.bodies.pop(0) if len(self.bodies) > 1 else self.bodies[0]
        request = httpx.Request("POST", f"https://gemini.invalid{path}")
        return httpx.Response(self.status_code, json=body, request=request)

    def close(self) -> None:
        self.closed = True


def _town() -> Location:
    return Location(id="suno", name="Suno", owner_id="Count Grainwad", faction_id="swadia", description="A river town.")


def _quest(hint: str) -> Quest:
    return Quest(
        id="bounty-1",
        title="Hunt the Deserters",
        description="",
        type="bounty",
        giver_location_id="pravend",
        faction_id="swadia",
        reward_gold=300,
        reward_renown=10,
        target_enemy_name="Deserters",
        target_enemy_location_hint=hint,
    )


class ParseJsonTextTests(unittest.TestCase):
    def test_plain_and_fenced_json(self) -> None:
        self.assertEqual({"a": 1}, parse_json_text('{"a": 1}'))
        self.assertEqual({"a": 1}, parse_json_text('```json\n{"a": 1}\n```'))
        self.assertEqual([1], parse_json_text("```\n[1]\n```"))

    def test_garbage_is_malformed(self) -> None:
        with self.assertRaises(MalformedPayloadError):
            parse_json_text("The battle was glorious.")


class GeminiContentProviderTests(unittest.TestCase):
    def tearDown(self) -> None:
        reset_circuit_breakers()

    def test_requires_api_key(self) -> None:
        with self.assertRaises(ValueError):
            GeminiContentProvider("")

    def test_json_reply_carries_token_count(self) -> None:
        client = _FakeGeminiClient(_reply('{"destinationId": "suno"}', tokens=77))
        provider = GeminiContentProvider("secret", model="test-model", http_client=client)

        reply = provider.get_destination_for_bounty_quest(
            _quest("river"),
            {"suno": _town()},
        )

        self.assertEqual({"destinationId": "suno"}, reply.data)
        self.assertEqual(77, reply.tokens)
        self.assertEqual("/v1beta/models/test-model:generateContent", client.calls[0]["path"])
        self.assertEqual({"key": "secret"}, client.calls[0]["params"])
        self.assertEqual("application/json", client.calls[0]["json"]["generationConfig"]["responseMimeType"])

    def test_rumor_is_plain_text(self) -> None:
        client = _FakeGeminiClient(_reply("  The miller owes everyone money.  "))
        provider = GeminiContentProvider("secret", http_client=client)

        reply = provider.get_rumor(_town())

        self.assertEqual("The miller owes everyone money.", reply.data)
        self.assertNotIn("responseMimeType", client.calls[0]["json"]["generationConfig"])

    def test_parts_are_joined(self) -> None:
        body = {"candidates": [{"content": {"parts": [{"text": '{"destin'}, {"text": 'ationId": "suno"}'}]}}]}
        provider = GeminiContentProvider("secret", http_client=_FakeGeminiClient(body))

        reply = provider.get_destination_for_bounty_quest(
            _quest(""),
            {"suno": _town()},
        )

        self.assertEqual({"destinationId": "suno"}, reply.data)
        self.assertEqual(0, reply.tokens)

    def test_odd_reply_shapes_are_malformed(self) -> None:
        bodies = (
            {"candidates": ["oops"]},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": "oops"}}]},
        )
        for body in bodies:
            provider = GeminiContentProvider("secret", http_client=_FakeGeminiClient(body))
            with self.subTest(body=body):
                with self.assertRaises(MalformedPayloadError):
                    provider.get_rumor(_town())

    def test_resource_exhausted_is_rate_limit(self) -> None:
        body = {"error": {"status": "RESOURCE_EXHAUSTED", "message": "quota"}}
        provider = GeminiContentProvider("secret", http_client=_FakeGeminiClient(body))

        with self.assertRaises(ProviderRateLimitError):
            provider.get_rumor(_town())

    def test_http_429_is_rate_limit(self) -> None:
        provider = GeminiContentProvider("secret", http_client=_FakeGeminiClient({}, status_code=429))
        with self.assertRaises(ProviderRateLimitError):
            provider.generate_character("nomad")

    def test_client_error_becomes_provider_error(self) -> None:
        provider = GeminiContentProvider("secret", http_client=_FakeGeminiClient({}, status_code=400))
        with self.assertRaises(ProviderError):
            provider.generate_character("nomad")

    def test_verify_key(self) -> None:
        ok = GeminiContentProvider("secret", http_client=_FakeGeminiClient(_reply("Hello")))
        refused = GeminiContentProvider("secret", http_client=_FakeGeminiClient({}, status_code=400))

        self.assertTrue(ok.verify_key())
        self.assertFalse(refused.verify_key())

    def test_close_closes_client(self) -> None:
        client = _FakeGeminiClient(_reply("x"))
        GeminiContentProvider("secret", http_client=client).close()
        self.assertTrue(client.closed)


if __name__ == "__main__":
    unittest.main()
