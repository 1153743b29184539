import json
import unittest

from fastapi.testclient import TestClient

from backend.config import Settings, get_settings
from backend.dependencies import (
    get_chat_relay,
    get_message_repo,
    get_profile_repo,
    get_session_repo,
    get_user_repo,
)
from backend.main import create_app
from backend.services.chat_service import NOT_ENOUGH_HISTORY, ChatRelay
from backend.services.errors import ConfigError, StreamInterrupted, UpstreamError
from tests.fakes import (
    FailingMessageRepository,
    FakeLLM,
    InMemoryChatSessionRepository,
    InMemoryMessageRepository,
    InMemoryProfileRepository,
    InMemoryUserRepository,
    delta,
    sse,
)


def parse_frames(body: str):
    frames = [f for f in body.split("\n\n") if f]
    assert all(f.startswith("data: ") for f in frames), frames
    return [json.loads(f[len("data: "):]) for f in frames]


class RouteTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings(openrouter_api_key="sk-test", secret_key="test-secret")
        self.messages = InMemoryMessageRepository()
        self.sessions = InMemoryChatSessionRepository(self.messages)
        self.profiles = InMemoryProfileRepository()
        self.users = InMemoryUserRepository()
        self.llm = FakeLLM(chunks=[sse(delta("Hi"), delta(" there"), "[DONE]")])

        app = create_app(self.settings, init_db=False)
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_message_repo] = lambda: self.messages
        app.dependency_overrides[get_session_repo] = lambda: self.sessions
        app.dependency_overrides[get_profile_repo] = lambda: self.profiles
        app.dependency_overrides[get_user_repo] = lambda: self.users
        app.dependency_overrides[get_chat_relay] = lambda: ChatRelay(self.llm, self.messages, self.sessions)
        self.app = app
        self.client = TestClient(app)

    def _login(self, email: str = "ada@mail.com") -> dict:
        self.client.post("/users/signup", json={"name": "Ada", "email": email, "password": "secret1"})
        token = self.client.post("/users/login", json={"email": email, "password": "secret1"}).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}


class ChatRouteTests(RouteTestCase):
    def test_chat_streams_sse_envelopes(self) -> None:
        resp = self.client.post("/chat", json={"message": "Hello", "sessionId": "s1", "userId": "u1"})

        self.assertEqual(200, resp.status_code)
        self.assertTrue(resp.headers["content-type"].startswith("text/event-stream"))
        self.assertEqual("no-cache", resp.headers["cache-control"])
        frames = parse_frames(resp.text)
        self.assertEqual([{"content": "Hi"}, {"content": " there"}], frames[:2])
        self.assertEqual({"promptTokens": 0, "completionTokens": 2, "totalTokens": 2}, frames[2]["usage"])
        self.assertEqual("Hi there", self.messages.rows[-1]["content"])

    def test_missing_fields_are_rejected(self) -> None:
        for body in ({"sessionId": "s1"}, {"message": "Hello"}, {"message": "  ", "sessionId": "s1"}, {}):
            with self.subTest(body=body):
                resp = self.client.post("/chat", json=body)
                self.assertEqual(400, resp.status_code)
                self.assertEqual({"error": "Message and sessionId are required"}, resp.json())
        self.assertEqual([], self.messages.rows)

    def test_pre_stream_failure_is_a_json_500(self) -> None:
        self.llm.stream_error = ConfigError("OpenRouter API key is not configured.")
        resp = self.client.post("/chat", json={"message": "Hello", "sessionId": "s1"})

        self.assertEqual(500, resp.status_code)
        self.assertEqual({"error": "Failed to process chat message"}, resp.json())

    def test_upstream_error_text_stays_out_of_the_response(self) -> None:
        self.llm.stream_error = UpstreamError(
            "Failed to reach the LLM provider: HTTPSConnectionPool(host='openrouter.ai') key=sk-or-SECRET", 502
        )
        resp = self.client.post("/chat", json={"message": "Hello", "sessionId": "s1"})

        self.assertEqual(500, resp.status_code)
        self.assertNotIn("openrouter.ai", resp.text)
        self.assertNotIn("sk-or-SECRET", resp.text)
        self.assertEqual("Failed to process chat message", resp.json()["error"])

    def test_message_is_persisted_as_sent(self) -> None:
        self.client.post("/chat", json={"message": "  Hello there \n", "sessionId": "s1"})

        self.assertEqual("  Hello there \n", self.messages.rows[0]["content"])
        self.assertEqual("  Hello there \n", self.llm.stream_calls[0][-1]["content"])

    def test_mid_stream_failure_reaches_the_server_unhandled(self) -> None:
        self.llm.chunks = [sse(delta("Hi")), sse(delta(" there")), sse(delta("!"))]
        self.llm.fail_after = 2

        with self.assertRaises(StreamInterrupted):
            self.client.post("/chat", json={"message": "Hello", "sessionId": "s1"})

    def test_profile_query_on_short_history(self) -> None:
        self.messages.seed("s1", 3)
        resp = self.client.post("/chat", json={"message": "Who am I?", "sessionId": "s1"})

        self.assertEqual([{"content": NOT_ENOUGH_HISTORY}], parse_frames(resp.text))
        self.assertEqual([], self.llm.profile_calls)

    def test_profile_query_with_history(self) -> None:
        self.messages.seed("s1", 8)
        resp = self.client.post("/chat", json={"message": "what am I like?", "sessionId": "s1"})

        frames = parse_frames(resp.text)
        self.assertEqual(2, len(frames))
        self.assertEqual(self.llm.profile.text, frames[0]["content"])
        self.assertEqual(160, frames[1]["usage"]["totalTokens"])


class ClearAndHistoryRouteTests(RouteTestCase):
    def test_clear_is_idempotent(self) -> None:
        self.messages.seed("s1", 4)
        self.messages.seed("s2", 2)

        for _ in range(2):
            resp = self.client.post("/clear", json={"sessionId": "s1"})
            self.assertEqual(200, resp.status_code)
            self.assertEqual({"success": True}, resp.json())
            self.assertEqual([], self.messages.history("s1"))
        self.assertEqual(2, len(self.messages.history("s2")))

    def test_clear_requires_session_id(self) -> None:
        resp = self.client.post("/clear", json={})
        self.assertEqual(400, resp.status_code)
        self.assertEqual({"error": "SessionId is required"}, resp.json())

    def test_missing_store_config_is_a_generic_500(self) -> None:
        def unconfigured_store():
            raise ConfigError("MONGO_URI is not set in environment/.env")

        self.app.dependency_overrides[get_message_repo] = unconfigured_store
        resp = self.client.get("/messages", params={"sessionId": "s1"})

        self.assertEqual(500, resp.status_code)
        self.assertEqual({"error": "Internal server error"}, resp.json())
        self.assertNotIn("MONGO_URI", resp.text)

    def test_clear_store_failure_is_a_500(self) -> None:
        self.app.dependency_overrides[get_message_repo] = lambda: FailingMessageRepository()
        resp = self.client.post("/clear", json={"sessionId": "s1"})
        self.assertEqual(500, resp.status_code)
        self.assertEqual({"error": "Failed to clear conversation"}, resp.json())

    def test_messages_returns_history_in_order(self) -> None:
        self.messages.seed("s1", 3)
        resp = self.client.get("/messages", params={"sessionId": "s1"})

        self.assertEqual(200, resp.status_code)
        items = resp.json()["messages"]
        self.assertEqual(["user", "assistant", "user"], [m["role"] for m in items])
        self.assertEqual("user turn 0", items[0]["content"])

    def test_messages_requires_session_id(self) -> None:
        self.assertEqual(400, self.client.get("/messages").status_code)


class UserAndSessionRouteTests(RouteTestCase):
    def test_signup_login_and_me(self) -> None:
        headers = self._login()
        me = self.client.get("/users/me", headers=headers).json()
        self.assertEqual("Ada", me["username"])
        self.assertEqual("ada@mail.com", me["email"])

    def test_duplicate_signup_and_bad_password(self) -> None:
        self._login()
        dup = self.client.post("/users/signup", json={"name": "Ada", "email": "ada@mail.com", "password": "secret1"})
        self.assertEqual(400, dup.status_code)
        bad = self.client.post("/users/login", json={"email": "ada@mail.com", "password": "wrong12"})
        self.assertEqual(401, bad.status_code)

    def test_protected_routes_need_a_token(self) -> None:
        self.assertEqual(401, self.client.get("/sessions").status_code)
        self.assertEqual(401, self.client.get("/users/me", headers={"Authorization": "Bearer junk"}).status_code)

    def test_profile_round_trip(self) -> None:
        headers = self._login()
        self.assertEqual("Ada", self.client.get("/users/profile", headers=headers).json()["full_name"])

        resp = self.client.put("/users/profile", json={"full_name": "Ada Lovelace"}, headers=headers)
        self.assertEqual("Ada Lovelace", resp.json()["full_name"])

    def test_session_lifecycle(self) -> None:
        headers = self._login()
        created = self.client.post("/sessions", json={}, headers=headers)
        self.assertEqual(201, created.status_code)
        sid = created.json()["id"]
        self.assertEqual("New Chat", created.json()["title"])

        renamed = self.client.patch(f"/sessions/{sid}", json={"title": "Travel"}, headers=headers)
        self.assertEqual("Travel", renamed.json()["title"])

        self.messages.seed(sid, 2)
        listed = self.client.get("/sessions", headers=headers).json()["sessions"]
        self.assertEqual([sid], [s["id"] for s in listed])

        deleted = self.client.delete(f"/sessions/{sid}", headers=headers)
        self.assertEqual({"ok": True, "deleted": 1}, deleted.json())
        self.assertEqual([], self.messages.history(sid))
        self.assertEqual([], self.client.get("/sessions", headers=headers).json()["sessions"])

    def test_other_users_sessions_are_not_found(self) -> None:
        owner = self._login()
        sid = self.client.post("/sessions", json={"title": "Mine"}, headers=owner).json()["id"]

        intruder = self._login("bob@mail.com")
        self.assertEqual(404, self.client.delete(f"/sessions/{sid}", headers=intruder).status_code)
        self.assertEqual(404, self.client.patch(f"/sessions/{sid}", json={"title": "x"}, headers=intruder).status_code)


class HealthRouteTests(RouteTestCase):
    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual("OK", resp.json()["status"])
        self.assertEqual("configured", resp.json()["llm"])


if __name__ == "__main__":
    unittest.main()
