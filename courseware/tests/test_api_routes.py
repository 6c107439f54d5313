"""
HTTP contract of the courseware API (in-memory wiring, no network).
"""
from __future__ import annotations

import threading

import httpx
import pytest
from httpx import ASGITransport

from courseware.access.vault import Course
from courseware.evaluation.engine import DirectExecutionStrategy, EvaluationEngine, JudgedStrategy
from courseware.evaluation.ports import JudgeTransientError
from courseware.web import main
from courseware.web.wiring import build_memory_services, set_services

pytestmark = pytest.mark.anyio("asyncio")


class _Judge:
    def __init__(self, answer):
        self.answer = answer

    def judge(self, **_):
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer

    def hint(self, **_):
        return {"message": "Look at the return value.", "highlights": [{"startLine": 2, "endLine": 2}]}


class _EchoExecutor:
    def run(self, *, code, language, input):
        return input


@pytest.fixture
def services():
    svc = build_memory_services(
        engine=EvaluationEngine(JudgedStrategy(_Judge({"verdict": "unsure", "confidence": 0.3})), judge=_Judge({}))
    )
    svc.access_repo.add_course(Course(id="priced", title="Advanced", price=25))
    svc.access_repo.add_course(Course(id="free", title="Intro", price=0))
    set_services(svc)
    yield svc
    set_services(None)


def _client(services, *, roles=("student",), sub="learner-1") -> httpx.AsyncClient:
    client = httpx.AsyncClient(
        transport=ASGITransport(app=main.app), base_url="http://test", headers={"Origin": "http://test"}
    )
    if roles is not None:
        rec = services.sessions.create(sub=sub, roles=list(roles))
        client.cookies.set(main.SESSION_COOKIE_NAME, rec.session_id)
    return client


async def test_health_is_public(services):
    async with _client(services, roles=None) as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_api_requires_session(services):
    async with _client(services, roles=None) as client:
        resp = await client.post("/api/progress", json={"pageId": "p1", "action": "complete"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthenticated"
    assert resp.headers["Cache-Control"] == "private, no-store"


async def test_cross_origin_write_rejected(services):
    async with _client(services) as client:
        resp = await client.post(
            "/api/progress", json={"pageId": "p1", "action": "complete"}, headers={"Origin": "http://evil.example"}
        )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "csrf_violation"


async def test_code_execute_judged_response_shape(services):
    async with _client(services) as client:
        resp = await client.post(
            "/api/code-execute",
            json={"code": "def solution(x): return x", "language": "python", "testCases": [{"input": "1", "expectedOutput": "1"}]},
        )
    assert resp.status_code == 200
    body = resp.json()
    assert body["allPassed"] is False
    assert body["executed"] is False
    assert body["verdict"] == "unsure"
    assert isinstance(body["results"], list) and "output" in body


async def test_code_execute_judge_failure_is_502(services):
    services._engine = EvaluationEngine(JudgedStrategy(_Judge(JudgeTransientError("timeout"))))
    async with _client(services) as client:
        resp = await client.post(
            "/api/code-execute",
            json={"code": "x", "language": "python", "testCases": [{"input": "1", "expectedOutput": "1"}]},
        )
    assert resp.status_code == 502
    assert resp.json() == {"error": "review_failed", "detail": "Review failed, please try again."}


async def test_code_execute_uses_stored_hidden_cases(services):
    services._engine = EvaluationEngine(DirectExecutionStrategy(_EchoExecutor()))
    saved = services.content.save_page_sections(
        "page-1",
        [
            {
                "type": "code",
                "content": {
                    "defaultLanguage": "python",
                    "testCasesByLanguage": {
                        "python": [
                            {"input": "a", "expectedOutput": "a"},
                            {"input": "secret", "expectedOutput": "secret", "hidden": True},
                        ]
                    },
                },
            }
        ],
    )
    async with _client(services) as client:
        resp = await client.post(
            "/api/code-execute",
            json={"code": "x", "language": "python", "pageId": "page-1", "sectionId": saved[0].id, "testCases": []},
        )
    body = resp.json()
    assert resp.status_code == 200
    assert body["executed"] is True
    assert body["allPassed"] is True
    assert len(body["results"]) == 2
    assert body["results"][1] == {"passed": True, "output": "", "expected": "", "hidden": True}
    assert "secret" not in body["output"]


async def test_stored_case_lookup_runs_off_the_event_loop(services, monkeypatch):
    services._engine = EvaluationEngine(DirectExecutionStrategy(_EchoExecutor()))
    [section] = services.content.save_page_sections(
        "page-2",
        [{"type": "code", "content": {"language": "python", "testCases": [{"input": "a", "expectedOutput": "a"}]}}],
    )
    loop_thread = threading.get_ident()
    lookup_threads = []
    original = services.content.get_code_block

    def _recording(*args, **kwargs):
        lookup_threads.append(threading.get_ident())
        return original(*args, **kwargs)

    monkeypatch.setattr(services.content, "get_code_block", _recording)
    async with _client(services) as client:
        resp = await client.post(
            "/api/code-execute",
            json={"code": "x", "language": "python", "pageId": "page-2", "sectionId": section.id},
        )
    assert resp.status_code == 200
    assert len(lookup_threads) == 1
    assert lookup_threads[0] != loop_thread




async def test_code_execute_validation_error(services):
    async with _client(services) as client:
        resp = await client.post("/api/code-execute", json={"code": "", "language": "python", "testCases": []})
    assert resp.status_code == 400


async def test_code_hint(services):
    async with _client(services) as client:
        resp = await client.post(
            "/api/code-hint",
            json={
                "code": "def solution(x):\n    x",
                "language": "python",
                "failingTests": [{"input": "1", "expectedOutput": "1", "actualOutput": "None"}],
            },
        )
    assert resp.status_code == 200
    assert resp.json()["highlights"][0]["startLine"] == 2


async def test_progress_write_and_read(services):
    async with _client(services) as client:
        r1 = await client.post(
            "/api/progress",
            json={"pageId": "p1", "action": "mcq", "data": {"sectionId": "q1", "selectedOption": "a", "isCorrect": True}},
        )
        r2 = await client.post("/api/progress", json={"pageId": "p1", "action": "complete"})
        r3 = await client.get("/api/progress/p1")
        r4 = await client.get("/api/progress/unknown")
        bad = await client.post("/api/progress", json={"pageId": "p1", "action": "explode"})
    assert r1.status_code == 200 and r2.status_code == 200
    body = r3.json()
    assert body["mcqAnswers"]["q1"]["selectedOption"] == "a"
    assert body["completedAt"] is not None
    assert r4.json()["mcqAnswers"] == {}
    assert bad.status_code == 400
    assert bad.json()["error"] == "invalid_action"


async def test_token_issue_and_enrollment_flow(services):
    async with _client(services, roles=["admin"], sub="admin-1") as admin:
        issued = await admin.post("/api/admin/courses/priced/tokens", json={"expiryMinutes": 60})
        listing = await admin.get("/api/admin/courses/priced/tokens")
        refused = await admin.post("/api/admin/courses/free/tokens", json={})
    assert issued.status_code == 201
    token = issued.json()["token"]
    assert len(token) == 64 and issued.json()["expiresAt"]
    assert token not in listing.text
    assert refused.status_code == 400

    async with _client(services, sub="learner-1") as learner:
        ok = await learner.post("/api/enrollment", json={"courseId": "priced", "accessCode": token})
        again = await learner.post("/api/enrollment", json={"courseId": "priced", "accessCode": token})
    assert ok.status_code == 201
    assert again.status_code == 409

    async with _client(services, sub="learner-2") as other:
        reused = await other.post("/api/enrollment", json={"courseId": "priced", "accessCode": token})
        free = await other.post("/api/enrollment", json={"courseId": "free"})
        malformed = await other.post("/api/enrollment", json={"courseId": ["free"]})
    assert reused.status_code == 403
    assert reused.json()["detail"] == "Invalid access code"
    assert free.status_code == 201
    assert malformed.status_code == 400


async def test_admin_routes_require_admin_role(services):
    async with _client(services) as learner:
        issue = await learner.post("/api/admin/courses/priced/tokens", json={})
        save = await learner.put("/api/admin/pages/p1/sections", json={"sections": []})
    assert issue.status_code == 403
    assert save.status_code == 403


async def test_sections_saved_by_admin_hide_hidden_cases_from_learners(services):
    sections = [
        {"type": "text", "content": {"html": "<p>Read me</p>"}},
        {
            "type": "code",
            "content": {
                "starterCode": "def solution(x):\n    pass",
                "language": "python",
                "testCases": [{"input": "1", "expectedOutput": "1"}, {"input": "2", "expectedOutput": "2", "hidden": True}],
                "_editingLang": "python",
            },
        },
    ]
    async with _client(services, roles=["admin"], sub="admin-1") as admin:
        saved = await admin.put("/api/admin/pages/p1/sections", json={"sections": sections})
    assert saved.status_code == 200
    assert "_editingLang" not in saved.json()[1]["content"]

    async with _client(services) as learner:
        read = await learner.get("/api/pages/p1/sections")
    content = read.json()[1]["content"]
    assert [s["orderIndex"] for s in read.json()] == [0, 1]
    assert content["starterCodeByLanguage"]["python"] == "def solution(x):\n    pass"
    assert content["testCasesByLanguage"]["python"] == [{"input": "1", "expectedOutput": "1", "hidden": False}]
