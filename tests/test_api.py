"""HTTP-level tests with fake browser and oracle services."""

import asyncio
import logging
from types import SimpleNamespace

import pytest
from conftest import FakeBrowserManager, FakeElement, FakeGenerator, FakePage, FakeProvider, TARGET_URL
from fastapi.testclient import TestClient
from qaptain.database import configure
from qaptain.main import app
from qaptain.models.scenarios import Scenario
from qaptain.services import artifact_manager
from qaptain.services.action_executor import ActionExecutor
from qaptain.services.artifact_manager import ArtifactManager
from qaptain.services.context_extractor import PageContextExtractor
from qaptain.services.rate_limiter import RateLimiter
from qaptain.services.scenario_runner import ScenarioRunner
from qaptain.services.step_interpreter import StepInterpreter

SERVICES = ("rate_limiter", "browser_manager", "extractor", "generator", "interpreter", "runner")

CONTACT_CONTEXT = {
    "title": "Contact us",
    "url": TARGET_URL,
    "hasContactForm": True,
    "forms": [{
        "id": "contact",
        "className": "",
        "inputs": [
            {"name": "email", "type": "email", "placeholder": "Your email"},
            {"name": "submit", "type": "submit", "placeholder": ""},
        ],
    }],
    "navLinks": [],
}


@pytest.fixture
def fakes(tmp_path):
    page = FakePage(elements=[
        FakeElement(tag="input", name="email", type="email", placeholder="Your email", label="Email"),
        FakeElement(tag="input", name="submit", type="submit", value="Send"),
    ])
    page.evaluate_result = CONTACT_CONTEXT
    return SimpleNamespace(
        page=page,
        browsers=FakeBrowserManager(page),
        generator=FakeGenerator(),
        limiter=RateLimiter(max_concurrent=1),
        artifacts=ArtifactManager(str(tmp_path / "artifacts")),
    )


@pytest.fixture
def client(fakes, tmp_path, monkeypatch):
    configure(f"sqlite+aiosqlite:///{tmp_path}/api.db")
    monkeypatch.setattr(artifact_manager, "_artifact_manager", fakes.artifacts)

    extractor = PageContextExtractor(settle_timeout_ms=10, navigation_timeout_ms=100)
    interpreter = StepInterpreter()
    app.state.rate_limiter = fakes.limiter
    app.state.browser_manager = fakes.browsers
    app.state.extractor = extractor
    app.state.generator = fakes.generator
    app.state.interpreter = interpreter
    app.state.runner = ScenarioRunner(
        browser_manager=fakes.browsers,
        extractor=extractor,
        generator=fakes.generator,
        interpreter=interpreter,
        executor_factory=lambda run_id: ActionExecutor(
            element_timeout_ms=0, settle_timeout_ms=10, assert_timeout_ms=0, retry_delay_ms=0, run_id=run_id
        ),
        artifacts=fakes.artifacts,
    )

    with TestClient(app) as test_client:
        yield test_client

    for name in SERVICES:
        if hasattr(app.state, name):
            delattr(app.state, name)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """Oracle configured, store reachable and a free slot means ready."""
        data = client.get("/health/ready").json()
        assert data["ready"] is True
        assert data["checks"] == {"oracle": True, "database": True, "run_capacity": True}

    def test_not_ready_without_oracle(self, client, fakes):
        fakes.generator.provider = None
        data = client.get("/health/ready").json()
        assert data["ready"] is False
        assert data["checks"]["oracle"] is False

    def test_not_ready_when_oracle_down(self, client, fakes):
        """A configured but unreachable oracle is not ready."""
        fakes.generator.provider = FakeProvider(available=False)
        assert client.get("/health/ready").json()["checks"]["oracle"] is False

    def test_config_shows_limiter(self, client):
        """The config endpoint reports run capacity."""
        data = client.get("/health/config").json()
        assert data["rate_limiter"]["max_concurrent"] == 1
        assert "OPENAI_API_KEY" not in data


class TestAnalyzeAndInterpret:

    def test_analyze_url(self, client, fakes):
        """The extracted context comes back with camelCase flags."""
        response = client.post("/analyze-url", json={"url": TARGET_URL})

        assert response.status_code == 200
        data = response.json()
        assert data["hasContactForm"] is True
        assert data["forms"][0]["inputs"][0]["name"] == "email"
        assert fakes.browsers.acquired == fakes.browsers.released == 1

    def test_analyze_bad_url(self, client, fakes):
        """Guard failures are 400 and never open a browser."""
        response = client.post("/analyze-url", json={"url": "ftp://example.com"})

        assert response.status_code == 400
        assert set(response.json()) == {"error", "details"}
        assert fakes.browsers.acquired == 0

    def test_generate_scenarios_without_forms(self, client, fakes):
        """A context without forms is a 404 and the oracle is not asked."""
        response = client.post(
            "/generate-scenarios",
            json={"pageContext": {"title": "About", "url": TARGET_URL, "forms": []}}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "no usable forms"
        assert fakes.generator.calls == 0

    def test_generate_scenarios(self, client, fakes):
        fakes.generator.scenarios = [Scenario(title="Submit empty form", steps=["Click submit"])]

        response = client.post("/generate-scenarios", json={"pageContext": CONTACT_CONTEXT})

        assert response.status_code == 200
        assert response.json()["scenarios"][0]["title"] == "Submit empty form"

    def test_interpret_scenario(self, client, fakes):
        fakes.generator.steps = ["Fill 'a@b.co' into 'email'", "Click submit"]

        response = client.post("/interpret-scenario", json={"userStory": "Sign up with my email"})

        assert response.json() == {"steps": ["Fill 'a@b.co' into 'email'", "Click submit"]}

    def test_interpret_steps(self, client):
        """Step previews are tagged actions; unknown verbs are unrecognized."""
        response = client.post(
            "/interpret-steps",
            json={"steps": ["Fill 'x@y.com' into 'email'", "Dance wildly"]}
        )

        actions = response.json()["actions"]
        assert actions[0]["kind"] == "fill"
        assert actions[0]["selectorHint"] == "email"
        assert actions[1]["kind"] == "unrecognized"

    def test_invalid_body(self, client):
        """Schema violations are 400 with the common error body."""
        response = client.post("/interpret-steps", json={"steps": []})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestRunTest:

    def test_full_run(self, client, fakes):
        """Email plus submit on a one-form page completes with two succeeded steps."""
        fakes.generator.scenarios = [Scenario(
            title="Submit empty form",
            steps=["Fill 'x@y.com' into 'email'", "Click submit"],
        )]

        response = client.post("/run-test", json={"url": TARGET_URL, "pageContext": CONTACT_CONTEXT})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        result = data["results"][0]
        assert result["overallStatus"] == "completed"
        assert [step["status"] for step in result["steps"]] == ["succeeded", "succeeded"]
        assert result["screenshot"].startswith("data:image/png;base64,")
        assert data["summary"]["passedSteps"] == 2

        artifact = client.get(f"/artifacts/{result['screenshotPath']}")
        assert artifact.status_code == 200
        assert artifact.headers["content-type"] == "image/png"

    def test_no_forms(self, client, fakes):
        """A page without forms is a 404 and the session is still released."""
        response = client.post(
            "/run-test",
            json={"url": TARGET_URL, "pageContext": {"title": "About", "url": TARGET_URL, "forms": []}}
        )

        assert response.status_code == 404
        assert fakes.generator.calls == 0
        assert fakes.browsers.acquired == fakes.browsers.released == 1

    def test_no_scenarios(self, client):
        response = client.post("/run-test", json={"url": TARGET_URL, "pageContext": CONTACT_CONTEXT})

        assert response.status_code == 200
        assert response.json()["message"] == "no scenarios generated"

    def test_capacity_exceeded(self, client, fakes):
        """A run over the concurrency cap is rejected with 429."""
        asyncio.run(fakes.limiter.acquire("busy", TARGET_URL))

        response = client.post("/run-test", json={"url": TARGET_URL})

        assert response.status_code == 429
        assert fakes.browsers.acquired == 0

    def test_missing_artifact(self, client):
        assert client.get("/artifacts/nope/screenshots/01-x.png").status_code == 404


class TestSavedScenarios:

    def test_create_list_and_duplicate(self, client):
        """First save is 201; saving the same scenario again is 200 with no data."""
        body = {"url": TARGET_URL, "user_story": "Submit without data", "steps": ["Click submit"]}

        created = client.post("/saved-scenarios", json=body)
        duplicate = client.post("/saved-scenarios", json=body)
        listed = client.get("/saved-scenarios", params={"url": TARGET_URL})

        assert created.status_code == 201
        assert created.json()["data"]["title"] == "Submit without data"
        assert duplicate.status_code == 200
        assert duplicate.json()["data"] is None
        assert [s["steps"] for s in listed.json()["data"]] == [["Click submit"]]

    def test_typed_secrets_not_logged(self, client, caplog):
        """A password inside a step never reaches the log."""
        caplog.set_level(logging.INFO)
        body = {
            "url": TARGET_URL,
            "user_story": "Log in",
            "steps": ["Fill 'Hunter2Secret!' into 'password'", "Click submit"],
        }

        response = client.post("/saved-scenarios", json=body)

        assert response.status_code == 201
        assert "Saving scenario" in caplog.text
        assert "Hunter2Secret!" not in caplog.text

    def test_steps_from_story(self, client, fakes):
        """Without steps, the oracle interprets the story."""
        fakes.generator.steps = ["Click submit"]

        response = client.post("/saved-scenarios", json={"user_story": "Just press send"})

        assert response.status_code == 201
        assert response.json()["data"]["steps"] == ["Click submit"]

    def test_no_steps_from_story(self, client):
        """A story the oracle cannot turn into steps is a 400."""
        response = client.post("/saved-scenarios", json={"user_story": "Make it nice"})

        assert response.status_code == 400
        assert "couldn't determine any steps" in response.json()["error"]

    def test_update(self, client):
        created = client.post(
            "/saved-scenarios",
            json={"url": TARGET_URL, "user_story": "Submit without data", "steps": ["Click submit"]}
        ).json()["data"]

        updated = client.put("/saved-scenarios", json={"id": created["id"], "steps": ["Click 'Send'"]})
        missing = client.put("/saved-scenarios", json={"id": 9999, "steps": ["Click submit"]})

        assert updated.json()["data"]["steps"] == ["Click 'Send'"]
        assert missing.status_code == 404


class TestRunSavedScenarios:

    def test_run_saved_by_id(self, client, fakes):
        """Saved scenarios run without asking the oracle."""
        saved = client.post(
            "/saved-scenarios",
            json={"url": TARGET_URL, "title": "Send", "user_story": "Press send", "steps": ["Click submit"]}
        ).json()["data"]

        response = client.post(
            "/run-test",
            json={"url": TARGET_URL, "pageContext": CONTACT_CONTEXT, "savedScenarioIds": [saved["id"]]}
        )

        assert response.status_code == 200
        assert response.json()["testPlan"][0]["title"] == "Send"
        assert fakes.generator.calls == 0

    def test_unknown_saved_id(self, client, fakes):
        response = client.post("/run-test", json={"url": TARGET_URL, "savedScenarioIds": [404]})

        assert response.status_code == 404
        assert fakes.browsers.acquired == 0
