"""API tests for guideline storage, evaluation, tracing and test runs."""

from fastapi.testclient import TestClient

from tests.helpers import make_guideline


def _store(client: TestClient, document: dict) -> dict:
    r = client.post("/api/guidelines/", json=document)
    assert r.status_code == 201, r.text
    return r.json()


def test_root(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["service"] == "Guidewalk"
    assert "api" in data


def test_health_and_metrics(client: TestClient, sample_guideline, nice_guideline):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"

    _store(client, sample_guideline)
    _store(client, nice_guideline)
    metrics = client.get("/api/metrics").json()
    assert metrics["guidelines_total"] == 2
    assert metrics["guidelines_legacy"] == 1
    assert metrics["guidelines_nice"] == 1
    assert metrics["test_pass_rate_percent"] is None


# -----------------------------------------------------------------------------
# Documents
# -----------------------------------------------------------------------------


def test_list_guidelines_empty(client: TestClient):
    r = client.get("/api/guidelines/")
    assert r.status_code == 200
    assert r.json() == []


def test_create_and_get_guideline(client: TestClient, sample_guideline):
    created = _store(client, sample_guideline)
    assert created == {
        "id": "nice-ng136-hypertension",
        "name": sample_guideline["name"],
        "version": sample_guideline["version"],
        "format": "legacy",
    }
    r = client.get("/api/guidelines/nice-ng136-hypertension")
    assert r.status_code == 200
    doc = r.json()
    assert doc["format"] == "legacy"
    assert doc["nodes"][0]["if"] == sample_guideline["nodes"][0]["if"]


def test_create_replaces_existing(client: TestClient, sample_guideline):
    _store(client, sample_guideline)
    sample_guideline["version"] = "NG136 (2024 draft)"
    _store(client, sample_guideline)
    listed = client.get("/api/guidelines/").json()
    assert len(listed) == 1
    assert listed[0]["version"] == "NG136 (2024 draft)"


def test_list_filter_by_format(client: TestClient, sample_guideline, nice_guideline):
    _store(client, sample_guideline)
    _store(client, nice_guideline)
    nice = client.get("/api/guidelines/", params={"format": "nice"}).json()
    assert [g["id"] for g in nice] == ["nice-ng136-hypertension-rules"]
    assert client.get("/api/guidelines/", params={"format": "flowchart"}).status_code == 422


def test_create_invalid_guideline(client: TestClient):
    r = client.post("/api/guidelines/", json={"name": "No id", "nodes": []})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "INVALID_GUIDELINE"


def test_get_missing_guideline(client: TestClient):
    assert client.get("/api/guidelines/nope").status_code == 404
    assert client.post("/api/guidelines/nope/evaluate", json={"inputs": {}}).status_code == 404


def test_delete_guideline(client: TestClient, sample_guideline):
    _store(client, sample_guideline)
    client.post("/api/guidelines/nice-ng136-hypertension/test-cases", json={"title": "x"})
    r = client.delete("/api/guidelines/nice-ng136-hypertension")
    assert r.status_code == 204
    assert client.get("/api/guidelines/nice-ng136-hypertension").status_code == 404
    assert client.get("/api/guidelines/nice-ng136-hypertension/test-cases").json() == []
    assert client.delete("/api/guidelines/nice-ng136-hypertension").status_code == 404


def test_validate_document(client: TestClient, sample_guideline):
    r = client.post("/api/guidelines/validate", json=sample_guideline)
    assert r.json() == {"valid": True, "errors": [], "warnings": []}

    broken = make_guideline(
        [
            {"id": "root", "if": "bp > 1", "then": "gone", "else_action": {"level": "info", "text": "x"}},
            {"id": "orphan", "then_action": {"level": "info", "text": "y"}},
        ],
        inputs=[{"id": "bp", "label": "BP", "type": "number"}],
    )
    data = client.post("/api/guidelines/validate", json=broken).json()
    assert data["valid"] is False
    assert [e["code"] for e in data["errors"]] == ["missing_node"]
    assert [w["code"] for w in data["warnings"]] == ["unreachable_node"]


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


def test_evaluate_stored_guideline(client: TestClient, sample_guideline):
    _store(client, sample_guideline)
    r = client.post(
        "/api/guidelines/nice-ng136-hypertension/evaluate",
        json={"inputs": {"systolic_bp": 150, "diastolic_bp": 95, "hypertension_confirmed": True, "age": 85, "qrisk": 12}},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["path"] == ["root", "clinic_bp", "confirmed", "treatment_threshold"]
    assert data["action"]["level"] == "advice"
    assert data["notes"] == [sample_guideline["nodes"][0]["notes"][0]["text"]]


def test_summary_stored_guideline(client: TestClient, sample_guideline):
    _store(client, sample_guideline)
    r = client.post(
        "/api/guidelines/nice-ng136-hypertension/summary",
        json={"inputs": {"systolic_bp": 150, "target_organ_damage": False}},
    )
    assert r.json() == {"summary": "Clinic systolic BP: 150 mmHg, Target organ damage: No"}


def test_evaluate_nice_guideline_is_unsupported(client: TestClient, nice_guideline):
    _store(client, nice_guideline)
    r = client.post("/api/guidelines/nice-ng136-hypertension-rules/evaluate", json={"inputs": {}})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "UNSUPPORTED_FORMAT"


def test_trace_nice_guideline(client: TestClient, nice_guideline):
    _store(client, nice_guideline)
    r = client.post("/api/guidelines/nice-ng136-hypertension-rules/trace", json={"path": ["n1", "n7", "n8"]})
    assert r.status_code == 200
    steps = r.json()["steps"]
    assert [s["edge_label"] for s in steps] == [None, "no", "yes"]
    assert steps[-1]["type"] == "action"

    bad = client.post("/api/guidelines/nice-ng136-hypertension-rules/trace", json={"path": ["n1", "n8"]})
    assert bad.status_code == 422
    assert bad.json()["detail"]["error"] == "INVALID_PATH"


def test_stateless_evaluate(client: TestClient, sample_guideline):
    r = client.post(
        "/api/evaluate/",
        json={"guideline": sample_guideline, "inputs": {"systolic_bp": 190, "diastolic_bp": 100, "emergency_signs": True}},
    )
    assert r.status_code == 200
    assert r.json()["path"] == ["root", "severe_bp"]
    assert r.json()["action"]["level"] == "urgent"

    s = client.post("/api/evaluate/summary", json={"guideline": sample_guideline, "inputs": {"age": 40.0}})
    assert s.json() == {"summary": "Age: 40 years"}


def test_stateless_evaluate_errors(client: TestClient):
    cyclic = make_guideline(
        [
            {"id": "root", "if": "true", "then": "a"},
            {"id": "a", "if": "true", "then": "root"},
        ]
    )
    r = client.post("/api/evaluate/", json={"guideline": cyclic, "inputs": {}})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "CYCLE_DETECTED"
    assert detail["details"]["path"] == ["root", "a"]

    no_root = make_guideline([{"id": "start", "then_action": {"level": "info", "text": "x"}}])
    r = client.post("/api/evaluate/", json={"guideline": no_root, "inputs": {}})
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "NODE_NOT_FOUND"

    r = client.post("/api/evaluate/", json={"guideline": {"nodes": []}, "inputs": {}})
    assert r.status_code == 400


# -----------------------------------------------------------------------------
# Test cases
# -----------------------------------------------------------------------------


def test_test_case_lifecycle(client: TestClient, sample_guideline, hypertension_cases):
    _store(client, sample_guideline)
    base = "/api/guidelines/nice-ng136-hypertension"
    ids = []
    for case in hypertension_cases:
        body = {k: v for k, v in case.items() if k != "id"}
        r = client.post(f"{base}/test-cases", json=body)
        assert r.status_code == 201
        ids.append(r.json()["id"])
    assert len(client.get(f"{base}/test-cases").json()) == len(hypertension_cases)

    single = client.post(f"{base}/test-cases/{ids[0]}/run").json()
    assert single["passed"] is True

    r = client.post(f"{base}/test")
    assert r.status_code == 200
    suite = r.json()
    assert suite["total"] == len(hypertension_cases)
    assert suite["failed"] == 0

    stored = client.get("/api/test-results/nice-ng136-hypertension").json()
    assert stored["passed"] == len(hypertension_cases)
    assert stored["run_at"] is not None
    assert client.get("/api/metrics").json()["test_pass_rate_percent"] == 100.0

    assert client.delete(f"{base}/test-cases/{ids[0]}").status_code == 204
    assert client.delete(f"{base}/test-cases/{ids[0]}").status_code == 404
    assert len(client.get(f"{base}/test-cases").json()) == len(hypertension_cases) - 1


def test_create_test_case_for_missing_guideline(client: TestClient):
    r = client.post("/api/guidelines/nope/test-cases", json={"title": "x"})
    assert r.status_code == 404


def test_run_tests_rejects_nice_guideline(client: TestClient, nice_guideline):
    _store(client, nice_guideline)
    r = client.post("/api/guidelines/nice-ng136-hypertension-rules/test")
    assert r.status_code == 400


def test_test_results_empty(client: TestClient):
    r = client.get("/api/test-results/unknown")
    assert r.status_code == 200
    assert r.json()["total"] == 0
    assert r.json()["run_at"] is None
