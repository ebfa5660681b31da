from src.featureboard.observability.metrics import REQUEST_LATENCY, UNMATCHED_ROUTE


def _path_labels():
    labels = set()
    for metric in REQUEST_LATENCY.collect():
        for sample in metric.samples:
            if sample.name.endswith("_count"):
                labels.add(sample.labels["path"])
    return labels


def test_metrics_endpoint_exposes_histogram(client):
    r = client.get("/health")
    assert r.status_code == 200

    m = client.get("/metrics")
    assert m.status_code == 200
    body = m.text
    assert "# TYPE featureboard_request_latency_seconds histogram" in body
    assert "featureboard_request_latency_seconds_count" in body


def test_llm_counter_records_fallback(client):
    proj = client.post("/projects", json={"name": "Alpha"}).json()
    r = client.post(f"/projects/{proj['id']}/ai/suggest-features", json={"perspective": "ux"})
    assert r.status_code == 200

    body = client.get("/api/metrics").text
    assert 'featureboard_llm_requests_total{operation="suggest_features",outcome="no_credentials"}' in body


def test_latency_labelled_by_route_template(client):
    proj = client.post("/projects", json={"name": "Alpha"}).json()
    assert client.get(f"/projects/{proj['id']}/features").status_code == 200
    assert client.get(f"/api/projects/{proj['id']}").status_code == 200

    labels = _path_labels()
    assert "/projects/{project_id}/features" in labels
    assert "/api/projects/{project_id}" in labels
    assert f"/projects/{proj['id']}/features" not in labels


def test_unknown_paths_share_one_label(client):
    for i in range(50):
        assert client.get(f"/nope-{i}").status_code == 404
    assert client.get("/projects/abc/garbage").status_code == 404

    labels = _path_labels()
    assert UNMATCHED_ROUTE in labels
    assert not any(label.startswith("/nope") for label in labels)
    assert "/projects/abc/garbage" not in labels
