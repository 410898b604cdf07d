"""API tests for step, answer and element routes."""

from fastapi.testclient import TestClient

from decisiontree import auth


def _create_step(client, **body):
    r = client.post("/api/steps/", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def _build_chain(client):
    root = _create_step(client, title="Do you travel often?")
    s1 = _create_step(client, title="Do you travel abroad?")
    s2 = _create_step(client, type="Result")
    a1 = client.post(f"/api/steps/{root['id']}/answers", json={"title": "Yes", "resulting_step_id": s1["id"]}).json()
    a2 = client.post(f"/api/steps/{s1['id']}/answers", json={"title": "Yes", "resulting_step_id": s2["id"]}).json()
    element = client.post("/api/elements/", json={"title": "Plans", "first_step_id": root["id"]}).json()
    return {"root": root, "s1": s1, "s2": s2, "a1": a1, "a2": a2, "element": element}


def test_root(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["service"] == "Decision Tree CMS"


def test_health(client: TestClient):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert "checks" in r.json()


def test_create_result_step_gets_default_title(client: TestClient):
    step = _create_step(client, type="Result")
    assert step["title"] == "Our recommendation"
    assert step["type"] == "Result"


def test_get_update_step(client: TestClient):
    step = _create_step(client, title="Old")
    r = client.put(f"/api/steps/{step['id']}", json={"title": "New", "hide_title": True})
    assert r.status_code == 200
    assert r.json()["title"] == "New"
    assert r.json()["hide_title"] is True
    assert client.get(f"/api/steps/{step['id']}").json()["title"] == "New"
    assert client.get("/api/steps/9999").status_code == 404


def test_pathway_endpoint(client: TestClient):
    c = _build_chain(client)
    r = client.get(f"/api/steps/{c['s2']['id']}/pathway")
    assert r.status_code == 200
    data = r.json()
    assert data["question_pathway"] == [c["s2"]["id"], c["s1"]["id"], c["root"]["id"]]
    assert data["answer_pathway"] == [c["a2"]["id"], c["a1"]["id"]]
    assert data["full_pathway"][0] == {"question": c["s2"]["id"]}
    assert data["full_pathway"][-1] == {"question": c["root"]["id"]}
    assert data["tree_origin_id"] == c["root"]["id"]
    assert data["position"] == 3
    assert data["cms_edit_link"].startswith(c["element"]["cms_edit_first_step_link"])


def test_cyclic_pathway_is_conflict(client: TestClient):
    x = _create_step(client, title="X")
    y = _create_step(client, title="Y")
    client.post(f"/api/steps/{x['id']}/answers", json={"title": "to y", "resulting_step_id": y["id"]})
    client.post(f"/api/steps/{y['id']}/answers", json={"title": "to x", "resulting_step_id": x["id"]})
    r = client.get(f"/api/steps/{x['id']}/pathway")
    assert r.status_code == 409


def test_orphans_and_initial(client: TestClient):
    c = _build_chain(client)
    lone = _create_step(client, title="Lonely")
    orphans = [s["id"] for s in client.get("/api/steps/orphans").json()]
    assert orphans == [lone["id"]]
    initial = [s["id"] for s in client.get("/api/steps/initial").json()]
    assert initial == [c["root"]["id"], lone["id"]]


def test_list_steps_summary(client: TestClient):
    c = _build_chain(client)
    rows = client.get("/api/steps/").json()
    root_row = next(r for r in rows if r["ID"] == c["root"]["id"])
    assert root_row["Answers"] == "Yes => Do you travel abroad?<br/>"


def test_answers_order_and_optionset(client: TestClient):
    q = _create_step(client, title="Pick one")
    ids = [
        client.post(f"/api/steps/{q['id']}/answers", json={"title": t}).json()["id"]
        for t in ("A", "B", "C")
    ]
    r = client.put(f"/api/steps/{q['id']}/answers/order", json={"answer_ids": list(reversed(ids))})
    assert r.status_code == 200
    assert [a["title"] for a in r.json()] == ["C", "B", "A"]
    options = client.get(f"/api/steps/{q['id']}/answers-optionset").json()
    assert list(options["options"].values()) == ["C", "B", "A"]
    bad = client.put(f"/api/steps/{q['id']}/answers/order", json={"answer_ids": [9999]})
    assert bad.status_code == 400


def test_answer_to_missing_step_is_rejected(client: TestClient):
    q = _create_step(client, title="Q")
    r = client.post(f"/api/steps/{q['id']}/answers", json={"title": "Nope", "resulting_step_id": 9999})
    assert r.status_code == 400


def test_delete_blocked_then_cascades(client: TestClient):
    c = _build_chain(client)
    assert client.delete(f"/api/steps/{c['s1']['id']}").status_code == 409
    assert client.delete(f"/api/answers/{c['a2']['id']}").status_code == 409

    assert client.delete(f"/api/steps/{c['s2']['id']}").status_code == 204
    assert client.get(f"/api/answers/{c['a2']['id']}").json()["resulting_step_id"] is None

    assert client.delete(f"/api/steps/{c['s1']['id']}").status_code == 204
    assert client.get(f"/api/answers/{c['a2']['id']}").status_code == 404


def test_cms_fields_endpoint(client: TestClient):
    c = _build_chain(client)
    r = client.get(f"/api/steps/{c['s1']['id']}/cms-fields")
    assert r.status_code == 200
    fields = {f["name"]: f for f in r.json()}
    assert fields["ParentAnswerTitle"]["value"] == "Do you travel often? - Yes"
    assert fields["Tree"]["value"]["answers"][0]["resulting_step"]["current"] is True


def test_seed_sample_is_idempotent(client: TestClient):
    first = client.post("/api/elements/seed-sample")
    assert first.status_code == 201
    second = client.post("/api/elements/seed-sample")
    assert second.json()["id"] == first.json()["id"]
    assert client.get("/api/steps/orphans").json() == []
    metrics = client.get("/api/metrics").json()
    assert metrics["steps"] == 5
    assert metrics["result_steps"] == 3
    assert metrics["answers"] == 4


def test_element_crud(client: TestClient):
    step = _create_step(client, title="First")
    r = client.post("/api/elements/", json={"title": "Tree", "first_step_id": step["id"]})
    assert r.status_code == 201
    element = r.json()
    assert element["cms_edit_first_step_link"].endswith(f"/FirstStep/item/{step['id']}")
    r = client.put(f"/api/elements/{element['id']}", json={"first_step_id": None})
    assert r.json()["cms_edit_first_step_link"] is None
    assert client.post("/api/elements/", json={"title": "Bad", "first_step_id": 9999}).status_code == 400
    assert client.delete(f"/api/elements/{element['id']}").status_code == 204
    assert client.get(f"/api/elements/{element['id']}").status_code == 404


def test_api_key_members(client: TestClient, monkeypatch):
    monkeypatch.setattr(auth, "API_KEY_ENV", "admin-key")
    monkeypatch.setattr(auth, "VIEWER_API_KEY_ENV", "viewer-key")

    assert client.get("/api/steps/").status_code == 401
    assert client.get("/api/steps/", headers={"X-API-Key": "wrong"}).status_code == 403
    assert client.get("/api/health").status_code == 200

    r = client.post("/api/steps/", json={"title": "Q"}, headers={"X-API-Key": "admin-key"})
    assert r.status_code == 201
    step_id = r.json()["id"]

    viewer = {"X-API-Key": "viewer-key"}
    assert client.get(f"/api/steps/{step_id}", headers=viewer).status_code == 403
    assert client.delete(f"/api/steps/{step_id}", headers=viewer).status_code == 403
    assert client.get(f"/api/steps/{step_id}", headers={"Authorization": "Bearer admin-key"}).status_code == 200


def test_update_answer(client: TestClient):
    q = _create_step(client, title="Q")
    target = _create_step(client, title="Next")
    answer = client.post(f"/api/steps/{q['id']}/answers", json={"title": "Maybe"}).json()
    r = client.put(f"/api/answers/{answer['id']}", json={"title": "Yes", "resulting_step_id": target["id"]})
    assert r.status_code == 200
    assert r.json()["title"] == "Yes"
    assert r.json()["resulting_step_id"] == target["id"]
    # Re-sending the same resulting step is not a second parent
    r = client.put(f"/api/answers/{answer['id']}", json={"resulting_step_id": target["id"]})
    assert r.status_code == 200


def test_update_answer_rejects_invalid_resulting_step(client: TestClient):
    q = _create_step(client, title="Q")
    answer = client.post(f"/api/steps/{q['id']}/answers", json={"title": "Loop"}).json()
    assert client.put(f"/api/answers/{answer['id']}", json={"resulting_step_id": q["id"]}).status_code == 400
    assert client.put(f"/api/answers/{answer['id']}", json={"resulting_step_id": 9999}).status_code == 400
    assert client.get(f"/api/answers/{answer['id']}").json()["resulting_step_id"] is None


def test_update_answer_null_sort_keeps_position(client: TestClient):
    q = _create_step(client, title="Q")
    answer = client.post(f"/api/steps/{q['id']}/answers", json={"title": "A"}).json()
    r = client.put(f"/api/answers/{answer['id']}", json={"sort": None, "title": "B"})
    assert r.status_code == 200
    assert r.json()["sort"] == answer["sort"]
    assert r.json()["title"] == "B"


def test_step_cannot_get_second_parent_answer(client: TestClient):
    c = _build_chain(client)
    other = _create_step(client, title="Other question")
    r = client.post(f"/api/steps/{other['id']}/answers", json={"title": "Also", "resulting_step_id": c["s1"]["id"]})
    assert r.status_code == 400
    answer = client.post(f"/api/steps/{other['id']}/answers", json={"title": "Also"}).json()
    r = client.put(f"/api/answers/{answer['id']}", json={"resulting_step_id": c["s2"]["id"]})
    assert r.status_code == 400
    # Nor can an answer lead to a tree's first step
    r = client.post(f"/api/steps/{other['id']}/answers", json={"title": "Root", "resulting_step_id": c["root"]["id"]})
    assert r.status_code == 400


def test_element_first_step_must_be_initial(client: TestClient):
    c = _build_chain(client)
    r = client.post("/api/elements/", json={"title": "Mid tree", "first_step_id": c["s1"]["id"]})
    assert r.status_code == 400
    result = _create_step(client, type="Result")
    assert client.post("/api/elements/", json={"title": "Result", "first_step_id": result["id"]}).status_code == 400
    r = client.put(f"/api/elements/{c['element']['id']}", json={"first_step_id": c["s2"]["id"]})
    assert r.status_code == 400
