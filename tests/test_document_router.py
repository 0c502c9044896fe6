class TestDocumentRoutes:
    def test_create_and_get(self, client):
        response = client.post("/api/documents", json={"content": "The moon orbits the earth.", "metadata": {"topic": "space"}})

        assert response.status_code == 201
        created = response.json()
        assert created["content"] == "The moon orbits the earth."
        assert created["metadata"]["topic"] == "space"
        assert created["created"] == created["metadata"]["timestamp"]

        fetched = client.get(f"/api/documents/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json() == created

    def test_create_with_taken_id_conflicts(self, client):
        assert client.post("/api/documents", json={"id": "same", "content": "a"}).status_code == 201

        response = client.post("/api/documents", json={"id": "same", "content": "b"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DOCUMENT_CONFLICT"

    def test_create_rejects_empty_content(self, client):
        response = client.post("/api/documents", json={"content": ""})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]

    def test_batch(self, client):
        response = client.post("/api/documents/batch", json=[{"content": "one"}, {"id": "two", "content": "two"}])

        assert response.status_code == 201
        body = response.json()
        assert body["count"] == 2
        assert body["ids"][1] == "two"

    def test_batch_keeps_metadata(self, client):
        response = client.post("/api/documents/batch", json=[{"id": "tagged", "content": "one", "metadata": {"source": "wiki"}}])

        assert response.status_code == 201
        assert client.get("/api/documents/tagged").json()["metadata"]["source"] == "wiki"

    def test_get_missing(self, client):
        response = client.get("/api/documents/missing")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Document with id missing not found"

    def test_update(self, client):
        created = client.post("/api/documents", json={"content": "old", "metadata": {"a": 1}}).json()

        response = client.put(f"/api/documents/{created['id']}", json={"metadata": {"b": 2}})

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "old"
        assert body["metadata"]["a"] == 1
        assert body["metadata"]["b"] == 2
        assert body["updated"] is not None

    def test_delete(self, client):
        created = client.post("/api/documents", json={"content": "bye"}).json()

        assert client.delete(f"/api/documents/{created['id']}").status_code == 204
        assert client.get(f"/api/documents/{created['id']}").status_code == 404
        assert client.delete(f"/api/documents/{created['id']}").status_code == 404

    def test_search(self, client):
        client.post("/api/documents/batch", json=[{"id": "a", "content": "green apples"}, {"id": "b", "content": "blue ocean"}])

        response = client.post("/api/documents/search", json={"query": "green apples", "limit": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["query"] == "green apples"
        assert body["total"] == 1
        assert body["results"][0]["document"]["id"] == "a"
        assert 0.0 <= body["results"][0]["score"] <= 1.0

    def test_search_rejects_blank_query_and_bad_limit(self, client):
        assert client.post("/api/documents/search", json={"query": "   "}).status_code == 400
        assert client.post("/api/documents/search", json={"query": "x", "limit": 0}).status_code == 400

    def test_list_and_stats(self, client):
        client.post("/api/documents/batch", json=[{"content": f"doc {i}"} for i in range(3)])

        listing = client.get("/api/documents", params={"limit": 2, "offset": 0}).json()
        assert len(listing["documents"]) == 2
        assert listing["total"] == 3
        assert (listing["limit"], listing["offset"]) == (2, 0)

        stats = client.get("/api/documents/stats").json()
        assert stats["name"] == "documents"
        assert stats["count"] == 3

    def test_clear(self, client):
        client.post("/api/documents", json={"content": "temporary"})

        assert client.delete("/api/documents").status_code == 204
        assert client.get("/api/documents/stats").json()["count"] == 0

    def test_health(self, client, fake_chroma):
        assert client.get("/api/documents/health").json()["status"] == "healthy"

        fake_chroma.down = True
        response = client.get("/api/documents/health")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "VECTOR_STORE_HEALTH_CHECK_ERROR"

    def test_store_down_maps_to_500(self, client, fake_chroma):
        fake_chroma.down = True

        response = client.post("/api/documents", json={"content": "x"})

        assert response.status_code == 500
        assert response.json()["error"]["code"].startswith("VECTOR_STORE_")


class TestAuthAndRouting:
    def test_api_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setenv("API_SERVER_API_KEY", "s3cret")

        denied = client.get("/api/documents/stats")
        assert denied.status_code == 401
        assert denied.json()["error"]["code"] == "UNAUTHORIZED"

        allowed = client.get("/api/documents/stats", headers={"X-Api-Key": "s3cret"})
        assert allowed.status_code == 200

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Route GET /api/nothing-here not found"
