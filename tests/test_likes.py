import pytest


def test_video_likes_scenario(make_client):
    client = make_client("videos")
    assert client.post("/videos", json={"videoId": "v1", "title": "t"}).status_code == 201

    first = client.patch("/videos/v1/likes")
    assert first.status_code == 200
    assert first.json()["likes"] == 1
    second = client.patch("/videos/v1/likes")
    assert second.json()["likes"] == 2

    doc = client.get("/videos/v1").json()
    assert doc["likes"] == 2
    assert doc["title"] == "t"


@pytest.mark.parametrize("service,key_field", [("videos", "videoId"), ("comments", "commentId")])
def test_increment_adds_to_existing_counter(make_client, service, key_field):
    client = make_client(service)
    client.post(f"/{service}", json={key_field: "x", "likes": 10})

    for _ in range(5):
        assert client.patch(f"/{service}/x/likes").status_code == 200

    assert client.get(f"/{service}/x").json()["likes"] == 15


@pytest.mark.parametrize("service", ["videos", "comments"])
def test_increment_missing_key_is_404(make_client, service):
    client = make_client(service)
    resp = client.patch(f"/{service}/ghost/likes")
    assert resp.status_code == 404
    assert resp.json()["detail"].endswith("not found")
