"""End-to-end tests for the HTTP API on the memory backend."""
import pytest
from fastapi.testclient import TestClient

from campusvote.dependencies import Services, build_memory_services
from campusvote.errors import PersistenceError
from campusvote.main import create_app
from campusvote.storage import MemoryCatalog, MemoryDirectory, MemorySettings, MemoryVoteStore

ADMIN = ("admin", "adminpass")


@pytest.fixture
def client():
    app = create_app(
        services=build_memory_services(voting_enabled=True),
        admin_username=ADMIN[0],
        admin_password=ADMIN[1],
    )
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def admin_headers(client: TestClient) -> dict:
    r = client.post("/auth/admin/login", data={"username": ADMIN[0], "password": ADMIN[1]})
    assert r.status_code == 200
    return bearer(r.json()["access_token"])


def student_headers(client: TestClient, student_id: str, department: str = "Engineering") -> dict:
    r = client.post(
        "/auth/register",
        json={
            "student_id": student_id,
            "first_name": "Sam",
            "last_name": "Student",
            "department": department,
            "password": "password1",
        },
    )
    assert r.status_code == 201, r.text
    r = client.post("/auth/login", data={"student_id": student_id, "password": "password1"})
    assert r.status_code == 200
    return bearer(r.json()["access_token"])


@pytest.fixture
def ballot(client: TestClient) -> dict:
    admin = admin_headers(client)
    president = client.post("/election/positions", json={"name": "President"}, headers=admin).json()
    secretary = client.post("/election/positions", json={"name": "Secretary"}, headers=admin).json()
    alice = client.post(
        "/election/candidates",
        json={"position_id": president["id"], "name": "Alice"},
        headers=admin,
    ).json()
    bob = client.post(
        "/election/candidates",
        json={"position_id": president["id"], "name": "Bob"},
        headers=admin,
    ).json()
    carol = client.post(
        "/election/candidates",
        json={"position_id": secretary["id"], "name": "Carol"},
        headers=admin,
    ).json()
    r = client.post(
        "/election/verified-ids", json={"student_ids": ["S1", "S2", "S3"]}, headers=admin
    )
    assert r.json() == {"added": 3, "submitted": 3}
    return {
        "admin": admin,
        "president": president["id"],
        "secretary": secretary["id"],
        "alice": alice["id"],
        "bob": bob["id"],
        "carol": carol["id"],
    }


def test_health(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_cast_and_results(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    body = {"position_id": ballot["president"], "candidate_id": ballot["alice"]}

    r = client.post("/vote/cast", json=body, headers=s1)
    assert r.status_code == 201
    assert r.json()["vote"]["voter_id"] == "S1"

    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["bob"]},
        headers=s1,
    )
    assert r.status_code == 409
    assert r.json() == {
        "code": "duplicate_vote",
        "detail": "You have already voted for this position.",
        "retryable": False,
    }

    r = client.get(f"/vote/check/{ballot['president']}", headers=s1)
    assert r.json() == {
        "position_id": ballot["president"],
        "has_voted": True,
        "candidate_id": ballot["alice"],
    }
    assert client.get(f"/vote/check/{ballot['secretary']}", headers=s1).json()["has_voted"] is False
    assert len(client.get("/vote/mine", headers=s1).json()) == 1

    r = client.get(f"/results/{ballot['president']}", headers=s1)
    assert r.status_code == 200
    tallies = [(c["name"], c["votes"]) for c in r.json()["candidates"]]
    assert tallies == [("Alice", 1), ("Bob", 0)]
    assert client.get("/results/missing", headers=s1).status_code == 404
    assert len(client.get("/results", headers=s1).json()) == 2


def test_voter_id_comes_from_token(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["alice"], "voter_id": "S2"},
        headers=s1,
    )
    assert r.status_code == 201
    assert r.json()["vote"]["voter_id"] == "S1"


def test_cast_errors(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")

    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["carol"]},
        headers=s1,
    )
    assert r.status_code == 400
    assert r.json()["code"] == "candidate_mismatch"

    r = client.post("/vote/cast", json={"position_id": "nope", "candidate_id": ballot["alice"]}, headers=s1)
    assert r.status_code == 404
    assert r.json()["code"] == "position_unavailable"

    r = client.post("/vote/cast", json={"position_id": ballot["president"]}, headers=s1)
    assert r.status_code == 422

    r = client.post("/vote/cast", json={"position_id": ballot["president"], "candidate_id": ballot["alice"]})
    assert r.status_code == 401

    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["alice"]},
        headers=ballot["admin"],
    )
    assert r.status_code == 403
    assert r.json()["code"] == "voter_not_eligible"


def test_voting_switch(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    r = client.put("/election/voting", json={"voting_enabled": False}, headers=ballot["admin"])
    assert r.json() == {"voting_enabled": False}
    assert client.get("/election/voting").json() == {"voting_enabled": False}

    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["alice"]},
        headers=s1,
    )
    assert r.status_code == 403
    assert r.json()["code"] == "voting_closed"


def test_closed_position(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    r = client.patch(
        f"/election/positions/{ballot['president']}/status",
        json={"is_open": False},
        headers=ballot["admin"],
    )
    assert r.json()["is_open"] is False

    r = client.post(
        "/vote/cast",
        json={"position_id": ballot["president"], "candidate_id": ballot["alice"]},
        headers=s1,
    )
    assert r.json()["code"] == "position_unavailable"


def test_admin_endpoints_need_admin(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    assert client.post("/election/positions", json={"name": "X"}, headers=s1).status_code == 403
    assert client.post("/election/reset-votes", headers=s1).status_code == 403
    assert client.post("/election/reset-votes").status_code == 401


def test_registration_rules(client: TestClient, ballot: dict) -> None:
    student_headers(client, "S1")
    r = client.post(
        "/auth/register",
        json={"student_id": "S1", "first_name": "A", "last_name": "B",
              "department": "Art", "password": "password1"},
    )
    assert r.status_code == 400
    r = client.post(
        "/auth/register",
        json={"student_id": "S99", "first_name": "A", "last_name": "B",
              "department": "Art", "password": "password1"},
    )
    assert r.status_code == 400
    r = client.post("/auth/login", data={"student_id": "S1", "password": "wrong-pass"})
    assert r.status_code == 401


def test_reset_and_participation(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1", "Engineering")
    student_headers(client, "S2", "Engineering")
    student_headers(client, "S3", "Engineering")
    body = {"position_id": ballot["president"], "candidate_id": ballot["alice"]}
    assert client.post("/vote/cast", json=body, headers=s1).status_code == 201

    r = client.get("/results/participation/departments", headers=s1)
    assert r.json() == [{"department": "Engineering", "registered": 3, "percentage": 33}]
    stats = client.get("/results/stats", headers=s1).json()
    assert stats == {"registered_voters": 3, "positions": 2, "candidates": 3, "votes_cast": 1}

    r = client.post("/election/reset-votes", headers=ballot["admin"])
    assert r.status_code == 200
    assert client.get("/results/stats", headers=s1).json()["votes_cast"] == 0
    assert client.post("/vote/cast", json=body, headers=s1).status_code == 201


def test_dashboard_websocket_receives_vote_events(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    with client.websocket_connect("/ws") as ws:
        r = client.post(
            "/vote/cast",
            json={"position_id": ballot["president"], "candidate_id": ballot["bob"]},
            headers=s1,
        )
        assert r.status_code == 201
        message = ws.receive_json()

    assert message == {
        "type": "vote_cast",
        "data": {"position_id": ballot["president"], "candidate_id": ballot["bob"]},
    }


def test_activity_log_records_admin_and_voter_actions(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    body = {"position_id": ballot["president"], "candidate_id": ballot["alice"]}
    assert client.post("/vote/cast", json=body, headers=s1).status_code == 201
    client.put("/election/voting", json={"voting_enabled": False}, headers=ballot["admin"])
    client.post("/election/reset-votes", headers=ballot["admin"])

    r = client.get("/election/activity", params={"limit": 50}, headers=ballot["admin"])
    assert r.status_code == 200
    actions = [entry["action"] for entry in r.json()]
    assert actions == [
        "Votes Reset",
        "Voting Disabled",
        "Vote Cast",
        "Voter Registered",
        "Verified IDs Added",
        "Candidate Added",
        "Candidate Added",
        "Candidate Added",
        "Position Created",
        "Position Created",
    ]

    vote_entry = r.json()[2]
    assert vote_entry["actor_id"] == "S1"
    assert ballot["alice"] not in vote_entry["details"]

    r = client.get("/election/activity", params={"limit": 2}, headers=ballot["admin"])
    assert [entry["action"] for entry in r.json()] == ["Votes Reset", "Voting Disabled"]


def test_activity_log_is_admin_only(client: TestClient, ballot: dict) -> None:
    s1 = student_headers(client, "S1")
    assert client.get("/election/activity", headers=s1).status_code == 403
    assert client.get("/election/activity").status_code == 401


class UnavailableVoteStore(MemoryVoteStore):
    async def insert(self, record):
        raise PersistenceError("Vote storage is unreachable.")


def test_storage_outage_is_retryable_503() -> None:
    services = Services(
        settings=MemorySettings(True),
        catalog=MemoryCatalog(),
        directory=MemoryDirectory(),
        store=UnavailableVoteStore(),
    )
    app = create_app(services=services, admin_username=ADMIN[0], admin_password=ADMIN[1])
    with TestClient(app) as c:
        admin = admin_headers(c)
        president = c.post("/election/positions", json={"name": "President"}, headers=admin).json()
        alice = c.post(
            "/election/candidates",
            json={"position_id": president["id"], "name": "Alice"},
            headers=admin,
        ).json()
        c.post("/election/verified-ids", json={"student_ids": ["S1"]}, headers=admin)
        s1 = student_headers(c, "S1")

        r = c.post(
            "/vote/cast",
            json={"position_id": president["id"], "candidate_id": alice["id"]},
            headers=s1,
        )
        assert r.status_code == 503
        assert r.json() == {
            "code": "persistence_error",
            "detail": "Vote storage is unreachable.",
            "retryable": True,
        }
        assert c.get("/vote/mine", headers=s1).json() == []
