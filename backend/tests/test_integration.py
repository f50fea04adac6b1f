"""Integration tests: full workflow from catalog upload through the draft."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from draft_room.config import RoomConfig, room_config
from draft_room.main import app
from draft_room.services.catalog import clear_catalog
from draft_room.services.draft_session import initialize_session, reset_session


@pytest.fixture(autouse=True)
def clean_state():
    """Reset all state between tests."""
    clear_catalog()
    reset_session()
    yield
    clear_catalog()
    reset_session()


client = TestClient(app)


class TestFullWorkflow:
    def _upload_sample(self, headers=None):
        resp = client.post(
            "/api/catalog/upload",
            files={"file": ("rankings.csv", room_config.sample_catalog_path.read_bytes(), "text/csv")},
            headers=headers or {},
        )
        assert resp.status_code == 200
        return resp.json()

    def _small_draft(self, teams=2, bidding_rounds=1):
        resp = client.put(
            "/api/draft/settings",
            json={
                "total_budget": 100,
                "roster_size": 6,
                "bidding_rounds": bidding_rounds,
                "pick_timer": 60,
                "participant_count": teams,
            },
        )
        assert resp.status_code == 200

    def test_health(self):
        resp = client.get("/api/health")
        assert resp.json() == {"status": "ok"}

    def test_catalog_listing(self):
        assert self._upload_sample()["entity_count"] == 50

        resp = client.get("/api/catalog/entities", params={"category": "QB"})
        assert resp.status_code == 200
        assert resp.json()["count"] == 6

        resp = client.get("/api/catalog/entities/20")
        assert resp.json()["name"] == "Brock Bowers"
        assert resp.json()["drafted"] is False

        resp = client.get("/api/catalog/entities/999")
        assert resp.status_code == 404

    def test_auction_workflow(self):
        """Select -> bid -> complete -> roster -> undo."""
        self._upload_sample()

        resp = client.post("/api/draft/select", json={"entity_id": 1})
        assert resp.status_code == 200
        assert resp.json()["state"]["selection"]["entity_id"] == 1

        resp = client.post("/api/draft/bid", json={"participant_id": 3, "amount": 41})
        assert resp.status_code == 200

        resp = client.post("/api/draft/bid/complete")
        assert resp.status_code == 200
        state = resp.json()["state"]
        assert state["current_pick"] == 2
        assert state["drafted"] == [1]
        assert state["history"][0]["amount"] == 41

        resp = client.get("/api/draft/participants/3/roster")
        assert resp.status_code == 200
        data = resp.json()
        assert data["remaining_budget"] == 159
        wr1 = next(s for s in data["slots"] if s["id"] == "wr1")
        assert wr1["entity_id"] == 1

        resp = client.get("/api/catalog/entities", params={"category": "WR"})
        assert 1 not in [e["id"] for e in resp.json()["entities"]]

        resp = client.post("/api/draft/undo")
        assert resp.status_code == 200
        state = client.get("/api/draft/state").json()
        assert state["current_pick"] == 1
        assert state["history"] == []
        assert state["persistence_pending"] is False

    def test_eligibility(self):
        self._upload_sample()
        client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 50})

        resp = client.get("/api/draft/participants/1/eligibility")
        assert resp.json() == {"participant_id": 1, "can_bid": True, "max_bid": 147, "picks_still_needed": 4}

        resp = client.get("/api/draft/eligibility")
        assert resp.json()["bid_ceiling"] == 196
        assert len(resp.json()["participants"]) == 10

        resp = client.get("/api/draft/participants/99/eligibility")
        assert resp.status_code == 404

    def test_transition_to_turn_taking(self):
        self._upload_sample()
        self._small_draft()

        client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 30})
        resp = client.post("/api/draft/pick", json={"entity_id": 2, "participant_id": 2, "amount": 10})
        state = resp.json()["state"]
        assert state["phase"] == "turn_taking"
        assert state["turn_order"] == [2, 1]
        assert state["active_participant"] == 2

        resp = client.post("/api/draft/pick", json={"entity_id": 3, "participant_id": 1, "amount": 0})
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "not_on_the_clock"

        # turn-taking selections go to whoever is on the clock
        client.post("/api/draft/select", json={"entity_id": 3})
        resp = client.post("/api/draft/bid/complete")
        assert resp.json()["state"]["history"][-1]["participant_id"] == 2
        assert resp.json()["state"]["active_participant"] == 1

    def test_draft_validation(self):
        """Error cases map to 400 with the failure reason."""
        self._upload_sample()

        resp = client.post("/api/draft/pick", json={"entity_id": 999, "participant_id": 1, "amount": 10})
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "unknown_entity"

        resp = client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 500})
        assert resp.json()["detail"]["reason"] == "exceeds_budget"

        client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 10})
        resp = client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 2, "amount": 10})
        assert resp.json()["detail"]["reason"] == "already_drafted"

        resp = client.put("/api/draft/settings", json={"participant_count": 8})
        assert resp.status_code == 400
        assert resp.json()["detail"]["reason"] == "settings_locked"

        resp = client.post("/api/draft/bid", json={"participant_id": 1, "amount": 5})
        assert resp.json()["detail"]["reason"] == "no_selection"

    def test_host_token(self):
        initialize_session(RoomConfig(host_token="secret"))
        self._upload_sample(headers={"X-Host-Token": "secret"})

        resp = client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 10})
        assert resp.status_code == 403
        assert resp.json()["detail"]["reason"] == "not_authorized"

        resp = client.post(
            "/api/draft/pick",
            json={"entity_id": 1, "participant_id": 1, "amount": 10},
            headers={"X-Host-Token": "secret"},
        )
        assert resp.status_code == 200

        resp = client.post(
            "/api/catalog/upload",
            files={"file": ("rankings.csv", b"Position,Player\nQB,Someone\n", "text/csv")},
        )
        assert resp.status_code == 403

    def test_clock(self):
        self._upload_sample()
        self._small_draft()

        client.post("/api/draft/clock/start")
        resp = client.post("/api/draft/clock/tick", json={"seconds": 45})
        assert resp.json()["state"]["clock"] == {"time_remaining": 15, "running": True}

        resp = client.post("/api/draft/clock/tick", json={"seconds": 20})
        assert resp.json()["result"]["message"] == "Time expired"
        assert resp.json()["state"]["clock"]["running"] is False

        resp = client.post("/api/draft/clock/tick", json={"seconds": 1})
        assert resp.json()["result"]["changed"] is False

    def test_participant_rename_and_reset(self):
        self._upload_sample()
        resp = client.put("/api/draft/participants/4", json={"name": "Gridiron Gang"})
        assert resp.status_code == 200

        client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 4, "amount": 10})
        resp = client.post("/api/draft/reset")
        state = resp.json()["state"]
        assert state["history"] == []
        assert state["participants"][3]["name"] == "Gridiron Gang"
        assert state["participants"][3]["remaining_budget"] == 200

    def test_audit_trail(self):
        self._upload_sample()
        client.post("/api/draft/pick", json={"entity_id": 1, "participant_id": 1, "amount": 10})
        client.post("/api/draft/undo")

        resp = client.get("/api/draft/audit", params={"n": 5})
        assert [e["action"] for e in resp.json()] == ["undo_pick", "draft_pick"]

    def test_overrides_upload(self):
        self._upload_sample()
        csv_data = "RANK,POSITION,PLAYER,TEAM,BYE,AUC $,PROJ. PTS\n"
        csv_data += "2,WR,Ja'Marr Chase,CIN,10,61,360\n"
        resp = client.post(
            "/api/catalog/overrides",
            files={"file": ("mine.csv", csv_data.encode(), "text/csv")},
        )
        assert resp.status_code == 200
        assert resp.json()["overrides"][0] == {
            "entity_id": 1, "local_rank": 2, "local_value": 61.0, "local_points": 360.0,
        }

        resp = client.get("/api/catalog/entities/1")
        assert resp.json()["baseline_value"] == 57.0

    def test_export_draft_board(self):
        self._upload_sample()
        client.post("/api/draft/pick", json={"entity_id": 20, "participant_id": 2, "amount": 35})

        resp = client.get("/api/export/draft-board", params={"format": "csv"})
        assert resp.status_code == 200
        assert "text/csv" in resp.headers["content-type"]
        lines = resp.text.strip().splitlines()
        assert lines[0] == "Round,Pick,Player,Position,NFL Team,Team,Owner,Price"
        assert lines[1] == "1,1,Brock Bowers,TE,LV,Team 2,Owner 2,35"

        resp = client.get("/api/export/draft-board", params={"format": "xlsx"})
        assert resp.status_code == 200
        assert resp.content[:2] == b"PK"

        resp = client.get("/api/export/draft-board", params={"format": "pdf"})
        assert resp.status_code == 400

    def test_export_rosters(self):
        self._upload_sample()
        client.post("/api/draft/pick", json={"entity_id": 21, "participant_id": 5, "amount": 12})
        client.post("/api/draft/pick", json={"entity_id": 22, "participant_id": 5, "amount": 9})

        resp = client.get("/api/export/rosters")
        assert resp.status_code == 200
        lines = resp.text.strip().splitlines()
        assert lines[0] == "Team,Owner,Slot,Player,Position,NFL Team,Price"
        assert lines[1:] == [
            "Team 5,Owner 5,QB,Lamar Jackson,QB,BAL,12",
            "Team 5,Owner 5,BEN,Josh Allen,QB,BUF,9",
        ]

    def test_websocket_snapshot(self):
        self._upload_sample()
        with client.websocket_connect("/ws/draft") as ws:
            message = ws.receive_json()
            assert message["type"] == "snapshot"
            assert message["data"]["current_pick"] == 1
