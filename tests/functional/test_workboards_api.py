"""
API tests for the workboards module.
Tests workboard CRUD, visibility, execution, preview and Excel export end to end.
"""

import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient


def _query(entity_type="deals", **overrides):
    body = {
        "entity_type": entity_type,
        "columns": [
            {"id": "name", "field": "name", "label": "Deal", "type": "raw"},
            {"id": "value", "field": "value", "label": "Value", "type": "raw"},
            {"id": "stage", "field": "stage", "label": "Stage", "type": "raw"},
        ],
        "filters": [],
    }
    body.update(overrides)
    return body


def _board(**overrides):
    body = {
        "name": "Big Proposals",
        "description": "Proposals worth chasing",
        "entity_type": "deals",
        "columns": [
            {"id": "name", "field": "name", "label": "Deal", "type": "raw", "width": 200},
            {"id": "value", "field": "value", "label": "Value", "type": "raw", "format": "currency"},
            {"id": "days_in_stage", "field": "days_in_stage", "label": "Days", "type": "formula",
             "formula": "days_in_stage"},
        ],
        "filters": [{"field": "stage", "operator": "eq", "value": "proposal"}],
        "sort_column": "value",
        "sort_direction": "desc",
    }
    body.update(overrides)
    return body


def _ids(response):
    return [row["id"] for row in response.json()["items"]]


class TestAdhocQuery:
    """POST /api/workboards/query"""

    def test_proposals_over_threshold_sorted_by_value(self, client: TestClient, crm, headers):
        body = _query(
            filters=[
                {"field": "stage", "operator": "eq", "value": "proposal"},
                {"field": "value", "operator": "gte", "value": 50000},
            ],
            sort_column="value",
            sort_direction="desc",
            limit=20,
        )
        response = client.post("/api/workboards/query", json=body, headers=headers("rep-a1"))
        assert response.status_code == 200

        data = response.json()
        assert _ids(response) == ["deal-1", "deal-2"]
        assert [row["value"] for row in data["items"]] == [75000, 50000]
        assert data["total"] == 2
        assert data["hasMore"] is False
        assert data["page"] == 1 and data["limit"] == 20
        assert data["items"][0]["_provenance"]["source"] == "deals"
        assert [column["field"] for column in data["columns"]] == ["name", "value", "stage"]

    def test_empty_in_list_is_a_no_op(self, client: TestClient, crm, headers):
        body = _query(filters=[{"field": "stage", "operator": "in", "value": []}])
        response = client.post("/api/workboards/query", json=body, headers=headers("rep-a1"))
        assert response.status_code == 200
        assert response.json()["total"] == 5

    def test_unknown_fields_are_ignored(self, client: TestClient, crm, headers):
        body = _query(
            columns=[{"id": "x", "field": "password_hash", "label": "X", "type": "raw"}],
            filters=[{"field": "owner_id); DELETE FROM deals; --", "operator": "eq", "value": 1}],
            sort_column="nonexistent",
        )
        response = client.post("/api/workboards/query", json=body, headers=headers("rep-a1"))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 5
        assert data["columns"] == []
        assert "password_hash" not in data["items"][0]

    def test_out_of_range_integer_filter_is_dropped(self, client: TestClient, crm, headers):
        body = _query(
            filters=[
                {"field": "value", "operator": "gt", "value": 10**30},
                {"field": "stage", "operator": "eq", "value": "proposal"},
            ]
        )
        response = client.post("/api/workboards/query", json=body, headers=headers("rep-a1"))
        assert response.status_code == 200
        assert response.json()["total"] == 3

    def test_numeric_string_spin_filter_compares_as_number(self, client: TestClient, crm, headers):
        columns = [
            {"id": "name", "field": "name", "label": "Deal", "type": "raw"},
            {"id": "spin", "field": "spin_score", "label": "SPIN", "type": "formula", "formula": "spin_score"},
        ]
        body = _query(columns=columns, filters=[{"field": "spin_score", "operator": "gte", "value": "50"}])
        response = client.post("/api/workboards/query", json=body, headers=headers("rep-a1"))
        assert response.status_code == 200
        assert _ids(response) == ["deal-1"]

    def test_results_are_scoped_to_principal(self, client: TestClient, crm, headers):
        body = _query(filters=[{"field": "stage", "operator": "eq", "value": "proposal"}])
        rep_b = client.post("/api/workboards/query", json=body, headers=headers("rep-b")).json()
        admin_a = client.post("/api/workboards/query", json=body, headers=headers("admin-a")).json()

        assert [row["id"] for row in rep_b["items"]] == ["deal-8"]
        assert sorted(row["id"] for row in admin_a["items"]) == ["deal-1", "deal-2", "deal-3", "deal-6"]

    def test_pages_cover_total_exactly(self, client: TestClient, crm, headers):
        seen = []
        page = 1
        while True:
            body = _query(sort_column="id", page=page, limit=2)
            data = client.post("/api/workboards/query", json=body, headers=headers("admin-a")).json()
            seen.extend(row["id"] for row in data["items"])
            if not data["hasMore"]:
                break
            page += 1

        assert len(seen) == data["total"] == 7
        assert len(set(seen)) == 7

    def test_limit_is_clamped(self, client: TestClient, crm, headers):
        body = _query(limit=5000, page=-4)
        data = client.post("/api/workboards/query", json=body, headers=headers("rep-a1")).json()
        assert data["limit"] == 100
        assert data["page"] == 1

    def test_contacts_with_foreign_names(self, client: TestClient, crm, headers):
        body = {
            "entity_type": "contacts",
            "columns": [{"id": "company_name", "field": "company_name", "label": "Company", "type": "raw"}],
            "filters": [{"field": "company_name", "operator": "starts_with", "value": "umb"}],
        }
        data = client.post("/api/workboards/query", json=body, headers=headers("admin-a")).json()
        assert [row["company_name"] for row in data["items"]] == ["Umbrella"]

    def test_missing_principal_is_401(self, client: TestClient, crm):
        response = client.post("/api/workboards/query", json=_query())
        assert response.status_code == 401


class TestWorkboardCRUD:
    """Saved workboard configuration"""

    def test_list_includes_defaults(self, client: TestClient, crm, default_workboards, headers):
        response = client.get("/api/workboards", headers=headers("rep-a1"))
        assert response.status_code == 200
        boards = response.json()
        # defaults first, then by name
        assert [board["id"] for board in boards] == ["wb_discovery", "wb_pipeline", "wb_stale"]
        assert all(board["is_default"] for board in boards)

    def test_own_boards_listed_after_defaults(self, client: TestClient, crm, default_workboards, headers):
        client.post("/api/workboards", json=_board(name="Aardvark"), headers=headers("rep-a1"))
        boards = client.get("/api/workboards", headers=headers("rep-a1")).json()
        assert boards[-1]["name"] == "Aardvark"
        assert boards[0]["is_default"] is True

    def test_list_filters_by_entity_type(self, client: TestClient, crm, default_workboards, headers):
        response = client.get("/api/workboards", params={"entity_type": "contacts"}, headers=headers("rep-a1"))
        assert response.json() == []

    def test_create_and_read_back(self, client: TestClient, crm, headers):
        response = client.post("/api/workboards", json=_board(), headers=headers("rep-a1"))
        assert response.status_code == 201
        created = response.json()
        assert created["owner_id"] == "rep-a1"
        assert created["is_default"] is False

        fetched = client.get(f"/api/workboards/{created['id']}", headers=headers("rep-a1")).json()
        assert fetched["columns"] == created["columns"]
        assert fetched["filters"] == [{"field": "stage", "operator": "eq", "value": "proposal"}]
        assert fetched["columns"][2] == {
            "id": "days_in_stage", "field": "days_in_stage", "label": "Days", "type": "formula",
            "formula": "days_in_stage",
        }

        data = client.get(f"/api/workboards/{created['id']}/data", headers=headers("rep-a1")).json()
        assert [row["id"] for row in data["items"]] == ["deal-1", "deal-2", "deal-3"]
        assert data["items"][0]["days_in_stage"] == 20

    @pytest.mark.parametrize(
        "overrides",
        [
            {"columns": [{"id": "x", "field": "password_hash", "label": "X"}]},
            {"columns": [{"id": "x", "field": "x", "label": "X", "type": "formula", "formula": "rm_rf"}]},
            {"filters": [{"field": "stage", "operator": "like", "value": "x"}]},
            {"filters": [{"field": "stage", "operator": "eq", "value": "x" * 501}]},
            {"sort_column": "value; DROP TABLE deals"},
            {"entity_type": "invoices"},
            {"name": ""},
            {"is_default": True},
        ],
    )
    def test_invalid_configuration_is_422(self, client: TestClient, crm, headers, overrides):
        response = client.post("/api/workboards", json=_board(**overrides), headers=headers("rep-a1"))
        assert response.status_code == 422

    def test_update_own_board(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(), headers=headers("rep-a1")).json()

        response = client.patch(
            f"/api/workboards/{board['id']}",
            json={"name": "Renamed", "filters": []},
            headers=headers("rep-a1"),
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["filters"] == []
        assert response.json()["columns"] == board["columns"]

    @pytest.mark.parametrize(
        "cleared",
        [
            {"name": None},
            {"columns": None},
            {"filters": None},
            {"entity_type": None},
            {"is_shared": None},
            {"sort_direction": None},
        ],
    )
    def test_required_fields_cannot_be_nulled(self, client: TestClient, crm, headers, cleared):
        board = client.post("/api/workboards", json=_board(is_shared=True), headers=headers("rep-a1")).json()

        response = client.patch(f"/api/workboards/{board['id']}", json=cleared, headers=headers("rep-a1"))
        assert response.status_code == 422

        for user in ("rep-a1", "rep-a2"):
            listed = client.get("/api/workboards", headers=headers(user))
            assert listed.status_code == 200
            assert board["id"] in [item["id"] for item in listed.json()]
        stored = client.get(f"/api/workboards/{board['id']}", headers=headers("rep-a1")).json()
        assert stored["columns"] == board["columns"]
        assert stored["name"] == "Big Proposals"

    def test_optional_fields_can_be_cleared(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(), headers=headers("rep-a1")).json()

        response = client.patch(
            f"/api/workboards/{board['id']}",
            json={"description": None, "sort_column": None},
            headers=headers("rep-a1"),
        )
        assert response.status_code == 200
        assert response.json()["description"] is None
        assert response.json()["sort_column"] is None

    def test_empty_update_is_400(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(), headers=headers("rep-a1")).json()
        response = client.patch(f"/api/workboards/{board['id']}", json={}, headers=headers("rep-a1"))
        assert response.status_code == 400

    def test_cannot_modify_someone_elses_board(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(is_shared=True), headers=headers("rep-a1")).json()

        patch = client.patch(f"/api/workboards/{board['id']}", json={"name": "Mine now"}, headers=headers("rep-a2"))
        delete = client.delete(f"/api/workboards/{board['id']}", headers=headers("rep-a2"))
        assert patch.status_code == 403
        assert delete.status_code == 403

    def test_default_board_cannot_be_deleted_or_edited(self, client: TestClient, crm, default_workboards, headers):
        assert client.delete("/api/workboards/wb_pipeline", headers=headers("admin-a")).status_code == 403
        assert client.patch(
            "/api/workboards/wb_pipeline", json={"name": "Mine"}, headers=headers("admin-a")
        ).status_code == 403

    def test_delete_own_board(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(), headers=headers("rep-a1")).json()

        response = client.delete(f"/api/workboards/{board['id']}", headers=headers("rep-a1"))
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"/api/workboards/{board['id']}", headers=headers("rep-a1")).status_code == 404

    def test_duplicate_default_board(self, client: TestClient, crm, default_workboards, headers):
        response = client.post("/api/workboards/wb_stale/duplicate", headers=headers("rep-a2"))
        assert response.status_code == 201
        copy = response.json()
        assert copy["name"] == "Stale Deals (Copy)"
        assert copy["owner_id"] == "rep-a2"
        assert copy["is_shared"] is False
        assert copy["is_default"] is False

    def test_shared_boards_stay_inside_organization(self, client: TestClient, crm, headers):
        shared = client.post("/api/workboards", json=_board(is_shared=True), headers=headers("rep-a1")).json()
        private = client.post("/api/workboards", json=_board(name="Private"), headers=headers("rep-a1")).json()

        assert client.get(f"/api/workboards/{shared['id']}", headers=headers("rep-a2")).status_code == 200
        assert client.get(f"/api/workboards/{shared['id']}", headers=headers("rep-b")).status_code == 404
        assert client.get(f"/api/workboards/{private['id']}", headers=headers("rep-a2")).status_code == 404

    def test_shared_board_runs_with_viewers_access(self, client: TestClient, crm, headers):
        shared = client.post("/api/workboards", json=_board(is_shared=True), headers=headers("rep-a1")).json()

        data = client.get(f"/api/workboards/{shared['id']}/data", headers=headers("rep-a2")).json()
        assert [row["id"] for row in data["items"]] == ["deal-6", "deal-2"]


class TestDefaultBoards:
    """Execution of the seeded boards"""

    def test_pipeline_board(self, client: TestClient, crm, default_workboards, headers):
        data = client.get("/api/workboards/wb_pipeline/data", headers=headers("rep-a1")).json()

        assert [row["id"] for row in data["items"]] == ["deal-4", "deal-1", "deal-2", "deal-3"]
        by_id = {row["id"]: row for row in data["items"]}
        assert by_id["deal-1"]["sla_breach"] == 1
        assert by_id["deal-2"]["sla_breach"] == 0
        assert by_id["deal-1"]["spin_score"] == 100
        assert by_id["deal-1"]["company_name"] == "Initech"

    def test_discovery_board_applies_spin_filter_after_fetch(self, client: TestClient, crm, default_workboards, headers):
        data = client.get("/api/workboards/wb_discovery/data", headers=headers("rep-a1")).json()

        assert [row["id"] for row in data["items"]] == ["deal-4", "deal-2", "deal-3"]
        assert all(row["spin_score"] < 100 for row in data["items"])
        # total counts rows before the in-memory SPIN filter
        assert data["total"] == 4

    def test_stale_board_uses_activity_recency(self, client: TestClient, crm, default_workboards, headers):
        data = client.get("/api/workboards/wb_stale/data", headers=headers("rep-a1")).json()

        assert {row["id"] for row in data["items"]} == {"deal-3", "deal-4"}
        assert all(row["last_activity_days"] == 999 for row in data["items"])
        assert data["total"] == 2

    def test_query_string_sort_overrides_saved_sort(self, client: TestClient, crm, default_workboards, headers):
        response = client.get(
            "/api/workboards/wb_pipeline/data",
            params={"sort_column": "name", "sort_direction": "asc"},
            headers=headers("rep-a1"),
        )
        names = [row["name"] for row in response.json()["items"]]
        assert names == sorted(names)

    def test_unknown_sort_override_is_ignored(self, client: TestClient, crm, default_workboards, headers):
        response = client.get(
            "/api/workboards/wb_pipeline/data",
            params={"sort_column": "1; DROP TABLE deals"},
            headers=headers("rep-a1"),
        )
        assert response.status_code == 200
        assert response.json()["total"] == 4

    def test_missing_board_is_404(self, client: TestClient, crm, headers):
        assert client.get("/api/workboards/wb_missing/data", headers=headers("rep-a1")).status_code == 404


class TestPreviewAndExport:
    def test_preview_lists_values_separately(self, client: TestClient, crm, default_workboards, headers):
        response = client.get("/api/workboards/wb_pipeline/preview", headers=headers("rep-a1"))
        assert response.status_code == 200
        preview = response.json()

        for sql in (preview["count_sql"], preview["data_sql"]):
            assert "closed_won" not in sql
            assert "rep-a1" not in sql
        assert "closed_won" in preview["data_parameters"]
        assert "rep-a1" in preview["count_parameters"]
        assert preview["data_sql"].count("?") == len(preview["data_parameters"])

    def test_export_xlsx(self, client: TestClient, crm, default_workboards, headers):
        response = client.get("/api/workboards/wb_pipeline/export", headers=headers("rep-a1"))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "attachment; filename=Pipeline_Board_" in response.headers["content-disposition"]

        frame = pd.read_excel(io.BytesIO(response.content), engine="openpyxl")
        assert list(frame.columns) == [
            "Deal Name", "Company", "Value", "Stage", "SPIN Score", "Days in Stage", "SLA Breach", "Close Date",
        ]
        assert list(frame["Deal Name"]) == ["Initech Services", "Initech Expansion", "Initech Renewal", "Initech Pilot"]

    def test_export_board_with_reserved_sheet_characters(self, client: TestClient, crm, headers):
        body = _board(name="Q3/Q4 Pipeline: [EMEA]?")
        board = client.post("/api/workboards", json=body, headers=headers("rep-a1")).json()

        response = client.get(f"/api/workboards/{board['id']}/export", headers=headers("rep-a1"))
        assert response.status_code == 200

        sheets = pd.read_excel(io.BytesIO(response.content), engine="openpyxl", sheet_name=None)
        assert list(sheets) == ["Q3Q4 Pipeline EMEA"]
        assert list(sheets["Q3Q4 Pipeline EMEA"]["Deal"]) == ["Initech Expansion", "Initech Renewal", "Initech Pilot"]

    def test_export_requires_visibility(self, client: TestClient, crm, headers):
        board = client.post("/api/workboards", json=_board(), headers=headers("rep-a1")).json()
        response = client.get(f"/api/workboards/{board['id']}/export", headers=headers("rep-b"))
        assert response.status_code == 404
