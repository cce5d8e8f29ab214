"""Operator endpoint tests."""

import pytest
from sqlalchemy import text

from soundbox.db.models import Store, Transaction

from conftest import create_heartbeat_table


def test_requires_admin_key(client, store):
    assert client.get("/admin/stores").status_code == 401
    assert client.get("/admin/stores", headers={"x-admin-key": "wrong"}).status_code == 401


def test_unset_admin_key_rejects_everything(client, monkeypatch):
    from soundbox import config

    monkeypatch.setattr(config, "ADMIN_KEY", "")
    assert client.get("/admin/stores", headers={"x-admin-key": ""}).status_code == 401


class TestStores:
    def test_register_generates_token(self, client, admin_headers, db_session):
        response = client.post("/admin/stores", json={"store_id": "S9", "name": " Kopi Nine "}, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Kopi Nine"
        assert data["device_token"].startswith("sb_")
        assert len(data["device_token"]) == 35

        store = db_session.query(Store).filter_by(store_id="S9").one()
        assert store.enabled is True

    def test_update_keeps_existing_token(self, client, admin_headers, store):
        response = client.post("/admin/stores", json={"store_id": "S1", "name": "Renamed"}, headers=admin_headers)
        assert response.json()["device_token"] == "tok123"
        assert response.json()["name"] == "Renamed"

    def test_update_rotates_token(self, client, admin_headers, store):
        response = client.post(
            "/admin/stores", json={"store_id": "S1", "name": "Store One", "device_token": "newtok"}, headers=admin_headers
        )
        assert response.json()["device_token"] == "newtok"

    @pytest.mark.parametrize("body", [{"name": "x"}, {"store_id": "S1"}, {"store_id": "bad id!", "name": "x"}])
    def test_register_validation(self, client, admin_headers, body):
        assert client.post("/admin/stores", json=body, headers=admin_headers).status_code == 400

    def test_list(self, client, admin_headers, store, disabled_store):
        stores = client.get("/admin/stores", headers=admin_headers).json()["stores"]
        assert {s["store_id"]: s["enabled"] for s in stores} == {"S1": True, "S2": False}

    def test_disable_then_enable(self, client, admin_headers, store, api_headers):
        assert client.post("/admin/stores/disable", json={"store_id": "S1"}, headers=admin_headers).json() == {"ok": True}
        blocked = client.post("/qris", json={"store_id": "S1", "amount": 100}, headers=api_headers)
        assert blocked.status_code == 403

        client.post("/admin/stores/enable", json={"store_id": "S1"}, headers=admin_headers)
        allowed = client.post("/qris", json={"store_id": "S1", "amount": 100}, headers=api_headers)
        assert allowed.status_code == 200

    def test_enable_unknown_store(self, client, admin_headers):
        assert client.post("/admin/stores/enable", json={"store_id": "ghost"}, headers=admin_headers).status_code == 404

    def test_delete(self, client, admin_headers, store, db_session):
        assert client.post("/admin/stores/delete", json={"store_id": "S1"}, headers=admin_headers).status_code == 200
        assert db_session.query(Store).count() == 0
        assert client.post("/admin/stores/delete", json={}, headers=admin_headers).status_code == 400


class TestStoreUpload:
    def upload(self, client, admin_headers, content, filename="stores.csv"):
        return client.post(
            "/admin/stores/upload",
            files={"file": (filename, content, "text/csv")},
            headers=admin_headers,
        )

    def test_bulk_register(self, client, admin_headers, store, db_session):
        content = (
            "store_id,name,device_token,enabled\n"
            "0042,Warung 42,,\n"
            "S1,Store One Renamed,,0\n"
            "S7,Toko Tujuh,tok777,yes\n"
        )
        response = self.upload(client, admin_headers, content)
        assert response.status_code == 200
        assert response.json()["records_loaded"] == 3

        stores = {s.store_id: s for s in db_session.query(Store).all()}
        assert stores["0042"].device_token.startswith("sb_")
        assert stores["0042"].enabled is True
        assert stores["S1"].name == "Store One Renamed"
        assert stores["S1"].device_token == "tok123"
        assert stores["S1"].enabled is False
        assert stores["S7"].device_token == "tok777"

    def test_rejects_non_csv(self, client, admin_headers):
        assert self.upload(client, admin_headers, "x", filename="stores.txt").status_code == 400

    def test_missing_columns(self, client, admin_headers):
        response = self.upload(client, admin_headers, "store_id\nS1\n")
        assert response.status_code == 400
        assert "name" in response.json()["detail"]

    def test_invalid_row_rolls_back_batch(self, client, admin_headers, db_session):
        response = self.upload(client, admin_headers, "store_id,name\nS5,Five\nbad id,Broken\n")
        assert response.status_code == 400
        assert db_session.query(Store).count() == 0


class TestTransactions:
    def test_list_and_filter(self, client, admin_headers, store, make_transaction):
        make_transaction("S1", 100, "A", played=True)
        make_transaction("S1", 200, "B")

        everything = client.get("/admin/transactions", headers=admin_headers).json()["transactions"]
        assert [t["transaction_id"] for t in everything] == ["B", "A"]

        pending = client.get("/admin/transactions", params={"played": "0"}, headers=admin_headers).json()
        assert [t["transaction_id"] for t in pending["transactions"]] == ["B"]

        limited = client.get("/admin/transactions", params={"limit": "0"}, headers=admin_headers).json()
        assert len(limited["transactions"]) == 1

        garbage = client.get("/admin/transactions", params={"limit": "lots"}, headers=admin_headers)
        assert len(garbage.json()["transactions"]) == 2

    def test_clear(self, client, admin_headers, store, make_transaction, db_session):
        make_transaction("S1", 100, "A")
        make_transaction("S1", 200, "B")

        response = client.post("/admin/transactions/clear", json={"store_id": "S1"}, headers=admin_headers)
        assert response.json() == {"ok": True, "deleted": 2}
        assert db_session.query(Transaction).count() == 0


class TestDevices:
    def test_lists_liveness(self, client, admin_headers, store, disabled_store, heartbeat_table, db_session):
        db_session.execute(text(
            "INSERT INTO device_heartbeat (device_token, last_seen, ip_address, firmware_version) "
            "VALUES ('tok123', '2026-05-20 11:00:00', '10.0.0.7', '1.4.2')"
        ))
        db_session.commit()

        data = client.get("/admin/devices", headers=admin_headers).json()
        assert data["identity"] == "DEVICE_TOKEN"
        devices = {d["store_id"]: d for d in data["devices"]}
        assert devices["S1"]["last_seen"] == "2026-05-20 11:00:00"
        assert devices["S1"]["ip_address"] == "10.0.0.7"
        assert devices["S1"]["firmware_version"] == "1.4.2"
        assert devices["S2"]["last_seen"] is None
        assert devices["S2"]["enabled"] is False

    def test_degrades_without_identity_column(self, client, admin_headers, store, db_engine):
        create_heartbeat_table(db_engine, "CREATE TABLE device_heartbeat (id INTEGER, last_seen TEXT)")

        response = client.get("/admin/devices", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["identity"] == "NONE"
        assert data["devices"] == [{
            "store_id": "S1",
            "name": "Store One",
            "enabled": True,
            "last_seen": None,
            "ip_address": None,
            "firmware_version": None,
        }]

    def test_partial_columns(self, client, admin_headers, store, db_engine, db_session):
        create_heartbeat_table(db_engine, "CREATE TABLE device_heartbeat (store_id TEXT, last_seen TEXT)")
        db_session.execute(text("INSERT INTO device_heartbeat VALUES ('S1', '2026-05-20 11:00:00')"))
        db_session.commit()

        device = client.get("/admin/devices", headers=admin_headers).json()["devices"][0]
        assert device["last_seen"] == "2026-05-20 11:00:00"
        assert device["ip_address"] is None
