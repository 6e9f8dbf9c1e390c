"""
Materials catalog tests.

Tests:
1. Unit price derived from batch cost and quantity
2. Names trimmed; duplicates rejected (case-insensitive, including non-ASCII)
3. Seeding is idempotent
4. Deleting a material removes every row that references it
"""

from unittest.mock import patch

import pytest

from backend import models
from backend.routers.materials import (
    DEFAULT_MATERIALS, derive_unit_price, seed_default_materials,
)


def _create_product(client, **overrides):
    payload = {
        "product_name": "Custom T-Shirt",
        "hourly_labor_rate": 40,
        "calculation_mode": "margin",
        "target_margin": 60,
        "discount": 10,
    }
    payload.update(overrides)
    response = client.post("/api/products/", json=payload)
    assert response.status_code == 200
    return response.json()


# --- Unit price ---

def test_create_material_derives_unit_price(client, cotton):
    assert cotton["unit_price"] == 150.0
    assert cotton["unit_of_measurement"] == "yards"
    assert cotton["id"]


@pytest.mark.parametrize("total_cost,qty,expected", [
    (1500, 10, 150.0),
    (80, 2, 40.0),
    (100, 0, 0.0),
    (100, -5, 0.0),
    (0, 10, 0.0),
])
def test_derive_unit_price(total_cost, qty, expected):
    assert derive_unit_price(total_cost, qty) == expected


def test_zero_quantity_material_prices_at_zero(client):
    response = client.post("/api/materials/", json={"name": "Leftover Thread", "total_cost": 50, "qty": 0})
    assert response.status_code == 200
    assert response.json()["unit_price"] == 0.0


def test_negative_total_cost_rejected(client):
    response = client.post("/api/materials/", json={"name": "Bad", "total_cost": -1, "qty": 1})
    assert response.status_code == 422


def test_blank_name_rejected(client):
    response = client.post("/api/materials/", json={"name": "", "total_cost": 1, "qty": 1})
    assert response.status_code == 422


@pytest.mark.parametrize("name", ["   ", "\t\n"])
def test_whitespace_only_name_rejected(client, name):
    response = client.post("/api/materials/", json={"name": name, "total_cost": 1, "qty": 1})
    assert response.status_code == 422

    listing = client.get("/api/materials/")
    assert listing.status_code == 200
    assert listing.json() == []


# --- Duplicates ---

def test_duplicate_name_ignores_case_and_whitespace(client, cotton):
    response = client.post("/api/materials/", json={"name": "  cotton FABRIC ", "total_cost": 10, "qty": 1})
    assert response.status_code == 409
    assert "cotton FABRIC" in response.json()["detail"]


def test_name_is_stored_trimmed(client):
    response = client.post("/api/materials/", json={"name": "  Ribbon  ", "total_cost": 30, "qty": 3})
    assert response.json()["name"] == "Ribbon"


@pytest.mark.parametrize("first,second", [
    ("Ñandu Thread", "ñandu thread"),
    ("Straße Tape", "STRASSE TAPE"),
    ("Éclair Box", "éCLAIR box"),
])
def test_duplicate_name_folds_non_ascii_case(client, first, second):
    assert client.post("/api/materials/", json={"name": first, "total_cost": 10, "qty": 1}).status_code == 200
    response = client.post("/api/materials/", json={"name": second, "total_cost": 10, "qty": 1})
    assert response.status_code == 409
    assert len(client.get("/api/materials/").json()) == 1


def test_name_key_stored_casefolded(client, db):
    client.post("/api/materials/", json={"name": "  Ñandu Thread ", "total_cost": 10, "qty": 1})
    material = db.query(models.Material).one()
    assert material.name == "Ñandu Thread"
    assert material.name_key == "ñandu thread"


def test_unique_name_key_rejects_racing_insert(client, cotton):
    """Two requests that both pass the lookup still cannot store the same name."""
    with patch("backend.routers.materials.find_by_name", return_value=None):
        response = client.post("/api/materials/", json={"name": "COTTON fabric", "total_cost": 10, "qty": 1})
    assert response.status_code == 409
    assert [m["name"] for m in client.get("/api/materials/").json()] == ["Cotton Fabric"]


# --- Listing / lookup ---

def test_list_materials_in_creation_order(client, cotton, small_box):
    names = [m["name"] for m in client.get("/api/materials/").json()]
    assert names == ["Cotton Fabric", "Small Box"]


def test_get_material(client, cotton):
    response = client.get(f"/api/materials/{cotton['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Cotton Fabric"


def test_get_missing_material_404(client):
    assert client.get("/api/materials/nope").status_code == 404


# --- Seeding ---

def test_seed_endpoint_is_idempotent(client):
    first = client.get("/api/materials/seed").json()
    second = client.get("/api/materials/seed").json()
    assert first == {"ok": True, "seeded": len(DEFAULT_MATERIALS)}
    assert second == {"ok": True, "seeded": 0}
    assert len(client.get("/api/materials/").json()) == len(DEFAULT_MATERIALS)


def test_seed_skips_existing_names(client, db, cotton):
    assert seed_default_materials(db) == len(DEFAULT_MATERIALS) - 1


def test_seeded_unit_prices(client, db):
    seed_default_materials(db)
    prices = {m.name: m.unit_price for m in db.query(models.Material).all()}
    assert prices["Cotton Fabric"] == 150.0
    assert prices["Printing Ink"] == 25.0
    assert prices["Brand Tag"] == 5.0
    assert prices["Small Box"] == 5.0
    assert prices["Packing Tape"] == 40.0


# --- Cascade delete ---

def test_delete_material_removes_referencing_rows(client, cotton, small_box):
    product = _create_product(
        client,
        material_cost_rows=[{"material_id": cotton["id"], "qty": 0.5}],
        packaging_cost_rows=[
            {"material_id": cotton["id"], "qty": 1},
            {"material_id": small_box["id"], "qty": 1},
        ],
        labor_cost_rows=[{"task_name": "Sew", "hours": 0.5}],
        other_fee_rows=[{"fee_name": "Platform Fee", "qty": 1, "unit_price": 15}],
    )

    response = client.delete(f"/api/materials/{cotton['id']}")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "rows_removed": 2}

    stored = client.get(f"/api/products/{product['id']}").json()
    assert stored["material_cost_rows"] == []
    assert [r["material_id"] for r in stored["packaging_cost_rows"]] == [small_box["id"]]
    assert len(stored["labor_cost_rows"]) == 1
    assert len(stored["other_fee_rows"]) == 1

    pricing = client.get(f"/api/products/{product['id']}/pricing").json()["pricing"]
    assert pricing["total_material_cost"] == 0.0
    assert pricing["total_packaging_cost"] == 5.0


def test_delete_material_touches_every_product(client, cotton):
    first = _create_product(client, material_cost_rows=[{"material_id": cotton["id"], "qty": 1}])
    second = _create_product(client, packaging_cost_rows=[{"material_id": cotton["id"], "qty": 2}])

    assert client.delete(f"/api/materials/{cotton['id']}").json()["rows_removed"] == 2
    assert client.get(f"/api/products/{first['id']}").json()["material_cost_rows"] == []
    assert client.get(f"/api/products/{second['id']}").json()["packaging_cost_rows"] == []
    assert client.get(f"/api/materials/{cotton['id']}").status_code == 404


def test_delete_missing_material_404(client):
    assert client.delete("/api/materials/nope").status_code == 404
