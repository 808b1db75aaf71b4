"""API tests for customers, projects, quotations and reports."""
import pytest

from estimator.models.user import UserRole


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers()


def _material(client, headers, code="CEM001", amount=25.0, conversion=50.0):
    response = client.post("/api/materials/", headers=headers, json={
        "item_code": code,
        "item_name": "Portland Cement",
        "storing_uom": "Bag",
        "consuming_uom": "Kg",
        "purchasing_amount": amount,
        "conversion_unit": conversion,
    })
    assert response.status_code == 201
    return response.json()


def test_customer_and_project(client, admin_headers):
    customer = client.post("/api/customers/", headers=admin_headers, json={
        "name": "Sample Customer",
        "email": "customer@example.com",
        "address": "Dubai, UAE",
    })
    assert customer.status_code == 201
    customer_id = customer.json()["id"]
    
    project = client.post("/api/projects/", headers=admin_headers, json={
        "name": "Villa Extension",
        "customer_id": customer_id,
    })
    assert project.status_code == 201
    assert project.json()["status"] == "Active"
    project_id = project.json()["id"]
    
    found = client.get("/api/projects/", headers=admin_headers, params={"search": "sample"}).json()
    assert [item["id"] for item in found] == [project_id]
    
    missing_customer = client.post("/api/projects/", headers=admin_headers, json={
        "name": "Orphan",
        "customer_id": 999,
    })
    assert missing_customer.status_code == 404
    
    assert client.delete(f"/api/customers/{customer_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/projects/{project_id}", headers=admin_headers).json()["customer_id"] is None


def test_estimator_cannot_edit_customers(client, auth_headers, login_as):
    login_as(UserRole.ESTIMATOR)
    headers = auth_headers("estimator", "password")
    
    assert client.post("/api/customers/", headers=headers, json={"name": "Nope"}).status_code == 403
    assert client.get("/api/customers/", headers=headers).status_code == 200
    assert client.post("/api/projects/", headers=headers, json={"name": "Allowed"}).status_code == 201


def test_quotation_lines_survive_material_changes(client, admin_headers):
    _material(client, admin_headers)
    quotation = client.post("/api/quotations/", headers=admin_headers, json={"quotation_number": "Q-0001"})
    assert quotation.status_code == 201
    assert quotation.json()["status"] == "Draft"
    quotation_id = quotation.json()["id"]
    
    with_line = client.post(
        f"/api/quotations/{quotation_id}/items",
        headers=admin_headers,
        json={"item_code": "CEM001", "quantity": 100},
    )
    assert with_line.status_code == 201
    assert with_line.json()["total_amount"] == 50.0
    
    # Repricing and deleting the material leaves the quoted line as it was
    client.put("/api/materials/CEM001", headers=admin_headers, json={"purchasing_amount": 50.0})
    assert client.delete("/api/materials/CEM001", headers=admin_headers).status_code == 204
    
    data = client.get(f"/api/quotations/{quotation_id}", headers=admin_headers).json()
    line = data["items"][0]
    assert line["material_id"] is None
    assert line["item_code"] == "CEM001"
    assert line["unit_rate"] == 0.5
    assert data["total_amount"] == 50.0
    
    removed = client.delete(f"/api/quotations/{quotation_id}/items/{line['id']}", headers=admin_headers)
    assert removed.json()["items"] == []


def test_quotation_number_unique(client, admin_headers):
    client.post("/api/quotations/", headers=admin_headers, json={"quotation_number": "Q-1"})
    duplicate = client.post("/api/quotations/", headers=admin_headers, json={"quotation_number": "Q-1"})
    assert duplicate.status_code == 400


def test_quotation_item_unknown_material(client, admin_headers):
    quotation_id = client.post(
        "/api/quotations/", headers=admin_headers, json={"quotation_number": "Q-2"}
    ).json()["id"]
    response = client.post(
        f"/api/quotations/{quotation_id}/items",
        headers=admin_headers,
        json={"item_code": "NOPE", "quantity": 1},
    )
    assert response.status_code == 404


def test_report_summary(client, admin_headers, auth_headers, login_as):
    _material(client, admin_headers, code="STL001", amount=2500.0, conversion=1000.0)
    client.post("/api/projects/", headers=admin_headers, json={"name": "Tower", "status": "active"})
    client.post("/api/projects/", headers=admin_headers, json={"name": "Old", "status": "Completed"})
    quotation_id = client.post(
        "/api/quotations/", headers=admin_headers, json={"quotation_number": "Q-9"}
    ).json()["id"]
    client.post(
        f"/api/quotations/{quotation_id}/items",
        headers=admin_headers,
        json={"item_code": "STL001", "quantity": 10},
    )
    
    login_as(UserRole.VIEWER)
    summary = client.get("/api/reports/summary", headers=auth_headers("viewer", "password"))
    assert summary.status_code == 200
    assert summary.json() == {
        "customers": 0,
        "projects": 2,
        "active_projects": 1,
        "quotations": 1,
        "materials": 1,
        "total_quoted": 25.0,
        "currency": "AED",
    }
