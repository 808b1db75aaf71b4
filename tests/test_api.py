"""API tests for authentication, users and materials."""
from estimator.models.user import UserRole
from estimator.services.bulk_import import TEMPLATE_SAMPLES, generate_template


def _upload(content: str):
    return {"file": ("materials.csv", content.encode("utf-8"), "text/csv")}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_login_me_logout(client, auth_headers):
    headers = auth_headers()
    
    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    data = me.json()
    assert data["username"] == "admin"
    assert data["role"] == "Admin"
    assert "User Management" in data["permissions"]
    assert data["last_login_at"] is not None
    
    assert client.post("/api/auth/logout", headers=headers).status_code == 204
    assert client.get("/api/auth/me", headers=headers).status_code == 401
    # Logging out again is harmless
    assert client.post("/api/auth/logout", headers=headers).status_code == 204


def test_login_failure_is_uniform(client):
    wrong_password = client.post("/api/auth/login", data={"username": "admin", "password": "bad"})
    unknown_user = client.post("/api/auth/login", data={"username": "ghost", "password": "bad"})
    
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/materials/").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_user_management_flow(client, auth_headers):
    headers = auth_headers()
    
    created = client.post("/api/users/", headers=headers, json={
        "username": "sara",
        "email": "sara@example.com",
        "password": "pw12345",
        "role": "Estimator",
    })
    assert created.status_code == 201
    user_id = created.json()["id"]
    
    duplicate = client.post("/api/users/", headers=headers, json={
        "username": "sara",
        "email": "other@example.com",
        "password": "pw",
    })
    assert duplicate.status_code == 409
    
    updated = client.put(f"/api/users/{user_id}", headers=headers, json={"role": "Manager"})
    assert updated.status_code == 200
    assert updated.json()["role"] == "Manager"
    
    assert client.post(
        f"/api/users/{user_id}/password", headers=headers, json={"new_password": "fresh"}
    ).status_code == 204
    sara_headers = auth_headers("sara", "fresh")
    assert client.get("/api/users/", headers=sara_headers).status_code == 403
    
    assert client.delete(f"/api/users/{user_id}", headers=headers).status_code == 204
    assert client.get(f"/api/users/{user_id}", headers=headers).status_code == 404
    assert client.post(
        "/api/auth/login", data={"username": "sara", "password": "fresh"}
    ).status_code == 401


def test_admin_cannot_delete_self(client, auth_headers):
    headers = auth_headers()
    me = client.get("/api/auth/me", headers=headers).json()
    assert client.delete(f"/api/users/{me['id']}", headers=headers).status_code == 400


def test_material_crud(client, auth_headers):
    headers = auth_headers()
    
    created = client.post("/api/materials/", headers=headers, json={
        "item_code": "CEM001",
        "item_name": "Portland Cement",
        "storing_uom": "Bag",
        "consuming_uom": "Kg",
        "purchasing_amount": 25.0,
        "conversion_unit": 50.0,
    })
    assert created.status_code == 201
    assert created.json()["consuming_rate"] == 0.5
    
    duplicate = client.post("/api/materials/", headers=headers, json={
        "item_code": "CEM001",
        "item_name": "Other",
        "storing_uom": "Bag",
        "consuming_uom": "Kg",
        "purchasing_amount": 10.0,
    })
    assert duplicate.status_code == 409
    
    updated = client.put("/api/materials/CEM001", headers=headers, json={"purchasing_amount": 30.0})
    assert updated.status_code == 200
    assert updated.json()["consuming_rate"] == 0.6
    
    rejected = client.put("/api/materials/CEM001", headers=headers, json={"conversion_unit": 0})
    assert rejected.status_code == 422
    assert "Conversion unit" in rejected.json()["detail"]
    
    assert client.get("/api/materials/", headers=headers, params={"search": "portland"}).json()[0]["item_code"] == "CEM001"
    assert client.delete("/api/materials/CEM001", headers=headers).status_code == 204
    assert client.get("/api/materials/CEM001", headers=headers).status_code == 404


def test_material_create_rejects_nan_amount(client, auth_headers):
    headers = {**auth_headers(), "Content-Type": "application/json"}
    body = (
        '{"item_code": "CEM001", "item_name": "Portland Cement", "storing_uom": "Bag", '
        '"consuming_uom": "Kg", "purchasing_amount": NaN, "conversion_unit": 50.0}'
    )
    
    response = client.post("/api/materials/", headers=headers, content=body)
    assert response.status_code == 422
    assert "Purchasing amount" in response.json()["detail"]
    assert client.get("/api/materials/CEM001", headers=headers).status_code == 404


def test_viewer_cannot_edit_materials(client, auth_headers, login_as):
    login_as(UserRole.VIEWER)
    headers = auth_headers("viewer", "password")
    
    response = client.post("/api/materials/", headers=headers, json={
        "item_code": "X1",
        "item_name": "X",
        "storing_uom": "Each",
        "consuming_uom": "Each",
        "purchasing_amount": 1.0,
    })
    assert response.status_code == 403
    assert client.get("/api/materials/", headers=headers).status_code == 200


def test_bulk_upload_preview_and_import(client, auth_headers):
    headers = auth_headers()
    template = client.get("/api/materials/template/csv", headers=headers)
    assert template.status_code == 200
    assert template.text == generate_template()
    
    preview = client.post("/api/materials/import/preview", headers=headers, files=_upload(template.text))
    assert preview.status_code == 200
    assert preview.json()["total_rows"] == len(TEMPLATE_SAMPLES)
    assert preview.json()["rows"][0]["consuming_rate"] == 0.5
    # Previewing writes nothing
    assert client.get("/api/materials/", headers=headers).json() == []
    
    result = client.post("/api/materials/import/csv", headers=headers, files=_upload(template.text))
    assert result.json() == {
        "success_count": len(TEMPLATE_SAMPLES),
        "error_count": 0,
        "errors": [],
        "save_error": None,
    }
    
    again = client.post("/api/materials/import/csv", headers=headers, files=_upload(template.text)).json()
    assert again["success_count"] == 0
    assert again["error_count"] == len(TEMPLATE_SAMPLES)
    
    exported = client.get("/api/materials/export/csv", headers=headers)
    assert exported.text.splitlines()[0] == template.text.splitlines()[0]


def test_bulk_upload_rejects_estimator(client, auth_headers, login_as):
    login_as(UserRole.ESTIMATOR)
    headers = auth_headers("estimator", "password")
    
    response = client.post("/api/materials/import/csv", headers=headers, files=_upload(generate_template()))
    assert response.status_code == 403


def test_bulk_upload_unreadable_file(client, auth_headers):
    response = client.post(
        "/api/materials/import/csv",
        headers=auth_headers(),
        files={"file": ("materials.csv", b"\xff\xfe\x00bad", "text/csv")},
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Failed to read CSV file")
