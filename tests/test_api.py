PDF = ("cedula.pdf", b"%PDF-1.4 scanned id", "application/pdf")


def _create(client, headers, **form):
    data = {"certificate_type": "NACIMIENTO", "reason": "Trámite de pasaporte", **form}
    return client.post("/api/requests", data=data, files=[("documents", PDF)], headers=headers)


def _set_status(client, headers, request_id, status, comment=None):
    body = {"status": status}
    if comment:
        body["comment"] = comment
    return client.patch(f"/api/admin/requests/{request_id}/status", json=body, headers=headers)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "SQLite"


def test_actor_header_required(client, api_users):
    missing = client.get("/api/requests")
    unknown = client.get("/api/requests", headers={"X-Actor-Id": "999"})

    for response in (missing, unknown):
        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.json()["error"] == "UNAUTHORIZED"


def test_admin_routes_reject_citizens(client, api_users):
    response = client.get("/api/admin/requests", headers=api_users["citizen"])

    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


def test_create_request(client, api_users):
    response = _create(client, api_users["citizen"], urgency="URGENTE")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    request = body["request"]
    assert request["status"] == "RECIBIDO"
    assert request["urgency"] == "URGENTE"
    assert len(request["documents"]) == 1
    assert request["documents"][0]["original_name"] == "cedula.pdf"
    assert request["status_history_count"] == 1


def test_create_without_documents(client, api_users):
    response = client.post(
        "/api/requests",
        data={"certificate_type": "NACIMIENTO", "reason": "Trámite de pasaporte"},
        headers=api_users["citizen"],
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert client.get("/api/requests", headers=api_users["citizen"]).json()["pagination"]["total"] == 0


def test_full_workflow_and_certificate(client, api_users):
    admin = api_users["admin"]
    request_id = _create(client, api_users["citizen"]).json()["request"]["id"]

    assert _set_status(client, admin, request_id, "EN_VALIDACION").status_code == 200

    skipped = _set_status(client, admin, request_id, "EMITIDO")
    assert skipped.status_code == 400
    assert skipped.json()["error"] == "INVALID_TRANSITION"
    assert "EN_VALIDACION → EMITIDO" in skipped.json()["message"]

    assert _set_status(client, admin, request_id, "APROBADO").status_code == 200
    issued = _set_status(client, admin, request_id, "EMITIDO", "Listo para retirar")
    assert issued.status_code == 200
    assert issued.json()["message"] == "Status updated to EMITIDO"
    assert issued.json()["request"]["status_history"][0]["comment"] == "Listo para retirar"

    download = client.get(f"/api/requests/{request_id}/download", headers=api_users["citizen"])
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert download.content.startswith(b"%PDF")

    check = client.get(f"/api/certificates/{request_id}/check", headers=api_users["citizen"])
    assert check.json()["certificate"]["exists"] is True

    regenerate = client.post(f"/api/certificates/{request_id}/regenerate", headers=admin)
    assert regenerate.status_code == 200


def test_certificate_before_issue(client, api_users):
    request_id = _create(client, api_users["citizen"]).json()["request"]["id"]

    response = client.get(f"/api/certificates/{request_id}/download", headers=api_users["citizen"])

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_STATE"


def test_transition_errors(client, api_users):
    admin = api_users["admin"]
    request_id = _create(client, api_users["citizen"]).json()["request"]["id"]

    assert _set_status(client, admin, 9999, "EN_VALIDACION").status_code == 404
    assert _set_status(client, admin, request_id, "PENDIENTE").status_code == 400


def test_cancel(client, api_users):
    citizen = api_users["citizen"]
    request_id = _create(client, citizen).json()["request"]["id"]

    assert client.delete(f"/api/requests/{request_id}", headers=api_users["other"]).status_code == 404

    response = client.delete(f"/api/requests/{request_id}", headers=citizen)
    assert response.status_code == 200
    assert response.json()["request"]["status"] == "RECHAZADO"

    again = client.delete(f"/api/requests/{request_id}", headers=citizen)
    assert again.status_code == 400
    assert again.json()["error"] == "INVALID_STATE"


def test_users_only_see_their_own_requests(client, api_users):
    request_id = _create(client, api_users["citizen"]).json()["request"]["id"]
    _create(client, api_users["other"])

    mine = client.get("/api/requests", headers=api_users["citizen"]).json()
    assert [r["id"] for r in mine["requests"]] == [request_id]
    assert client.get(f"/api/requests/{request_id}", headers=api_users["other"]).status_code == 404

    detail = client.get(f"/api/requests/{request_id}", headers=api_users["citizen"]).json()
    assert detail["user"]["email"] == "user11@example.com"


def test_admin_listing_puts_urgent_first(client, api_users):
    normal = _create(client, api_users["citizen"]).json()["request"]["id"]
    urgent = _create(client, api_users["other"], urgency="URGENTE").json()["request"]["id"]
    _create(client, api_users["citizen"])

    body = client.get("/api/admin/requests", headers=api_users["admin"]).json()

    ids = [r["id"] for r in body["requests"]]
    assert ids[0] == urgent
    assert normal in ids
    assert body["pagination"]["total"] == 3
    assert body["stats"] == {"RECIBIDO": 3}


def test_admin_downloads_supporting_document(client, api_users):
    request = _create(client, api_users["citizen"]).json()["request"]
    document_id = request["documents"][0]["id"]

    response = client.get(
        f"/api/admin/requests/{request['id']}/documents/{document_id}",
        headers=api_users["admin"],
    )

    assert response.status_code == 200
    assert response.content == PDF[1]
    assert 'filename="cedula.pdf"' in response.headers["content-disposition"]


def test_dashboard_stats(client, api_users):
    admin = api_users["admin"]
    first = _create(client, api_users["citizen"]).json()["request"]["id"]
    _create(client, api_users["citizen"], certificate_type="ESTUDIOS")
    _set_status(client, admin, first, "RECHAZADO")

    body = client.get("/api/admin/dashboard/stats", headers=admin).json()

    assert body["stats"]["total"] == 2
    assert body["stats"]["pending"] == 1
    assert body["stats"]["rejected"] == 1
    assert body["stats"]["today"] == 2
    assert body["by_type"] == {"NACIMIENTO": 1, "ESTUDIOS": 1}
    assert len(body["recent_requests"]) == 2


def test_document_download_keeps_non_ascii_name(client, api_users):
    request = client.post(
        "/api/requests",
        data={"certificate_type": "RESIDENCIA", "reason": "Cambio de domicilio"},
        files=[("documents", ("cédula ñ.pdf", PDF[1], "application/pdf"))],
        headers=api_users["citizen"],
    ).json()["request"]

    response = client.get(
        f"/api/admin/requests/{request['id']}/documents/{request['documents'][0]['id']}",
        headers=api_users["admin"],
    )

    assert response.status_code == 200
    assert "filename*=UTF-8''c%C3%A9dula%20%C3%B1.pdf" in response.headers["content-disposition"]


def test_search_treats_wildcards_literally(client, api_users):
    admin = api_users["admin"]
    number = _create(client, api_users["citizen"]).json()["request"]["request_number"]

    def total(path, search):
        return client.get(path, params={"search": search}, headers=admin).json()["pagination"]["total"]

    assert total("/api/admin/requests", "%") == 0
    assert total("/api/admin/requests", "_") == 0
    assert total("/api/admin/requests", number) == 1
    assert total("/api/admin/requests", "user11@") == 1
    assert total("/api/users", "%") == 0
    assert total("/api/users", "user1") == 3


# ── Accounts ──

def _user_id(headers):
    return int(headers["X-Actor-Id"])


def test_own_profile(client, api_users):
    citizen = api_users["citizen"]
    _create(client, citizen)

    profile = client.get("/api/users/profile", headers=citizen).json()

    assert profile["email"] == "user11@example.com"
    assert profile["request_count"] == 1
    assert profile["is_active"] is True


def test_update_profile(client, api_users):
    citizen = api_users["citizen"]

    response = client.put(
        "/api/users/profile",
        json={"first_name": "  Ana ", "phone": "+507 6111-2222"},
        headers=citizen,
    )

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["first_name"] == "Ana"
    assert user["last_name"] == "Apellido11"
    assert user["phone"] == "+507 6111-2222"

    invalid = client.put("/api/users/profile", json={"last_name": "X"}, headers=citizen)
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "VALIDATION_ERROR"

    bad_phone = client.put("/api/users/profile", json={"phone": "call me"}, headers=citizen)
    assert bad_phone.status_code == 400


def test_admin_lists_and_reads_users(client, api_users):
    admin = api_users["admin"]
    _create(client, api_users["citizen"])
    _create(client, api_users["citizen"])

    listing = client.get("/api/users", headers=admin).json()
    assert listing["pagination"]["total"] == 3
    counts = {u["email"]: u["request_count"] for u in listing["users"]}
    assert counts == {"user10@example.com": 0, "user11@example.com": 2, "user12@example.com": 0}

    detail = client.get(f"/api/users/{_user_id(api_users['citizen'])}", headers=admin).json()
    assert detail["request_count"] == 2
    assert len(detail["recent_requests"]) == 2
    assert detail["recent_requests"][0]["status"] == "RECIBIDO"

    assert client.get("/api/users/9999", headers=admin).status_code == 404
    assert client.get("/api/users", headers=api_users["citizen"]).status_code == 403


def test_deactivated_user_is_refused_but_requests_remain(client, api_users):
    admin, citizen = api_users["admin"], api_users["citizen"]
    request_id = _create(client, citizen).json()["request"]["id"]
    citizen_id = _user_id(citizen)

    response = client.delete(f"/api/users/{citizen_id}", headers=admin)
    assert response.status_code == 200
    assert response.json()["user"]["is_active"] is False

    refused = client.get("/api/requests", headers=citizen)
    assert refused.status_code == 401
    assert refused.json()["error"] == "UNAUTHORIZED"
    assert client.get(f"/api/admin/requests/{request_id}", headers=admin).status_code == 200

    assert client.post(f"/api/users/{citizen_id}/activate", headers=admin).status_code == 200
    assert client.get("/api/requests", headers=citizen).status_code == 200


def test_admin_cannot_deactivate_self(client, api_users):
    admin = api_users["admin"]

    response = client.delete(f"/api/users/{_user_id(admin)}", headers=admin)

    assert response.status_code == 400
    assert client.get("/api/users/profile", headers=admin).status_code == 200
