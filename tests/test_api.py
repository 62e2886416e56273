"""REST endpoints end to end, with the in-memory service injected."""


def submit(client, customer_id="CUST-001", **overrides):
    payload = {
        "govID": "VALID12345",
        "kycAddress": "123 Main St",
        "kycDob": "1990-01-15",
        "pan": "ABCD1234EF",
    }
    payload.update(overrides)
    return client.post(f"/api/kyc/{customer_id}", json=payload)


def test_submit_then_duplicate_returns_409(client):
    response = submit(client)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["verification_status"] == "pending"
    assert body["encryption_version"] == "aes-256-cbc-v1"

    view = client.get(f"/api/kyc/submission/{body['kyc_id']}").json()
    assert view["pan"] == "ABCD1234EF"
    assert view["kyc_address"] == "123 Main St"

    duplicate = submit(client, customer_id="CUST-002", govID="OTHER98765", kycDob="1985-03-02")
    assert duplicate.status_code == 409
    assert client.get("/api/admin/stats").json()["total_records"] == 1


def test_missing_fields_return_400_with_all_names(client):
    response = client.post("/api/kyc/CUST-001", json={"kycAddress": "123 Main St", "kycDob": "1990-01-15"})
    assert response.status_code == 400
    assert response.json()["detail"]["missing_fields"] == ["gov_id", "pan"]


def test_invalid_pan_returns_400(client):
    response = submit(client, pan="ABCD1234EF!")
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "pan"


def test_request_metadata_is_recorded(client, service):
    kyc_id = submit(client, aadhaarNumber="123456789012").json()["kyc_id"]
    record = service.get_record(kyc_id)
    assert record.record_metadata["submission_ip"] == "testclient"
    assert record.record_metadata["user_agent"]
    assert client.get(f"/api/kyc/submission/{kyc_id}").json()["aadhaar_number"] == "123456789012"


def test_customer_records(client):
    submit(client)
    submit(client, pan="WXYZ9876QR")

    response = client.get("/api/kyc/CUST-001")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {r["pan"] for r in body["records"]} == {"ABCD1234EF", "WXYZ9876QR"}

    assert client.get("/api/kyc/NOBODY").status_code == 404


def test_unknown_submission_returns_404(client):
    assert client.get("/api/kyc/submission/KYC-0-missing").status_code == 404
    assert client.delete("/api/kyc/KYC-0-missing").status_code == 404


def test_patch_submission(client):
    kyc_id = submit(client).json()["kyc_id"]

    response = client.patch(
        f"/api/kyc/submission/{kyc_id}",
        json={"fields": {"kycAddress": "77 New Road", "pan": "WXYZ9876QR"}},
    )
    assert response.status_code == 200
    assert response.json()["pan"] == "WXYZ9876QR"
    assert response.json()["kyc_address"] == "77 New Road"

    bad = client.patch(f"/api/kyc/submission/{kyc_id}", json={"fields": {"pan": "short"}})
    assert bad.status_code == 400


def test_patch_to_taken_pan_returns_409(client):
    submit(client)
    other_id = submit(client, pan="WXYZ9876QR").json()["kyc_id"]

    response = client.patch(f"/api/kyc/submission/{other_id}", json={"fields": {"pan": "ABCD1234EF"}})
    assert response.status_code == 409


def test_verify_and_risk(client):
    kyc_id = submit(client).json()["kyc_id"]

    response = client.put(
        f"/api/kyc/{kyc_id}/verify",
        json={"status": "verified", "notes": "documents match", "verified_by": "officer-7"},
    )
    assert response.status_code == 200
    assert response.json()["verification_status"] == "verified"

    view = client.get(f"/api/kyc/submission/{kyc_id}").json()
    assert view["verification_notes"] == "documents match"
    assert view["verified_at"] is not None

    assert client.put(f"/api/kyc/{kyc_id}/verify", json={"status": "approved"}).status_code == 400

    risk = client.put(f"/api/kyc/{kyc_id}/risk", json={"risk_assessment": "medium"})
    assert risk.status_code == 200
    assert risk.json()["risk_assessment"] == "medium"
    assert client.put(f"/api/kyc/{kyc_id}/risk", json={"risk_assessment": "extreme"}).status_code == 400


def test_delete_frees_pan(client):
    kyc_id = submit(client).json()["kyc_id"]

    response = client.delete(f"/api/kyc/{kyc_id}")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/api/kyc/submission/{kyc_id}").status_code == 404
    assert submit(client).status_code == 201


def test_admin_listing(client):
    first = submit(client).json()["kyc_id"]
    submit(client, pan="WXYZ9876QR")
    client.put(f"/api/kyc/{first}/verify", json={"status": "rejected"})

    listing = client.get("/api/admin/kyc").json()
    assert listing["total"] == 2
    assert all("pan" not in row for row in listing["records"])

    rejected = client.get("/api/admin/kyc", params={"status": "rejected"}).json()
    assert [r["id"] for r in rejected["records"]] == [first]

    assert client.get("/api/admin/kyc", params={"status": "bogus"}).status_code == 400

    stats = client.get("/api/admin/stats").json()
    assert stats["unique_pans"] == 2
    assert stats["by_status"]["rejected"] == 1


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["storage"] == "memory"


def test_patch_pep_flag_parses_strings(client):
    kyc_id = submit(client, politicallyExposedPerson=True).json()["kyc_id"]

    response = client.patch(f"/api/kyc/submission/{kyc_id}", json={"fields": {"politicallyExposedPerson": "false"}})
    assert response.status_code == 200
    assert response.json()["politically_exposed_person"] is False

    bad = client.patch(f"/api/kyc/submission/{kyc_id}", json={"fields": {"politicallyExposedPerson": "maybe"}})
    assert bad.status_code == 400
    assert bad.json()["detail"]["field"] == "politically_exposed_person"


def test_patch_over_long_city_returns_400(client):
    kyc_id = submit(client).json()["kyc_id"]

    response = client.patch(f"/api/kyc/submission/{kyc_id}", json={"fields": {"city": "c" * 101}})
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "city"
    assert client.get(f"/api/kyc/submission/{kyc_id}").json()["city"] is None
