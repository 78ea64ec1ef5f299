from fastapi import status
from httpx import ASGITransport, AsyncClient


async def test_scribe_reads_existing_patient(app, headers, demo):
    patient = demo["patients"][0]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.get(f"/api/patients/{patient.id}", headers=headers["scribe"])
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["mrn"] == patient.mrn
    assert body["dob"] == "1980-05-12"


async def test_all_roles_list_patients(app, headers):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for label in ("provider", "scribe", "biller", "admin"):
            resp = await ac.get("/api/patients", headers=headers[label])
            assert resp.status_code == status.HTTP_200_OK
            assert len(resp.json()) == 3

        filtered = await ac.get("/api/patients", params={"mrn": "MRN-1002"}, headers=headers["biller"])
    assert [p["name"] for p in filtered.json()] == ["Jane Smith"]


async def test_scribe_cannot_delete_patient(app, headers, demo):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.delete(f"/api/patients/{demo['patients'][0].id}", headers=headers["scribe"])
        assert resp.status_code == status.HTTP_403_FORBIDDEN

        # Authorization runs before the existence check.
        missing = await ac.delete("/api/patients/9999", headers=headers["scribe"])
        assert missing.status_code == status.HTTP_403_FORBIDDEN


async def test_provider_creates_patient(app, headers):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post(
            "/api/patients",
            json={"mrn": "MRN-2001", "name": "Lee Park", "dob": "2001-09-14", "phone": "555-0199"},
            headers=headers["provider"],
        )
    assert resp.status_code == status.HTTP_201_CREATED
    body = resp.json()
    assert body["mrn"] == "MRN-2001"
    assert body["email"] is None


async def test_create_patient_validation_and_conflict(app, headers):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        missing = await ac.post("/api/patients", json={"name": "Incomplete"}, headers=headers["provider"])
        assert missing.status_code == status.HTTP_400_BAD_REQUEST
        assert {"mrn", "dob"} <= set(missing.json()["fields"])

        bad_email = await ac.post(
            "/api/patients",
            json={"mrn": "MRN-2002", "name": "Bad Email", "dob": "1990-01-01", "email": "not-an-email"},
            headers=headers["provider"],
        )
        assert bad_email.status_code == status.HTTP_400_BAD_REQUEST
        assert bad_email.json()["fields"] == ["email"]

        duplicate = await ac.post(
            "/api/patients",
            json={"mrn": "MRN-1001", "name": "Dup", "dob": "1990-01-01"},
            headers=headers["admin"],
        )
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert duplicate.json()["field"] == "mrn"


async def test_scribe_and_biller_cannot_create_or_update_patients(app, headers, demo):
    patient_id = demo["patients"][0].id
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for label in ("scribe", "biller"):
            create = await ac.post(
                "/api/patients",
                json={"mrn": f"MRN-{label}", "name": "X", "dob": "1990-01-01"},
                headers=headers[label],
            )
            assert create.status_code == status.HTTP_403_FORBIDDEN

            update = await ac.put(f"/api/patients/{patient_id}", json={"name": "Y"}, headers=headers[label])
            assert update.status_code == status.HTTP_403_FORBIDDEN


async def test_partial_update_and_clearing_optional_fields(app, headers, demo):
    patient = demo["patients"][0]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.put(
            f"/api/patients/{patient.id}",
            json={"phone": None, "name": "Johnathan Doe"},
            headers=headers["provider"],
        )
        assert resp.status_code == status.HTTP_200_OK
        body = resp.json()
        assert body["name"] == "Johnathan Doe"
        assert body["phone"] is None
        assert body["mrn"] == patient.mrn
        assert body["email"] == patient.email

        cleared_mrn = await ac.put(f"/api/patients/{patient.id}", json={"mrn": None}, headers=headers["provider"])
        assert cleared_mrn.status_code == status.HTTP_400_BAD_REQUEST


async def test_update_missing_patient_is_not_found(app, headers):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.put("/api/patients/9999", json={"name": "Nobody"}, headers=headers["provider"])
    assert resp.status_code == status.HTTP_404_NOT_FOUND
    assert resp.json()["error"] == "not_found"


async def test_admin_delete_patient_cascades_encounters(app, headers, demo):
    patient_id = demo["patients"][1].id
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        before = await ac.get("/api/encounters", params={"patientId": patient_id}, headers=headers["admin"])
        assert len(before.json()) == 2

        resp = await ac.delete(f"/api/patients/{patient_id}", headers=headers["admin"])
        assert resp.status_code == status.HTTP_204_NO_CONTENT

        after = await ac.get("/api/encounters", params={"patientId": patient_id}, headers=headers["admin"])
        assert after.json() == []

        gone = await ac.get(f"/api/patients/{patient_id}", headers=headers["admin"])
        assert gone.status_code == status.HTTP_404_NOT_FOUND
