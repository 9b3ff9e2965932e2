"""Test the doctor-facing API: builder sessions, forms and submissions"""

import uuid

import pytest

from medicore_forms.auth.dependencies import get_current_doctor
from medicore_forms.main import app
from medicore_forms.models.drafts import FieldDraft, FormSettings
from medicore_forms.services.form_service import FormService

PATIENT = {
    "patient_name": "Jane Doe",
    "patient_email": "jane@example.com",
    "patient_phone": "555-0100",
}


def _start_session(client, **body):
    response = client.post("/api/builder/sessions", json=body)
    assert response.status_code == 201
    return response.json()


def _submit(client, form, fields, values):
    names = {field.label: str(field.id) for field in fields}
    data = {**PATIENT, **{names[label]: value for label, value in values.items()}}
    response = client.post(f"/forms/{form.slug}", data=data, follow_redirects=False)
    assert response.status_code == 303


class TestFieldTypes:
    def test_list_field_types(self, authenticated_client):
        response = authenticated_client.get("/api/field-types")

        assert response.status_code == 200
        types = response.json()
        assert len(types) == 10
        assert types[0]["type"] == "text"
        assert {t["type"] for t in types if t["supports_options"]} == {
            "select",
            "radio",
            "checkbox",
        }


class TestBuilderSessions:
    def test_build_and_save_form(self, authenticated_client, doctor_id, _db_session):
        client = authenticated_client
        session = _start_session(client)
        session_id = session["session_id"]
        base = f"/api/builder/sessions/{session_id}"

        response = client.patch(f"{base}/settings", json={"title": "Sleep Study Intake"})
        assert response.json()["settings"]["slug"] == "sleep-study-intake"

        client.post(f"{base}/fields", json={"field_type": "text"})
        client.patch(f"{base}/fields/0", json={"label": "Full Name", "required": True})
        response = client.post(f"{base}/fields", json={"field_type": "radio"})
        assert response.status_code == 201
        assert response.json()["selected_index"] == 1
        client.patch(f"{base}/fields/1", json={"label": "Snores"})
        client.post(f"{base}/fields/1/options", json={"value": "Sometimes"})
        response = client.delete(f"{base}/fields/1/options/0")
        assert response.json()["fields"][1]["options"] == ["Option 2", "Sometimes"]

        response = client.post(f"{base}/fields/1/duplicate")
        assert response.json()["fields"][2]["label"] == "Snores (Copy)"
        response = client.post(f"{base}/fields/2/move", json={"to_index": 0})
        assert [f["label"] for f in response.json()["fields"]] == [
            "Snores (Copy)",
            "Full Name",
            "Snores",
        ]

        response = client.post(f"{base}/save")

        assert response.status_code == 200
        data = response.json()
        assert data["form"]["title"] == "Sleep Study Intake"
        assert data["form"]["doctor_id"] == doctor_id
        assert data["public_url"].endswith("/forms/sleep-study-intake")
        assert [(f["label"], f["order_index"]) for f in data["fields"]] == [
            ("Snores (Copy)", 0),
            ("Full Name", 1),
            ("Snores", 2),
        ]
        # Saving ends the session
        assert client.get(base).status_code == 404

        forms = FormService(_db_session, doctor_id).list_forms()
        assert [f.slug for f in forms] == ["sleep-study-intake"]

    def test_edit_existing_form(self, authenticated_client, make_form):
        form, fields = make_form()
        client = authenticated_client

        session = _start_session(client, form_id=str(form.id))
        assert session["form_id"] == str(form.id)
        assert session["fields"][0]["id"] == str(fields[0].id)

        base = f"/api/builder/sessions/{session['session_id']}"
        client.patch(f"{base}/fields/0", json={"label": "Legal Name"})
        response = client.post(f"{base}/save")

        assert response.status_code == 200
        saved = response.json()["fields"]
        assert saved[0]["id"] == str(fields[0].id)
        assert saved[0]["label"] == "Legal Name"

    def test_builder_errors(self, authenticated_client):
        client = authenticated_client
        session = _start_session(client)
        base = f"/api/builder/sessions/{session['session_id']}"

        response = client.patch(f"{base}/fields/3", json={"label": "Nope"})
        assert response.status_code == 400
        assert "out of range" in response.json()["detail"]

        response = client.post(f"{base}/save")
        assert response.status_code == 400
        assert response.json()["detail"] == "Form title is required"

        response = client.post(f"{base}/fields", json={"field_type": "signature"})
        assert response.status_code == 422

        assert client.get("/api/builder/sessions/unknown").status_code == 404

    def test_cannot_edit_other_doctors_form(self, authenticated_client, _db_session):
        other = FormService(_db_session, "another-doctor")

        form = other.save_form(
            FormSettings(title="Theirs", slug="their-form"),
            [FieldDraft(field_type="text", label="Name")],
        )

        response = authenticated_client.post(
            "/api/builder/sessions", json={"form_id": str(form.id)}
        )
        assert response.status_code == 404


class TestForms:
    def test_list_and_get(self, authenticated_client, make_form):
        make_form(title="Allergy Questionnaire")
        form, fields = make_form(title="Consent Form")

        response = authenticated_client.get("/api/forms", params={"q": "consent"})
        assert response.status_code == 200
        listed = response.json()
        assert [f["title"] for f in listed] == ["Consent Form"]
        assert listed[0]["public_url"].endswith("/forms/consent-form")

        response = authenticated_client.get(f"/api/forms/{form.id}")
        assert response.status_code == 200
        assert response.json()["fields"][0]["label"] == fields[0].label

    def test_unknown_form(self, authenticated_client):
        response = authenticated_client.get(f"/api/forms/{uuid.uuid4()}")
        assert response.status_code == 404

    def test_update_and_delete(self, authenticated_client, make_form):
        form, _ = make_form()

        response = authenticated_client.patch(
            f"/api/forms/{form.id}", json={"is_active": False}
        )
        assert response.status_code == 200
        assert response.json()["form"]["is_active"] is False
        assert authenticated_client.get(f"/forms/{form.slug}").status_code == 404

        response = authenticated_client.patch(f"/api/forms/{form.id}", json={"slug": "x"})
        assert response.status_code == 400

        response = authenticated_client.delete(f"/api/forms/{form.id}")
        assert response.status_code == 200
        assert authenticated_client.get(f"/api/forms/{form.id}").status_code == 404

    def test_requires_doctor(self, authenticated_client):
        app.dependency_overrides.pop(get_current_doctor)

        response = authenticated_client.get("/api/forms")
        assert response.status_code == 401

        response = authenticated_client.get(
            "/api/forms", headers={"X-Doctor-Id": "doctor-from-proxy"}
        )
        assert response.status_code == 200
        assert response.json() == []


class TestSubmissions:
    @pytest.fixture
    def submitted_form(self, authenticated_client, make_form):
        form, fields = make_form(
            fields=[
                {"field_type": "text", "label": "Full Name", "required": True},
                {"field_type": "checkbox", "label": "Allergies", "options": ["Latex", "Nuts"]},
                {"field_type": "date", "label": "Date of Birth"},
            ]
        )
        _submit(
            authenticated_client,
            form,
            fields,
            {"Full Name": "Jane Doe", "Allergies": ["Latex", "Nuts"], "Date of Birth": "1990-03-14"},
        )
        return form, fields

    def test_list_and_view_marks_read(self, authenticated_client, submitted_form):
        form, _ = submitted_form
        client = authenticated_client

        unread = client.get("/api/submissions", params={"status": "unread"}).json()
        assert len(unread) == 1
        assert unread[0]["patient_name"] == "Jane Doe"
        assert unread[0]["form_id"] == str(form.id)

        response = client.get(f"/api/submissions/{unread[0]['id']}")
        assert response.status_code == 200
        view = response.json()
        assert view["is_read"] is True
        assert view["viewed_at"] is not None
        responses = {r["label"]: r for r in view["responses"]}
        assert responses["Allergies"]["badges"] == ["Latex", "Nuts"]
        assert responses["Date of Birth"]["display_text"] == "March 14, 1990"
        assert responses["Date of Birth"]["value"]["kind"] == "date"

        assert client.get("/api/submissions", params={"status": "unread"}).json() == []
        assert len(client.get("/api/submissions", params={"status": "read"}).json()) == 1
        assert len(client.get("/api/submissions", params={"form_id": str(form.id)}).json()) == 1

    @pytest.mark.parametrize("q", ["jane", "JANE@EXAMPLE", "intake"])
    def test_search_submissions(self, authenticated_client, submitted_form, q):
        form, _ = submitted_form

        (row,) = authenticated_client.get("/api/submissions", params={"q": q}).json()

        assert row["form_id"] == str(form.id)
        assert row["form_title"] == "Patient Intake"
        assert row["patient_email"] == "jane@example.com"

    def test_search_without_match(self, authenticated_client, submitted_form):
        response = authenticated_client.get("/api/submissions", params={"q": "cardiology"})

        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_submission(self, authenticated_client):
        response = authenticated_client.get(f"/api/submissions/{uuid.uuid4()}")
        assert response.status_code == 404

    def test_export(self, authenticated_client, submitted_form):
        form, _ = submitted_form

        response = authenticated_client.get(f"/api/forms/{form.id}/submissions/export")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == form.title
        (row,) = data["rows"]
        assert row["Patient Email"] == "jane@example.com"
        assert row["Full Name"] == "Jane Doe"
        assert row["Allergies"] == "Latex, Nuts"
        assert row["Date of Birth"] == "1990-03-14"
        assert len(row["Submission ID"]) == 8
