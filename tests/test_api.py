"""HTTP surface: authorization, envelopes, pipeline endpoints, webhook and CRUD."""

from decimal import Decimal
from unittest.mock import Mock

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from app.api.deps.services import get_reconciler
from app.core.config import settings
from app.core.db import get_db
from app.main import app
from app.models import EducationalContract, SimplifiedEnrollmentStatus, User

BASE = "/api/simplified-enrollments"


def count_rows(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


class TestAuthorization:

    def test_student_cannot_run_pipeline_operations(self, client, db_session, course, make_simplified, student_headers):
        enrollment = make_simplified(course.id)

        for path in (
            f"{BASE}/process-pending",
            f"{BASE}/recover-incomplete",
            f"{BASE}/{enrollment.id}/sync",
            f"{BASE}/{enrollment.id}/fix-student-account",
        ):
            response = client.post(path, headers=student_headers)
            assert response.status_code == 403, path
            body = response.json()
            assert body["success"] is False
            assert body["message"] == "Permissão negada. Apenas administradores podem executar esta operação."

        db_session.refresh(enrollment)
        assert enrollment.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value
        assert enrollment.student_id is None
        assert count_rows(db_session, EducationalContract) == 0
        # Only the calling student exists
        assert count_rows(db_session, User) == 1

    def test_missing_token_is_rejected(self, client):
        response = client.post(f"{BASE}/process-pending")
        assert response.status_code in (401, 403)
        assert response.json()["success"] is False

    def test_invalid_token_is_rejected(self, client):
        response = client.post(f"{BASE}/process-pending", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_manager_may_run_pipeline(self, client, manager_headers):
        response = client.post(f"{BASE}/process-pending", headers=manager_headers)
        assert response.status_code == 200


class TestProcessPending:

    def test_returns_tally_envelope(self, client, db_session, course, make_simplified, admin_headers, notifier):
        make_simplified(course.id, email="a@example.com")
        make_simplified(course.id, email="b@example.com", status=SimplifiedEnrollmentStatus.PENDING.value)

        response = client.post(f"{BASE}/process-pending", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"processed": 1, "failed": 0}
        assert body["message"] == "Processamento concluído. Matrículas processadas: 1, falhas: 0"
        assert "error" not in body
        notifier.send_student_credentials_email.assert_called_once()

    def test_recover_incomplete_returns_tally(self, client, course, make_simplified, admin_headers):
        make_simplified(course.id, status=SimplifiedEnrollmentStatus.CONVERTED.value)

        response = client.post(f"{BASE}/recover-incomplete", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"processed": 1, "failed": 0}

    def test_unhandled_exception_is_500_envelope(self, db_session, admin_user, admin_headers):
        reconciler = Mock()
        reconciler.process_pending_enrollments.side_effect = RuntimeError("boom")

        def override_get_db():
            yield db_session

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_reconciler] = lambda: reconciler
        try:
            response = TestClient(app, raise_server_exceptions=False).post(
                f"{BASE}/process-pending", headers=admin_headers
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "boom"


class TestSync:

    def test_non_numeric_id_is_400(self, client, admin_headers):
        response = client.post(f"{BASE}/abc/sync", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_failed_conversion_is_400(self, client, admin_headers):
        response = client.post(f"{BASE}/999/sync", headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Não foi possível sincronizar a matrícula"}

    def test_converts_and_exposes_contract(self, client, db_session, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id)

        response = client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Matrícula sincronizada com sucesso"}

        db_session.refresh(enrollment)
        assert enrollment.status == SimplifiedEnrollmentStatus.CONVERTED.value
        contract = client.get(
            f"/api/enrollments/{enrollment.converted_enrollment_id}/contract", headers=admin_headers
        ).json()
        assert contract["contract_type"] == "MBA"
        assert contract["contract_number"].startswith(f"MBA01-{enrollment.student_id}-")
        assert contract["installments"] == 18
        assert Decimal(contract["installment_value"]) == Decimal("1000")

        log = client.get(f"{BASE}/{enrollment.id}/status-log", headers=admin_headers).json()
        assert [(entry["old_status"], entry["new_status"]) for entry in log] == [("payment_confirmed", "converted")]

    def test_sync_is_idempotent_over_http(self, client, db_session, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id)

        assert client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers).status_code == 200
        assert client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers).status_code == 200

        assert count_rows(db_session, EducationalContract) == 1


class TestFixStudentAccount:

    def test_returns_user_id_and_username(self, client, db_session, course, make_simplified, admin_headers, notifier):
        enrollment = make_simplified(course.id, email="Pedro@Example.com")

        response = client.post(f"{BASE}/{enrollment.id}/fix-student-account", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["username"] == "pedro@example.com"
        db_session.refresh(enrollment)
        assert body["userId"] == enrollment.student_id
        notifier.send_student_credentials_email.assert_called_once()

    def test_unknown_enrollment_is_404(self, client, admin_headers):
        response = client.post(f"{BASE}/12345/fix-student-account", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestWebhook:

    def test_confirmed_payment_converts_enrollment(self, client, db_session, course, make_simplified):
        enrollment = make_simplified(course.id, status=SimplifiedEnrollmentStatus.WAITING_PAYMENT.value)

        response = client.post("/webhook/asaas", json={
            "event": "PAYMENT_CONFIRMED",
            "payment": {"id": "pay_1", "status": "CONFIRMED", "value": 18000, "externalReference": enrollment.uuid},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["result"] == "converted"
        assert body["data"]["paymentId"] == "pay_1"
        db_session.refresh(enrollment)
        assert enrollment.status == SimplifiedEnrollmentStatus.CONVERTED.value

    def test_unknown_reference_is_acknowledged(self, client):
        response = client.post("/webhook/asaas", json={
            "event": "PAYMENT_CONFIRMED",
            "payment": {"id": "pay_2", "externalReference": "does-not-exist"},
        })
        assert response.status_code == 200
        assert response.json()["data"]["result"] == "not_found"

    def test_invalid_payload_is_400_envelope(self, client):
        response = client.post("/webhook/asaas", json={"payment": {"id": "pay_3"}})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "event" in body["error"]


class TestSimplifiedEnrollmentCrud:

    def test_create_list_and_get(self, client, course, admin_headers, admin_user):
        response = client.post(BASE, headers=admin_headers, json={
            "course_id": course.id,
            "student_name": "Carla Mendes",
            "student_email": "Carla@Example.com",
            "student_cpf": "123.456.789-00",
            "full_price": "18000.00",
            "discount_price": "15000.00",
        })

        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "pending"
        assert created["student_email"] == "carla@example.com"
        assert created["student_cpf"] == "12345678900"
        assert created["uuid"]
        assert created["expires_at"] is not None

        listed = client.get(BASE, params={"status": "pending"}, headers=admin_headers).json()
        assert [item["id"] for item in listed] == [created["id"]]

        fetched = client.get(f"{BASE}/{created['id']}", headers=admin_headers).json()
        assert fetched["uuid"] == created["uuid"]

    def test_create_for_unknown_course_is_404(self, client, admin_headers):
        response = client.post(BASE, headers=admin_headers, json={
            "course_id": 999, "student_name": "X", "student_email": "x@example.com",
        })
        assert response.status_code == 404

    def test_invalid_cpf_is_rejected(self, client, course, admin_headers):
        response = client.post(BASE, headers=admin_headers, json={
            "course_id": course.id, "student_name": "X", "student_email": "x@example.com", "student_cpf": "123",
        })
        assert response.status_code == 400

    def test_manual_status_change_is_logged(self, client, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id, status=SimplifiedEnrollmentStatus.PENDING.value)

        response = client.post(f"{BASE}/{enrollment.id}/status", headers=admin_headers,
                               json={"status": "payment_confirmed", "reason": "Pagamento em dinheiro"})

        assert response.status_code == 200
        assert response.json()["status"] == "payment_confirmed"
        log = client.get(f"{BASE}/{enrollment.id}/status-log", headers=admin_headers).json()
        assert log[-1]["reason"] == "Pagamento em dinheiro"

    def test_manual_conversion_is_refused(self, client, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id)
        response = client.post(f"{BASE}/{enrollment.id}/status", headers=admin_headers, json={"status": "converted"})
        assert response.status_code == 400


class TestCoursesStudentsEnrollments:

    def test_course_with_declared_contract_type(self, client, admin_headers):
        response = client.post("/api/courses", headers=admin_headers, json={
            "code": "tec01", "name": "Curso de Redes", "status": "published", "contract_type": "TECNICO",
        })
        assert response.status_code == 201
        assert response.json()["code"] == "TEC01"
        assert response.json()["contract_type"] == "TECNICO"

        duplicate = client.post("/api/courses", headers=admin_headers, json={"code": "TEC01", "name": "Outro"})
        assert duplicate.status_code == 409

    def test_converted_student_is_listed_and_editable(self, client, db_session, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id)
        client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers)
        db_session.refresh(enrollment)

        students = client.get("/api/students", headers=admin_headers).json()
        assert [s["id"] for s in students] == [enrollment.student_id]

        response = client.patch(f"/api/students/{enrollment.student_id}", headers=admin_headers,
                                json={"phone": "+55 81 99999-0000", "status": "inactive"})
        assert response.status_code == 200
        assert response.json()["status"] == "inactive"

    def test_enrollment_integration_checks(self, client, db_session, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id)
        client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers)
        db_session.refresh(enrollment)
        formal_id = enrollment.converted_enrollment_id

        listed = client.get("/api/enrollments", headers=admin_headers).json()
        assert [e["id"] for e in listed] == [formal_id]

        integration = client.get(f"/api/enrollments/{formal_id}/verify-integration", headers=admin_headers).json()
        assert integration == {"enrollment_id": formal_id, "valid": True, "issues": []}

        validation = client.get(f"/api/enrollments/{formal_id}/validate", headers=admin_headers).json()
        assert validation["valid"] is True

        course.status = "draft"
        db_session.commit()
        validation = client.get(f"/api/enrollments/{formal_id}/validate", headers=admin_headers).json()
        assert validation["valid"] is False
        assert validation["issues"] == ["Curso não publicado"]


class TestAuth:

    def test_login_and_me(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": "ADMIN@edunexia.com.br", "password": "Senha@12345"})

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "admin@edunexia.com.br"

    def test_wrong_password(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": "admin@edunexia.com.br", "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_converted_student_logs_in_with_cpf(self, client, db_session, course, make_simplified, admin_headers):
        enrollment = make_simplified(course.id, email="bruno@example.com", cpf="529.982.247-25")
        client.post(f"{BASE}/{enrollment.id}/sync", headers=admin_headers)

        response = client.post("/api/auth/login", json={"email": "bruno@example.com", "password": "52998224725"})

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "student"


def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "healthy"


def test_root_reports_configured_title_and_version(client):
    body = client.get("/").json()

    assert body["message"] == settings.API_TITLE
    assert body["version"] == settings.API_VERSION
    assert app.title == settings.API_TITLE
    for leftover in ("DEBUG", "API_HOST", "API_PORT"):
        assert not hasattr(settings, leftover)
