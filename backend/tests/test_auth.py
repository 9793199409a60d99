"""
Authentication and account tests.

Verifies:
- First registered user becomes the owner, later ones employees
- Login/logout lifecycle of opaque session tokens
- Profile and password changes
- Email verification and password recovery codes
- Owner-only staff administration
"""

from globos.extensions import db
from globos.models import SessionToken, User, VerificationCode
from globos.services import session_service

from conftest import TEST_PASSWORD, auth_headers


def _register(client, email, **extra):
    body = {"nombre": "Persona", "email": email, "password": TEST_PASSWORD}
    body.update(extra)
    return client.post("/api/auth/registro", json=body)


class TestRegistration:

    def test_first_user_is_owner(self, client, db_session):
        resp = _register(client, "primera@globos.test", rol="empleado")
        assert resp.status_code == 201
        assert resp.json["esPrimerUsuario"] is True
        assert resp.json["user"]["rol"] == "propietario"
        assert resp.json["token"]

    def test_second_user_defaults_to_employee(self, client, db_session):
        _register(client, "primera@globos.test")
        resp = _register(client, "segunda@globos.test")
        assert resp.status_code == 201
        assert resp.json["esPrimerUsuario"] is False
        assert resp.json["user"]["rol"] == "empleado"
        assert resp.json["user"]["permisos"] == {
            "ventas": True,
            "productos": False,
            "clientes": True,
            "servicios": True,
            "reportes": False,
            "configuracion": False,
        }

    def test_duplicate_email_rejected(self, client, db_session):
        _register(client, "dup@globos.test")
        resp = _register(client, "DUP@globos.test")
        assert resp.status_code == 400
        assert resp.json["error"] == "Usuario ya existe"

    def test_short_password_rejected(self, client, db_session):
        resp = client.post(
            "/api/auth/registro",
            json={"nombre": "Persona", "email": "a@globos.test", "password": "123"},
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Datos de entrada inválidos"
        assert any(d["campo"] == "password" for d in resp.json["details"])

    def test_customer_registration_sends_verification_code(self, client, db_session, fake_outbound):
        resp = client.post("/api/auth/registroCliente", json={
            "nombre": "Cliente Web",
            "email": "web@globos.test",
            "password": TEST_PASSWORD,
            "telefono": "5551234567",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["rol"] == "cliente"
        assert resp.json["emailVerificacion"]["success"] is True
        assert fake_outbound["emails"][0]["to"] == "web@globos.test"

        code = db_session.query(VerificationCode).filter_by(email="web@globos.test").one()
        assert code.tipo == "verificacion"
        assert len(code.codigo) == 6

    def test_first_account_as_customer_stays_customer(self, client, db_session):
        resp = client.post("/api/auth/registroCliente", json={
            "nombre": "Cliente Web",
            "email": "web@globos.test",
            "password": TEST_PASSWORD,
            "telefono": "5551234567",
        })
        assert resp.json["user"]["rol"] == "cliente"

        staff = _register(client, "staff@globos.test")
        assert staff.json["esPrimerUsuario"] is False
        assert staff.json["user"]["rol"] == "empleado"

    def test_customer_registration_requires_phone(self, client, db_session):
        resp = client.post("/api/auth/registro-cliente", json={
            "nombre": "Cliente Web",
            "email": "web@globos.test",
            "password": TEST_PASSWORD,
        })
        assert resp.status_code == 400


class TestLogin:

    def test_login_returns_token_and_updates_last_access(self, client, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["user"]["ultimoAcceso"] is not None
        assert "password_hash" not in resp.json["user"]

    def test_wrong_password(self, client, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": "incorrecta"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Credenciales inválidas"

    def test_unknown_email(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "nadie@globos.test", "password": TEST_PASSWORD})
        assert resp.status_code == 401
        assert resp.json["error"] == "Credenciales inválidas"

    def test_inactive_account(self, client, employee):
        employee.activo = False
        db.session.commit()
        resp = client.post("/api/auth/login", json={"email": employee.email, "password": TEST_PASSWORD})
        assert resp.status_code == 401
        assert resp.json["error"] == "Cuenta desactivada"

    def test_logout_revokes_token(self, client, owner_headers):
        assert client.get("/api/auth/verificar-token", headers=owner_headers).status_code == 200
        assert client.post("/api/auth/logout", headers=owner_headers).status_code == 200
        assert client.get("/api/auth/verificar-token", headers=owner_headers).status_code == 401

    def test_expired_token_rejected(self, client, owner):
        session, token = session_service.create_session(owner)
        session.expires_at = session.created_at
        db.session.commit()
        resp = client.get("/api/auth/perfil", headers=auth_headers(token))
        assert resp.status_code == 401

    def test_token_is_stored_hashed(self, client, owner):
        _session, token = session_service.create_session(owner)
        stored = db.session.query(SessionToken).filter_by(user_id=owner.id).one()
        assert stored.token_hash != token
        assert stored.token_hash == session_service.hash_token(token)


class TestProfile:

    def test_get_profile(self, client, employee, employee_headers):
        resp = client.get("/api/auth/perfil", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["email"] == employee.email

    def test_update_profile(self, client, employee, employee_headers):
        resp = client.put("/api/auth/perfil", headers=employee_headers, json={
            "nombre": "Nuevo Nombre",
            "email": "nuevo@globos.test",
            "telefono": "5559876543",
        })
        assert resp.status_code == 200
        assert resp.json["user"]["nombre"] == "Nuevo Nombre"
        assert resp.json["user"]["emailVerificado"] is False

    def test_update_profile_email_taken(self, client, owner, employee_headers):
        resp = client.put("/api/auth/perfil", headers=employee_headers, json={
            "nombre": "Empleado",
            "email": owner.email,
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "Usuario ya existe"

    def test_change_password_requires_current(self, client, employee_headers):
        resp = client.put("/api/auth/cambiar-password", headers=employee_headers, json={
            "passwordActual": "incorrecta",
            "passwordNueva": "otraClave1",
        })
        assert resp.status_code == 401
        assert resp.json["error"] == "Contraseña incorrecta"

    def test_change_password_revokes_other_sessions(self, client, employee, employee_headers):
        other_headers = auth_headers(session_service.create_session(employee)[1])

        resp = client.put("/api/auth/cambiar-password", headers=employee_headers, json={
            "passwordActual": TEST_PASSWORD,
            "passwordNueva": "otraClave1",
        })
        assert resp.status_code == 200
        assert client.get("/api/auth/perfil", headers=employee_headers).status_code == 200
        assert client.get("/api/auth/perfil", headers=other_headers).status_code == 401

        login = client.post("/api/auth/login", json={"email": employee.email, "password": "otraClave1"})
        assert login.status_code == 200


class TestVerificationCodes:

    def _issue(self, client, customer, tipo="verificacion"):
        client.post("/api/auth/reenviar-codigo", json={"email": customer.email, "tipo": tipo})
        return (
            db.session.query(VerificationCode)
            .filter_by(email=customer.email, tipo=tipo, usado=False)
            .one()
        )

    def test_verify_email(self, client, customer):
        customer.email_verificado = False
        db.session.commit()
        code = self._issue(client, customer)

        resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": code.codigo})
        assert resp.status_code == 200
        assert db.session.get(User, customer.id).email_verificado is True

    def test_code_is_single_use(self, client, customer):
        customer.email_verificado = False
        db.session.commit()
        code = self._issue(client, customer)
        codigo = code.codigo

        client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": codigo})
        resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": codigo})
        assert resp.status_code == 400
        assert resp.json["error"] == "Código inválido"

    def test_attempts_are_limited(self, client, customer):
        customer.email_verificado = False
        db.session.commit()
        code = self._issue(client, customer)
        wrong = "000000" if code.codigo != "000000" else "111111"

        for _ in range(3):
            resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": wrong})
            assert resp.status_code == 400

        resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": code.codigo})
        assert resp.status_code == 400
        assert "Demasiados intentos" in resp.json["message"]

    def test_new_code_invalidates_previous(self, client, customer):
        customer.email_verificado = False
        db.session.commit()
        first = self._issue(client, customer).codigo
        second = self._issue(client, customer).codigo

        if first != second:
            resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": first})
            assert resp.status_code == 400
        resp = client.post("/api/auth/verificar-email", json={"email": customer.email, "codigo": second})
        assert resp.status_code == 200

    def test_password_recovery_flow(self, client, customer, fake_outbound):
        resp = client.post("/api/auth/recuperar-password", json={"email": customer.email})
        assert resp.status_code == 200
        assert fake_outbound["emails"]

        code = db.session.query(VerificationCode).filter_by(email=customer.email, tipo="recuperacion").one()
        resp = client.post("/api/auth/resetear-password", json={
            "email": customer.email,
            "codigo": code.codigo,
            "nuevaPassword": "nuevaClave9",
        })
        assert resp.status_code == 200

        login = client.post("/api/auth/login", json={"email": customer.email, "password": "nuevaClave9"})
        assert login.status_code == 200

    def test_recovery_for_unknown_email_looks_the_same(self, client, db_session, fake_outbound):
        resp = client.post("/api/auth/recuperar-password", json={"email": "nadie@globos.test"})
        assert resp.status_code == 200
        assert fake_outbound["emails"] == []


class TestStaffAdministration:

    def test_owner_lists_staff(self, client, owner_headers, employee, customer):
        resp = client.get("/api/auth/usuarios", headers=owner_headers)
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.json["usuarios"]}
        assert employee.email in emails
        assert customer.email not in emails

    def test_employee_cannot_list_staff(self, client, employee_headers):
        resp = client.get("/api/auth/usuarios", headers=employee_headers)
        assert resp.status_code == 403

    def test_owner_grants_permission(self, client, owner_headers, employee):
        resp = client.put(
            f"/api/auth/usuarios/{employee.id}/permisos",
            headers=owner_headers,
            json={"reportes": True},
        )
        assert resp.status_code == 200
        assert resp.json["user"]["permisos"]["reportes"] is True
        assert resp.json["user"]["permisos"]["ventas"] is True

    def test_deactivation_revokes_sessions(self, client, owner_headers, employee, employee_headers):
        resp = client.put(
            f"/api/auth/usuarios/{employee.id}/estado",
            headers=owner_headers,
            json={"activo": False},
        )
        assert resp.status_code == 200
        assert client.get("/api/auth/perfil", headers=employee_headers).status_code == 401

    def test_owner_cannot_deactivate_self(self, client, owner, owner_headers):
        resp = client.put(
            f"/api/auth/usuarios/{owner.id}/estado",
            headers=owner_headers,
            json={"activo": False},
        )
        assert resp.status_code == 400
