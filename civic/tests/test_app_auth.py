import unittest

from civic.security import create_access_token
from civic.tests.helpers import PASSWORD, ApiClientMixin, make_client


class AuthApiTests(ApiClientMixin, unittest.TestCase):
    def setUp(self):
        self.client = make_client()

    def test_register_returns_user_and_token(self):
        response = self.client.post(
            "/api/auth/register",
            json={
                "email": "Ada@Example.com",
                "username": "ada_l",
                "password": PASSWORD,
            },
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], "success")
        self.assertEqual(body["message"], "User registered successfully")
        user = body["data"]["user"]
        self.assertEqual(user["email"], "ada@example.com")
        self.assertEqual(user["username"], "ada_l")
        self.assertEqual(user["role"], "USER")
        self.assertNotIn("password_hash", user)
        self.assertNotIn("password", user)
        self.assertTrue(body["data"]["token"])

    def test_register_duplicate_email_or_username(self):
        self.register("ada")
        same_email = self.client.post(
            "/api/auth/register",
            json={"email": "ada@example.com", "username": "other", "password": PASSWORD},
        )
        self.assertEqual(same_email.status_code, 409)
        self.assertEqual(
            same_email.json()["message"],
            "User with this email or username already exists",
        )

        same_username = self.client.post(
            "/api/auth/register",
            json={"email": "new@example.com", "username": "ada", "password": PASSWORD},
        )
        self.assertEqual(same_username.status_code, 409)

    def test_register_validation_errors(self):
        response = self.client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "username": "a!", "password": "weak"},
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["status"], "error")
        self.assertEqual(body["message"], "Validation failed")
        fields = {err["field"] for err in body["errors"]}
        self.assertEqual(fields, {"email", "username", "password"})

    def test_register_password_needs_mixed_case_and_digit(self):
        response = self.client.post(
            "/api/auth/register",
            json={"email": "bob@example.com", "username": "bob", "password": "password1"},
        )
        self.assertEqual(response.status_code, 400)
        messages = [err["message"] for err in response.json()["errors"]]
        self.assertTrue(any(m.startswith("Password must contain") for m in messages))

    def test_register_rejects_password_over_72_bytes(self):
        too_long = self.client.post(
            "/api/auth/register",
            json={
                "email": "long@example.com",
                "username": "long_pw",
                "password": "Aa1" + "x" * 80,
            },
        )
        self.assertEqual(too_long.status_code, 400)
        self.assertEqual(too_long.json()["message"], "Validation failed")
        self.assertEqual(too_long.json()["errors"][0]["field"], "password")

        # 43 characters, 83 bytes.
        multibyte = self.client.post(
            "/api/auth/register",
            json={
                "email": "wide@example.com",
                "username": "wide_pw",
                "password": "Aa1" + "é" * 40,
            },
        )
        self.assertEqual(multibyte.status_code, 400)
        self.assertEqual(
            multibyte.json()["errors"][0]["message"],
            "Password must be at most 72 bytes long",
        )

    def test_register_accepts_72_byte_password(self):
        self.register("edge_pw", password="Aa1" + "x" * 69)

    def test_login_with_over_long_password_is_invalid_credentials(self):
        self.register("ada")
        response = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "Aa1" + "x" * 80},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid credentials")

    def test_login(self):
        self.register("ada")
        response = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": PASSWORD},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["data"]["user"]["username"], "ada")
        self.assertTrue(body["data"]["token"])

    def test_login_invalid_credentials(self):
        self.register("ada")
        wrong_password = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "Wrong1234"},
        )
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(wrong_password.json()["message"], "Invalid credentials")

        unknown = self.client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": PASSWORD},
        )
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(unknown.json()["message"], "Invalid credentials")

    def test_login_missing_field(self):
        response = self.client.post("/api/auth/login", json={"email": "ada@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "password")

    def test_protected_route_requires_token(self):
        response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Access token required")

    def test_protected_route_rejects_bad_token(self):
        response = self.client.get(
            "/api/projects", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_protected_route_rejects_expired_token(self):
        user = self.register("ada")["user"]
        token = create_access_token(
            {"id": user["id"], "email": user["email"], "role": user["role"]},
            "test-secret",
            expires_hours=-1,
        )
        response = self.client.get(
            "/api/projects", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Token expired")

    def test_token_for_unknown_user_is_invalid(self):
        token = create_access_token(
            {"id": 999, "email": "ghost@example.com", "role": "USER"}, "test-secret"
        )
        response = self.client.get(
            "/api/projects", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
