from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from civic.app import create_app
from civic.config import Settings
from civic.security import hash_password
from civic.types import Role

PASSWORD = "Passw0rd"


def make_client() -> TestClient:
    settings = Settings(
        use_in_memory_backends=True,
        jwt_secret="test-secret",
        x_sync_enabled=False,
    )
    return TestClient(create_app(settings))


def future(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class ApiClientMixin:
    """Register/login helpers for API tests."""

    client: TestClient

    def register(self, username: str, password: str = PASSWORD) -> dict:
        response = self.client.post(
            "/api/auth/register",
            json={
                "email": f"{username}@example.com",
                "username": username,
                "password": password,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    def auth_headers(self, username: str) -> dict:
        token = self.register(username)["token"]
        return {"Authorization": f"Bearer {token}"}

    def admin_headers(self, username: str = "admin") -> dict:
        self.client.app.state.db.create_user(
            email=f"{username}@example.com",
            username=username,
            password_hash=hash_password(PASSWORD),
            role=Role.ADMIN,
        )
        response = self.client.post(
            "/api/auth/login",
            json={"email": f"{username}@example.com", "password": PASSWORD},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['token']}"}
