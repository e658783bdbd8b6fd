from fastapi.testclient import TestClient

from app.models.user import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def register_user(
    client: TestClient,
    user_name: str = "ab",
    email: str = "a@b.com",
    password: str = "secret123",
    full_name: str = "A B",
    with_avatar: bool = True,
    cover: bool = False,
):
    files = {}
    if with_avatar:
        files["avatar"] = ("avatar.png", PNG_BYTES, "image/png")
    if cover:
        files["coverImage"] = ("cover.png", PNG_BYTES, "image/png")
    return client.post(
        "/api/v1/users/register",
        data={
            "fullName": full_name,
            "email": email,
            "userName": user_name,
            "password": password,
        },
        files=files or None,
    )


def login_user(client: TestClient, password: str = "secret123", **identifier):
    body = {"password": password}
    body.update(identifier or {"userName": "ab"})
    return client.post("/api/v1/users/login", json=body)


def stored_user(db, user_name: str) -> User:
    db.expire_all()
    return db.query(User).filter(User.user_name == user_name).one()
