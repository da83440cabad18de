from sqlmodel import Session, SQLModel

from signalcast.auth.service import create_access_token, register_user
from signalcast.core.database import engine
from signalcast.models.Signal import Signal
from signalcast.models.User import RegisterRequest, User

PASSWORD = "password1"


def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)


def create_user(email: str, password: str = PASSWORD) -> str:
    """Registers ``email`` directly through the service and returns a token."""
    with Session(engine) as session:
        user = register_user(session, RegisterRequest(identifier=email, secret=password))
        return create_access_token(user)


def login(client, email: str, password: str = PASSWORD) -> str:
    client.post("/api/auth/register", json={"identifier": email, "secret": password})
    resp = client.post("/api/auth/login", json={"identifier": email, "secret": password})
    return resp.json()["token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
