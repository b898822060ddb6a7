import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.main import app
from app.db.session import get_session
from app.services.auth import AuthService
from app.services.catalog import CatalogService, DEFAULT_FRAMED_PRINT
from app.services.customer import CustomerService
from app.services.fulfillment import get_fulfillment_client
from app.services.image_generator import ImageGenerationError, get_image_generator
from app.services.s3 import get_image_store


class FakeGenerator:
    def __init__(self):
        self.fail = False
        self.error = None
        self.calls = []

    def generate(self, prompt, aspect_ratio, reference_image=None):
        self.calls.append({"prompt": prompt, "aspect_ratio": aspect_ratio, "reference_image": reference_image})
        if self.error is not None:
            raise self.error
        if self.fail:
            raise ImageGenerationError("provider unavailable")
        return b"\x89PNG fake image"


class FakeImageStore:
    def __init__(self):
        self.saved = []

    def save_image(self, image_bytes, folder="designs", content_type="image/png"):
        self.saved.append(image_bytes)
        return f"https://images.test/{folder}/{len(self.saved)}.png"


class FakePrintify:
    def __init__(self):
        self.submitted = []

    def submit_order(self, order, design, product_type):
        self.submitted.append(order.id)
        return f"pf-{order.id}"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def printify():
    return FakePrintify()


@pytest.fixture
def product_type_id(engine):
    with Session(engine) as session:
        product_type = CatalogService(session).create(
            name="Framed Print", options=DEFAULT_FRAMED_PRINT, printify_blueprint_id=540
        )
        return product_type.id


@pytest.fixture
def styles(engine):
    with Session(engine) as session:
        return [style.key for style in CatalogService(session).seed_styles()]


@pytest.fixture
def customer(session):
    return CustomerService(session).get_or_create("customer-1")


@pytest.fixture(name="client")
def client_fixture(engine, generator, image_store):
    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_image_generator] = lambda: generator
    app.dependency_overrides[get_image_store] = lambda: image_store
    app.dependency_overrides[get_fulfillment_client] = lambda: None
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict:
    token = AuthService().create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}
