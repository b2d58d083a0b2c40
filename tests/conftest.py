import pytest

from app.archreview import create_app
from app.archreview.models import Base
from app.archreview.rbac import Actor


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("AUTO_ACTIVATE_ON_APPROVE", raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def s(app):
    sm = app.extensions["sqlalchemy_sessionmaker"]
    session = sm()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def architect():
    return Actor(identity="architect@example.com", roles=frozenset({"ARCHITECT"}))


@pytest.fixture()
def eao():
    return Actor(identity="eao@example.com", roles=frozenset({"EAO"}))


@pytest.fixture()
def full_sections():
    return {
        "solutionOverview": {
            "solutionDetails": {"solutionName": "Payments Hub", "projectName": "PH-2026"},
            "reviewType": "NEW_BUILD",
            "businessUnit": "Finance",
        },
        "businessCapabilities": [{"l1Capability": "Finance", "l2Capability": "Payments"}],
        "dataAssets": [{"componentName": "ledger", "dataClassification": "Confidential"}],
        "systemComponents": [{"name": "payments-api", "hostedOn": "Cloud", "isInternetFacing": True}],
        "technologyComponents": [{"componentName": "payments-api", "productName": "PostgreSQL", "productVersion": "16"}],
        "integrationFlows": [{"componentName": "payments-api", "counterpartSystemCode": "SYS-002"}],
        "enterpriseTools": [{"tool": {"name": "Splunk", "type": "Logging"}, "onboarded": "Yes"}],
        "processCompliances": [{"standardGuideline": "PCI-DSS", "compliant": "Yes"}],
    }
