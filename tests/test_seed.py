from sqlalchemy import create_engine
from werkzeug.security import check_password_hash

from app.archreview.models import Base, Role, User
from app.archreview.modules.solution_review.transitions import ReviewRole
from scripts._db_utils import script_session
from scripts.init_db import seed_only


def test_seed_creates_review_roles_and_is_idempotent(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(db_url, future=True)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    monkeypatch.setenv("ADMIN_EMAIL", "Owner@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "first")

    seed_only(database_url=db_url)
    monkeypatch.setenv("ADMIN_PASSWORD", "second")
    seed_only(database_url=db_url)

    with script_session(db_url) as s:
        roles = {r.key: {p.key for p in r.permissions} for r in s.query(Role).all()}
        admin = s.query(User).filter(User.email == "owner@example.com").one()
        assert admin.role_keys() == frozenset({ReviewRole.ADMIN.value})
        assert check_password_hash(admin.password_hash, "first")

    assert set(roles) == {r.value for r in ReviewRole}
    assert roles[ReviewRole.EAO.value] == {"reviews.view", "reviews.transition"}
    assert roles[ReviewRole.ARCHITECT.value] == {"reviews.view", "reviews.edit", "reviews.transition"}
    assert roles[ReviewRole.ADMIN.value] == {"reviews.view", "reviews.edit", "reviews.transition"}
