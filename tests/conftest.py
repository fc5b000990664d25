import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from hospital_scheduler import models
from hospital_scheduler.database import Base, get_db, make_engine
from hospital_scheduler.main import app
from hospital_scheduler.scripts.seed_demo import seed

from .helpers import DOCTOR_USER_ID, ORG_ADMIN_ID


@pytest.fixture
def engine(tmp_path):
    """SQLite en archivo por test (permite varias conexiones en los tests de hilos)."""
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def doctor(db) -> models.Doctor:
    """Hospital aprobado + doctor L-V 09:00-17:00, sábado marcado no disponible."""
    return seed(db, doctor_user_id=DOCTOR_USER_ID, org_admin_id=ORG_ADMIN_ID)


@pytest.fixture
def other_doctor(db, doctor) -> models.Doctor:
    """Segundo doctor en otro hospital, también aprobado."""
    hospital = models.Hospital(name="Otro", is_active=True,
                               approval_status=models.ApprovalStatus.approved)
    db.add(hospital)
    db.flush()
    d = models.Doctor(user_id=200, hospital_id=hospital.id, consultation_fee=300,
                      is_active=True, approval_status=models.ApprovalStatus.approved)
    d.availability.append(models.DoctorAvailability(day=models.Weekday.monday,
                                                    start_time="09:00", end_time="12:00"))
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


@pytest.fixture
def client(session_factory, doctor):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
