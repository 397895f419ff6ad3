from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinicops.db import Base
from clinicops.models import PatientSession, Therapist
from clinicops.store import SqlDataStore


class Seeder:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def therapist(self, first_name: str = "Ada", last_name: str = "Nowak", is_active: bool = True) -> int:
        with self.session_factory() as db:
            row = Therapist(
                first_name=first_name,
                last_name=last_name,
                email=f"{first_name.lower()}@clinic.local",
                is_active=is_active,
            )
            db.add(row)
            db.commit()
            return row.id

    def session(
        self,
        therapist_id: int,
        scheduled_date: datetime,
        duration: int = 60,
        status: str = "SCHEDULED",
        service_name: str = "Physiotherapy",
    ) -> int:
        with self.session_factory() as db:
            row = PatientSession(
                therapist_id=therapist_id,
                scheduled_date=scheduled_date,
                duration=duration,
                status=status,
                service_name=service_name,
            )
            db.add(row)
            db.commit()
            return row.id


@pytest.fixture
def session_factory(tmp_path):
    db_path = tmp_path / "test_clinicops.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlDataStore(session_factory)


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)
