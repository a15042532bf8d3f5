"""Shared fixtures: a SQLite file database per test, a fixed clock and a recording dispatcher"""
from datetime import date, datetime, time

import pytest
from sqlalchemy.orm import sessionmaker

from easyagenda.config.database import build_engine, create_tables
from easyagenda.schemas.availability import DayAvailability
from easyagenda.schemas.catalog import CompanyCreate, ProfessionalCreate, ServiceCreate
from easyagenda.services.availability.rule_store import AvailabilityRuleService
from easyagenda.services.booking.booking_service import BookingService
from easyagenda.services.booking.locks import LocalLockProvider
from easyagenda.services.catalog.catalog_service import CatalogService
from easyagenda.services.notification.emitter import NotificationDispatcher, NotificationEmitter

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 12)

WORKDAY = DayAvailability(
    active=True,
    start_time=time(9, 0),
    end_time=time(18, 0),
    break_start=time(12, 0),
    break_end=time(13, 0),
)
MON_TO_FRI = {weekday: WORKDAY for weekday in range(5)}


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


class FixedClock:
    """Company wall-clock that only moves when a test moves it"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self, tz_name: str) -> datetime:
        return self.now


class RecordingDispatcher(NotificationDispatcher):

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.payloads = []

    def dispatch(self, payload):
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.payloads.append(payload)

    def events(self):
        return [p.event for p in self.payloads]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'easyagenda.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    # Tuesday the week before, well clear of any lockout
    return FixedClock(datetime(2030, 1, 1, 8, 0))


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def emitter(dispatcher):
    return NotificationEmitter(dispatcher)


@pytest.fixture
def lock_provider():
    return LocalLockProvider()


@pytest.fixture
def company(db):
    company = CatalogService.create_company(db, CompanyCreate(
        name="Clínica Bem Estar",
        timezone="America/Sao_Paulo",
        notification_channels=["email"],
    ))
    AvailabilityRuleService.set_company_rules(db, company.id, MON_TO_FRI)
    return company


@pytest.fixture
def professional(db, company):
    return CatalogService.create_professional(db, company.id, ProfessionalCreate(name="Ana Souza"))


@pytest.fixture
def make_service(db, company, professional):
    def _make(**overrides):
        fields = {
            "name": "Consulta",
            "duration_minutes": 60,
            "professional_ids": [professional.id],
        }
        fields.update(overrides)
        return CatalogService.create_service(db, company.id, ServiceCreate(**fields))

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def booking_service(db, lock_provider, emitter, clock):
    return BookingService(db, lock_provider=lock_provider, emitter=emitter, clock=clock)
