import uuid
from datetime import time

import pytest

from easyagenda.core.errors import InvalidRuleError, NotFoundError
from easyagenda.schemas.availability import AgendaBlockCreate, DayAvailability, OverrideCreate, RuleOwnerType
from easyagenda.schemas.catalog import AvailabilityType, CompanyCreate, ProfessionalCreate, ServiceCreate
from easyagenda.scheduling.resolver import OverrideScope
from easyagenda.services.availability.availability_service import SlotQueryService
from easyagenda.services.availability.rule_store import AvailabilityRuleService
from easyagenda.services.catalog.catalog_service import CatalogService
from tests.conftest import MONDAY, MON_TO_FRI, SATURDAY, TUESDAY, WORKDAY, at

MORNING = DayAvailability(active=True, start_time=time(8), end_time=time(12))


def open_starts(db, professional, service, day, clock):
    return [s.start.hour for s in SlotQueryService.get_open_slots(db, professional.id, service.id, day, day, now=clock.now)]


class TestWeeklySchedules:

    def test_company_rules_round_trip(self, db, company):
        assert AvailabilityRuleService.get_rule_set(db, RuleOwnerType.COMPANY, company.id) == MON_TO_FRI

    def test_replacing_company_rules(self, db, company):
        AvailabilityRuleService.set_company_rules(db, company.id, {5: MORNING})
        assert AvailabilityRuleService.get_rule_set(db, RuleOwnerType.COMPANY, company.id) == {5: MORNING}

    def test_invalid_rules_are_rejected_and_nothing_changes(self, db, company):
        bad = {0: DayAvailability(active=True, start_time=time(18), end_time=time(9))}
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.set_company_rules(db, company.id, bad)
        assert AvailabilityRuleService.get_rule_set(db, RuleOwnerType.COMPANY, company.id) == MON_TO_FRI

    def test_break_outside_day_is_rejected(self, db, company):
        bad = {1: DayAvailability(active=True, start_time=time(9), end_time=time(12),
                                  break_start=time(11), break_end=time(13))}
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.set_company_rules(db, company.id, bad)

    def test_unknown_weekday_is_rejected(self, db, company):
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.set_company_rules(db, company.id, {7: WORKDAY})

    def test_professional_schedule_and_inherit(self, db, professional, service, clock):
        AvailabilityRuleService.set_professional_rules(db, professional.id, {0: MORNING})
        db.refresh(professional)
        assert professional.inherits_company_availability is False
        assert open_starts(db, professional, service, MONDAY, clock) == [8, 9, 10, 11]
        assert open_starts(db, professional, service, TUESDAY, clock) == []

        AvailabilityRuleService.inherit_company_rules(db, professional.id)
        assert open_starts(db, professional, service, TUESDAY, clock) == [9, 10, 11, 13, 14, 15, 16, 17]
        assert AvailabilityRuleService.get_rule_set(db, RuleOwnerType.PROFESSIONAL, professional.id) == {}

    def test_empty_own_schedule_is_rejected(self, db, professional):
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.set_professional_rules(db, professional.id, {})

    def test_service_schedule_switches_to_specific(self, db, professional, service, clock):
        AvailabilityRuleService.set_service_rules(db, service.id, {5: MORNING})
        db.refresh(service)
        assert service.availability_type == AvailabilityType.SPECIFIC.value
        assert open_starts(db, professional, service, SATURDAY, clock) == [8, 9, 10, 11]
        assert open_starts(db, professional, service, MONDAY, clock) == []

    def test_unknown_owner(self, db):
        with pytest.raises(NotFoundError):
            AvailabilityRuleService.set_professional_rules(db, uuid.uuid4(), {0: MORNING})


class TestOverrides:

    def test_company_day_off(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_override(db, OverrideCreate(company_id=company.id, date=MONDAY, reason="Feriado"))
        assert open_starts(db, professional, service, MONDAY, clock) == []
        assert len(open_starts(db, professional, service, TUESDAY, clock)) == 8

    def test_special_hours_for_one_professional(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_override(db, OverrideCreate(
            company_id=company.id, professional_id=professional.id, date=SATURDAY, is_available=True, day=MORNING,
        ))
        assert open_starts(db, professional, service, SATURDAY, clock) == [8, 9, 10, 11]

    def test_same_scope_and_date_is_replaced(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_override(db, OverrideCreate(company_id=company.id, date=MONDAY))
        AvailabilityRuleService.add_override(db, OverrideCreate(
            company_id=company.id, date=MONDAY, is_available=True, day=MORNING,
        ))
        assert open_starts(db, professional, service, MONDAY, clock) == [8, 9, 10, 11]

    def test_service_override_beats_company_override(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_override(db, OverrideCreate(company_id=company.id, date=MONDAY))
        AvailabilityRuleService.add_override(db, OverrideCreate(
            company_id=company.id, service_id=service.id, date=MONDAY, is_available=True, day=MORNING,
        ))
        context = AvailabilityRuleService.load_context(db, professional, service, MONDAY, MONDAY)
        assert {o.scope for o in context.overrides} == {OverrideScope.COMPANY, OverrideScope.SERVICE}
        assert open_starts(db, professional, service, MONDAY, clock) == [8, 9, 10, 11]

    def test_available_override_needs_hours(self, db, company):
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.add_override(db, OverrideCreate(company_id=company.id, date=MONDAY, is_available=True))

    def test_override_scope_must_belong_to_company(self, db, professional):
        other = CatalogService.create_company(db, CompanyCreate(name="Outra"))
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.add_override(db, OverrideCreate(
                company_id=other.id, professional_id=professional.id, date=MONDAY,
            ))

    def test_remove_override(self, db, company, professional, service, clock):
        override = AvailabilityRuleService.add_override(db, OverrideCreate(company_id=company.id, date=MONDAY))
        AvailabilityRuleService.remove_override(db, override.id)
        assert len(open_starts(db, professional, service, MONDAY, clock)) == 8


class TestAgendaBlocks:

    def test_block_hides_overlapping_slots(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_agenda_block(db, AgendaBlockCreate(
            company_id=company.id, start_datetime=at(MONDAY, 9, 30), end_datetime=at(MONDAY, 10, 30),
        ))
        assert open_starts(db, professional, service, MONDAY, clock) == [11, 13, 14, 15, 16, 17]

    def test_weekly_block_repeats(self, db, company, professional, service, clock):
        AvailabilityRuleService.add_agenda_block(db, AgendaBlockCreate(
            company_id=company.id, professional_id=professional.id,
            start_datetime=at(MONDAY, 15), end_datetime=at(MONDAY, 16), repeats_weekly=True,
        ))
        next_monday = MONDAY.replace(day=14)
        assert 15 not in open_starts(db, professional, service, next_monday, clock)
        assert 15 in open_starts(db, professional, service, TUESDAY, clock)

    def test_other_professionals_block_does_not_apply(self, db, company, professional, make_service, clock):
        colleague = CatalogService.create_professional(db, company.id, ProfessionalCreate(name="Bruno"))
        service = make_service()
        AvailabilityRuleService.add_agenda_block(db, AgendaBlockCreate(
            company_id=company.id, professional_id=colleague.id,
            start_datetime=at(MONDAY, 9), end_datetime=at(MONDAY, 18),
        ))
        assert len(open_starts(db, professional, service, MONDAY, clock)) == 8

    def test_deactivated_block_no_longer_applies(self, db, company, professional, service, clock):
        block = AvailabilityRuleService.add_agenda_block(db, AgendaBlockCreate(
            company_id=company.id, start_datetime=at(MONDAY, 9), end_datetime=at(MONDAY, 18),
        ))
        AvailabilityRuleService.deactivate_agenda_block(db, block.id)
        assert len(open_starts(db, professional, service, MONDAY, clock)) == 8

    def test_invalid_blocks(self, db, company):
        with pytest.raises(InvalidRuleError):
            AvailabilityRuleService.add_agenda_block(db, AgendaBlockCreate(
                company_id=company.id, start_datetime=at(MONDAY, 10), end_datetime=at(MONDAY, 9),
            ))


class TestServicePolicy:

    @pytest.mark.parametrize("overrides", [
        {"duration_minutes": 0},
        {"interval_between_slots_minutes": -5},
        {"simultaneous_bookings_per_slot": 0},
        {"simultaneous_bookings_per_user": 0},
        {"booking_fee_enabled": True},
    ])
    def test_invalid_service_is_rejected(self, db, company, overrides):
        fields = {"name": "Corte", "duration_minutes": 30}
        fields.update(overrides)
        with pytest.raises(InvalidRuleError):
            CatalogService.create_service(db, company.id, ServiceCreate(**fields))

    def test_unknown_timezone_is_rejected(self, db):
        with pytest.raises(InvalidRuleError):
            CatalogService.create_company(db, CompanyCreate(name="X", timezone="Mars/Olympus"))
