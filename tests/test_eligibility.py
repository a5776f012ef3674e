from datetime import timedelta

import pytest

from blood.eligibility import ELIGIBILITY_DAYS, check_eligibility
from blood.models import Appointment


@pytest.mark.django_db
def test_eighty_nine_days_is_one_day_short(make_donor, today):
    donor = make_donor(last_donation_date=today - timedelta(days=89))

    elig = check_eligibility(donor, on=today)

    assert not elig.is_eligible
    assert elig.days_until_eligible == 1
    assert elig.next_eligible_date == today + timedelta(days=1)


@pytest.mark.django_db
def test_ninety_days_is_eligible(make_donor, today):
    donor = make_donor(last_donation_date=today - timedelta(days=ELIGIBILITY_DAYS))

    elig = check_eligibility(donor, on=today)

    assert elig.is_eligible
    assert elig.days_until_eligible == 0


@pytest.mark.django_db
def test_first_time_donor_is_eligible(make_donor):
    elig = check_eligibility(make_donor())

    assert elig.is_eligible
    assert elig.next_eligible_date is None
    assert elig.is_available


@pytest.mark.django_db
def test_open_appointment_makes_donor_unavailable(make_donor, today):
    donor = make_donor()
    Appointment.objects.create(donor=donor, scheduled_date=today, status="CONFIRMED")

    assert not check_eligibility(donor).is_available

    Appointment.objects.filter(donor=donor).update(status="COMPLETED")
    assert check_eligibility(donor).is_available


@pytest.mark.django_db
def test_inactive_donor_is_neither_active_nor_available(make_donor):
    elig = check_eligibility(make_donor(is_active=False))

    assert not elig.is_active
    assert not elig.is_available
    assert elig.is_eligible
