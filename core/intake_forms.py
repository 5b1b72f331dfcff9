"""Step tables for the three intake forms.

Each form is data: a tuple of Steps whose FieldRules carry the per-step
validation, including rules that only apply when another field has a given
value.
"""
from typing import Optional

from core.fee_rules import (
    CONSULTATION_FEES,
    ITINERARY_PLANNING_FEES,
    VISA_ASSISTANCE_FEES,
    ParticipantCategory,
)
from core.intake import (
    EMAIL_PATTERN,
    FieldRule,
    IntakeForm,
    IntakeSession,
    Participant,
    Step,
    end_not_before_start,
)

PRIVATE_CAR = "Private car with driver"
MAX_TRIP_TYPES = 3


class UnknownFormError(Exception):
    def __init__(self, form_key: str):
        super().__init__(f"Unknown intake form: {form_key}")
        self.form_key = form_key


def _has_choice(name: str, choice: str):
    return lambda values: choice in (values.get(name) or [])


def _contact_rules(with_residence: bool = True) -> tuple:
    rules = [
        FieldRule("contact_full_name", "Full name"),
        FieldRule("contact_email", "Email", kind="email", pattern=EMAIL_PATTERN),
        FieldRule("contact_phone", "Phone number"),
    ]
    if with_residence:
        rules.append(FieldRule("contact_residence", "Country of residence"))
    return tuple(rules)


_travel_dates_in_order = end_not_before_start(
    "travel_start_date", "travel_end_date", "Travel end date cannot be before the start date"
)


# ── Travel consultation ──────────────────────────────────────────────────────

CONSULTATION = IntakeForm(
    key="consultation",
    title="Travel Consultation",
    fee_rules=CONSULTATION_FEES,
    steps=(
        Step(
            key="contact_travelers",
            title="Contact & Travelers",
            rules=_contact_rules() + (
                FieldRule(
                    "fee_acknowledged", "Fee acknowledgement", kind="bool",
                    message="Please acknowledge the consultation fee",
                ),
            ),
            participant_fields=("display_name", "age_years", "category", "nationality"),
        ),
        Step(
            key="trip_specifics",
            title="Trip Specifics",
            rules=(
                FieldRule("destination_clarity", "Destination clarity"),
                FieldRule("travel_start_date", "Travel start date", kind="date"),
                FieldRule("travel_end_date", "Travel end date", kind="date"),
                FieldRule("trip_duration", "Trip duration"),
                FieldRule(
                    "trip_type", "Trip types", kind="choices",
                    min_items=1, max_items=MAX_TRIP_TYPES,
                    message="Please select at least one trip type",
                ),
                FieldRule("must_do_activities", "Must-do activities"),
                FieldRule("accommodation_style", "Accommodation style"),
                FieldRule("destination_details", "Destination details", required=False),
            ),
            checks=(_travel_dates_in_order,),
        ),
        Step(
            key="logistics",
            title="Logistics & Budget",
            rules=(
                FieldRule(
                    "transport_method", "Transport methods", kind="choices", min_items=1,
                    message="Please select at least one transportation method",
                ),
                FieldRule(
                    "driver_requirement", "Driver requirement",
                    when=_has_choice("transport_method", PRIVATE_CAR),
                ),
                FieldRule(
                    "car_seat_needs", "Car seat needs", required=False,
                    when=_has_choice("transport_method", PRIVATE_CAR),
                ),
                FieldRule("yellow_fever", "Yellow fever vaccination status"),
                FieldRule("malaria_plan", "Malaria plan"),
                FieldRule("total_budget", "Total budget"),
                FieldRule("spending_style", "Spending style"),
                FieldRule("dietary_restrictions", "Dietary restrictions", required=False),
            ),
        ),
        Step(
            key="review",
            title="Review & Submit",
            rules=(
                FieldRule("referral_source", "Referral source"),
                FieldRule(
                    "terms_agreed", "Terms", kind="bool",
                    message="Please agree to the terms and conditions",
                ),
                FieldRule(
                    "privacy_agreed", "Privacy policy", kind="bool",
                    message="Please agree to the privacy policy",
                ),
            ),
        ),
    ),
)


# ── Visa assistance ──────────────────────────────────────────────────────────

def _applicant_documents(session: IntakeSession) -> Optional[str]:
    """Per-applicant conditional documents."""
    for position, applicant in enumerate(session.composition, start=1):
        if applicant.extra.get("has_valid_passport") is False and not applicant.extra.get("passport_expiry_date"):
            return f"Applicant {position}: passport expiry date is required"
        if applicant.extra.get("previous_visa_refusal") and not applicant.extra.get("refusal_details"):
            return f"Applicant {position}: please describe the previous visa refusal"
    return None


VISA_ASSISTANCE = IntakeForm(
    key="visa_assistance",
    title="Visa Assistance",
    fee_rules=VISA_ASSISTANCE_FEES,
    participant_label="Applicant",
    default_category=ParticipantCategory.ADULT,
    steps=(
        Step(key="contact", title="Contact Information", rules=_contact_rules()),
        Step(
            key="visa_details",
            title="Visa Details",
            rules=(
                FieldRule("destination_country", "Destination country"),
                FieldRule("travel_purpose", "Travel purpose"),
                FieldRule("planned_travel_date", "Planned travel date", kind="date", required=False),
                FieldRule("duration_of_stay", "Duration of stay", required=False),
            ),
        ),
        Step(
            key="applicants",
            title="Applicants",
            participant_fields=("display_name", "age_years", "category", "nationality"),
            checks=(_applicant_documents,),
        ),
        Step(
            key="review",
            title="Review & Submit",
            rules=(
                FieldRule("referral_source", "Referral source"),
                FieldRule("additional_notes", "Additional notes", required=False),
            ),
        ),
    ),
)


# ── Itinerary planning ───────────────────────────────────────────────────────

ITINERARY_PLANNING = IntakeForm(
    key="itinerary_planning",
    title="Itinerary Planning",
    fee_rules=ITINERARY_PLANNING_FEES,
    default_category=ParticipantCategory.ADULT,
    steps=(
        Step(key="contact", title="Contact Information", rules=_contact_rules(with_residence=False)),
        Step(
            key="trip",
            title="Trip Details",
            rules=(
                FieldRule("destination", "Destination"),
                FieldRule("travel_start_date", "Travel start date", kind="date"),
                FieldRule("travel_end_date", "Travel end date", kind="date"),
                FieldRule("interests", "Interests", kind="choices", required=False),
                FieldRule("pacing_preference", "Pacing preference", required=False),
            ),
            checks=(_travel_dates_in_order,),
        ),
        Step(
            key="travelers",
            title="Travelers",
            participant_fields=("display_name", "age_years", "category"),
        ),
        Step(
            key="review",
            title="Review & Submit",
            rules=(
                FieldRule("budget_range", "Budget range", required=False),
                FieldRule("referral_source", "Referral source"),
            ),
        ),
    ),
)


FORMS = {form.key: form for form in (CONSULTATION, VISA_ASSISTANCE, ITINERARY_PLANNING)}


def get_form(form_key: str) -> IntakeForm:
    try:
        return FORMS[form_key]
    except KeyError:
        raise UnknownFormError(form_key) from None


def create_session(form_key: str) -> IntakeSession:
    return IntakeSession(get_form(form_key))


def session_from_payload(form_key: str, payload: dict, paid: bool = False) -> IntakeSession:
    """Rebuild a session from a stored or posted payload.

    A session rebuilt from a paid booking has its participant count locked.
    """
    form = get_form(form_key)
    participants = [Participant.from_dict(p) for p in payload.get("participants") or []]
    session = IntakeSession(
        form,
        values=payload.get("values") or {},
        composition=participants,
        submission_id=payload.get("submission_id"),
        participant_count_locked=paid,
    )
    session.current_index = len(form.steps) - 1
    return session
