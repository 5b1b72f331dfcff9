"""Intake wizard: a multi-step form as an explicit state machine.

An IntakeSession walks an IntakeForm's step table. Forward navigation is
guarded by the current step's validator; validation failures come back as
message lists, never exceptions. Every change to the composition recomputes
the quoted fee synchronously, so the displayed total always matches the
displayed travelers.
"""
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

from core.fee_rules import (
    CATEGORY_LABELS,
    FeeRuleSet,
    ParticipantCategory,
    compute_fee,
    format_money,
)

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 1

PARTICIPANT_FIELDS = ("display_name", "age_years", "category", "nationality", "special_needs")

FIELD_LABELS = {
    "display_name": "name",
    "age_years": "age",
    "category": "traveler type",
    "nationality": "nationality",
    "special_needs": "special needs",
}


class SessionClosedError(Exception):
    """Raised when a submitted session is mutated."""


# ── Participants ─────────────────────────────────────────────────────────────

def _coerce_age(value) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Participant:
    display_name: str = ""
    age_years: Optional[int] = None
    category: Optional[ParticipantCategory] = None
    nationality: str = ""
    special_needs: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def get(self, name: str) -> Any:
        if name in PARTICIPANT_FIELDS:
            return getattr(self, name)
        return self.extra.get(name)

    def set(self, name: str, value: Any) -> None:
        if name == "category":
            self.category = ParticipantCategory.parse(value)
        elif name == "age_years":
            self.age_years = _coerce_age(value)
        elif name in PARTICIPANT_FIELDS:
            setattr(self, name, value)
        else:
            self.extra[name] = value

    def to_dict(self) -> dict:
        data = {
            "display_name": self.display_name,
            "age_years": self.age_years,
            "category": self.category.value if self.category else None,
            "nationality": self.nationality,
            "special_needs": self.special_needs,
        }
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        participant = cls()
        for name, value in (data or {}).items():
            participant.set(name, value)
        return participant


# ── Step table ───────────────────────────────────────────────────────────────

def _is_blank(value) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def parse_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class FieldRule:
    name: str
    label: str
    required: bool = True
    pattern: Optional[str] = None
    kind: str = "text"  # text | email | date | bool | choices
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    when: Optional[Callable[[dict], bool]] = None
    message: Optional[str] = None

    def applies(self, values: dict) -> bool:
        return self.when is None or bool(self.when(values))

    def check(self, values: dict) -> Optional[str]:
        if not self.applies(values):
            return None
        value = values.get(self.name)

        if self.kind == "choices":
            items = list(value or [])
            minimum = self.min_items if self.min_items is not None else (1 if self.required else 0)
            if len(items) < minimum:
                return self.message or f"Please select at least {minimum} {self.label.lower()}"
            if self.max_items is not None and len(items) > self.max_items:
                return f"Maximum {self.max_items} {self.label.lower()} allowed"
            return None

        if _is_blank(value):
            if self.required:
                return self.message or f"{self.label} is required"
            return None

        if self.kind == "date" and parse_date(value) is None:
            return f"{self.label} must be a valid date (YYYY-MM-DD)"
        if self.pattern and not re.match(self.pattern, str(value)):
            return f"Please enter a valid {self.label.lower()}"
        return None


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


@dataclass(frozen=True)
class Step:
    key: str
    title: str
    rules: tuple = ()
    participant_fields: tuple = ()
    checks: tuple = ()  # callables (session) -> Optional[str]

    def validate(self, session: "IntakeSession") -> list[str]:
        errors = []
        for rule in self.rules:
            message = rule.check(session.values)
            if message:
                errors.append(message)
        if self.participant_fields:
            errors.extend(self._validate_participants(session))
        for check in self.checks:
            message = check(session)
            if message:
                errors.append(message)
        return errors

    def _validate_participants(self, session: "IntakeSession") -> list[str]:
        errors = []
        label = session.form.participant_label
        for position, participant in enumerate(session.composition, start=1):
            for name in self.participant_fields:
                value = participant.get(name)
                if name == "category":
                    if ParticipantCategory.parse(value) is None:
                        errors.append(f"{label} {position}: traveler type is required")
                elif name == "age_years":
                    if value is None:
                        errors.append(f"{label} {position}: age is required")
                    elif value < 0:
                        errors.append(f"{label} {position}: age must be 0 or more")
                elif _is_blank(value):
                    errors.append(f"{label} {position}: {FIELD_LABELS.get(name, name)} is required")
        return errors

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "title": self.title,
            "fields": [
                {
                    "name": r.name,
                    "label": r.label,
                    "kind": r.kind,
                    "required": r.required,
                    "conditional": r.when is not None,
                    "min_items": r.min_items,
                    "max_items": r.max_items,
                }
                for r in self.rules
            ],
            "participant_fields": list(self.participant_fields),
        }


def end_not_before_start(start: str, end: str, message: str) -> Callable:
    def check(session: "IntakeSession") -> Optional[str]:
        start_date = parse_date(session.values.get(start))
        end_date = parse_date(session.values.get(end))
        if start_date and end_date and end_date < start_date:
            return message
        return None
    return check


@dataclass(frozen=True)
class IntakeForm:
    key: str
    title: str
    steps: tuple
    fee_rules: FeeRuleSet
    participant_label: str = "Traveler"
    default_category: Optional[ParticipantCategory] = None

    def rule_for(self, name: str) -> Optional[FieldRule]:
        for step in self.steps:
            for rule in step.rules:
                if rule.name == name:
                    return rule
        return None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "title": self.title,
            "participant_label": self.participant_label,
            "steps": [s.to_dict() for s in self.steps],
            "fee_rules": self.fee_rules.to_dict(),
            "categories": {c.value: label for c, label in CATEGORY_LABELS.items()},
        }


# ── Session ──────────────────────────────────────────────────────────────────

@dataclass
class SubmitOutcome:
    submitted: bool
    errors: list = field(default_factory=list)
    handoff: Any = None  # core.booking_handoff.HandoffResult


class IntakeSession:
    """Aggregate wizard state: step index, field values, composition and quote."""

    def __init__(
        self,
        form: IntakeForm,
        values: Optional[dict] = None,
        composition: Optional[list] = None,
        submission_id: Optional[str] = None,
        participant_count_locked: bool = False,
    ):
        self.form = form
        self.steps = form.steps
        self.current_index = 0
        self.values: dict = dict(values or {})
        self.composition: list[Participant] = list(composition or [])
        if not self.composition:
            self.composition.append(Participant(category=form.default_category))
        self.submission_id = submission_id or str(uuid.uuid4())
        self.participant_count_locked = participant_count_locked
        self.state = "in_progress"
        self.errors: list[str] = []
        self._quoted_fee = Decimal("0.00")
        self._recompute_fee()

    # ── Derived state ─────────────────────────────────────────────────────────

    @property
    def quoted_fee(self) -> Decimal:
        return self._quoted_fee

    @property
    def currency(self) -> str:
        return self.form.fee_rules.currency

    @property
    def current_step(self) -> Step:
        return self.steps[self.current_index]

    @property
    def is_last_step(self) -> bool:
        return self.current_index == len(self.steps) - 1

    @property
    def submit_label(self) -> str:
        return f"Submit & Pay {format_money(self._quoted_fee, self.currency)}"

    def _recompute_fee(self) -> None:
        self._quoted_fee = compute_fee(self.composition, self.form.fee_rules)

    def _ensure_open(self) -> None:
        if self.state == "submitted":
            raise SessionClosedError(f"Session {self.submission_id} has already been submitted")

    # ── Field edits ───────────────────────────────────────────────────────────

    def update_field(self, name: str, value: Any) -> None:
        self._ensure_open()
        self.values[name] = value

    def toggle_choice(self, name: str, item: str) -> Optional[str]:
        """Add or remove one item of a multi-select. Returns a message when the cap is hit."""
        self._ensure_open()
        items = list(self.values.get(name) or [])
        if item in items:
            items.remove(item)
        else:
            rule = self.form.rule_for(name)
            if rule is not None and rule.max_items is not None and len(items) >= rule.max_items:
                return f"Maximum {rule.max_items} {rule.label.lower()} allowed"
            items.append(item)
        self.values[name] = items
        return None

    # ── Composition ───────────────────────────────────────────────────────────

    def add_participant(self, **fields) -> Optional[str]:
        self._ensure_open()
        if self.participant_count_locked:
            return self._locked_message()
        participant = Participant(category=self.form.default_category)
        for name, value in fields.items():
            participant.set(name, value)
        self.composition.append(participant)
        self._recompute_fee()
        return None

    def remove_participant(self, index: int) -> Optional[str]:
        """Remove one participant. Never drops below one; out-of-range is a no-op."""
        self._ensure_open()
        if self.participant_count_locked:
            return self._locked_message()
        if len(self.composition) <= MIN_PARTICIPANTS:
            return None
        if not 0 <= index < len(self.composition):
            return None
        del self.composition[index]
        self._recompute_fee()
        return None

    def update_participant(self, index: int, **fields) -> None:
        """Set fields on one participant. Out-of-range is a no-op, as for removal."""
        self._ensure_open()
        if not 0 <= index < len(self.composition):
            return
        participant = self.composition[index]
        for name, value in fields.items():
            participant.set(name, value)
        if "category" in fields:
            self._recompute_fee()

    def _locked_message(self) -> str:
        count = len(self.composition)
        return (
            f"You cannot add or remove travelers after payment since the fee was "
            f"calculated for {count} traveler{'s' if count != 1 else ''}."
        )

    # ── Navigation ────────────────────────────────────────────────────────────

    def validate_step(self, index: Optional[int] = None) -> list[str]:
        step = self.steps[self.current_index if index is None else index]
        return step.validate(self)

    def validate_all(self) -> dict:
        return {step.key: step.validate(self) for step in self.steps}

    def next(self) -> list[str]:
        """Advance one step if the current step validates. Returns the blocking messages."""
        self._ensure_open()
        errors = self.validate_step()
        if errors:
            self.errors = errors
            return errors
        if self.is_last_step:
            self.errors = ["This is the final step; submit to continue"]
            return self.errors
        self.current_index += 1
        self.errors = []
        return []

    def back(self) -> bool:
        """Move one step back. Entered data is kept."""
        self._ensure_open()
        if self.current_index == 0:
            return False
        self.current_index -= 1
        self.errors = []
        return True

    # ── Submission ────────────────────────────────────────────────────────────

    def to_payload(self) -> dict:
        return {
            "form": self.form.key,
            "submission_id": self.submission_id,
            "values": dict(self.values),
            "participants": [p.to_dict() for p in self.composition],
            "participant_count": len(self.composition),
            "quoted_fee": str(self._quoted_fee),
            "currency": self.currency,
        }

    def to_submission(self):
        from core.booking_handoff import Submission

        return Submission(
            submission_id=self.submission_id,
            form_key=self.form.key,
            payload=self.to_payload(),
            participant_count=len(self.composition),
            amount=self._quoted_fee,
            currency=self.currency,
            contact_email=self.values.get("contact_email"),
        )

    async def submit(self, handoff) -> SubmitOutcome:
        """Validate every step and hand the frozen quote to the booking handoff.

        Only reachable from the last step. On success the session is closed;
        on failure it stays on the last step with its data and fee intact.
        """
        self._ensure_open()
        if not self.is_last_step:
            self.errors = ["Submit is only available on the final step"]
            return SubmitOutcome(submitted=False, errors=self.errors)

        errors = []
        for step_errors in self.validate_all().values():
            errors.extend(step_errors)
        if errors:
            self.errors = errors
            return SubmitOutcome(submitted=False, errors=errors)

        result = await handoff.submit(self.to_submission())
        if result.status in ("redirect", "already_paid"):
            self.state = "submitted"
            self.errors = []
            logger.info("Session %s submitted as booking %s", self.submission_id, result.booking_id)
            return SubmitOutcome(submitted=True, handoff=result)

        self.errors = [result.user_message] if result.user_message else []
        return SubmitOutcome(submitted=False, errors=self.errors, handoff=result)
