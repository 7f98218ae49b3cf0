"""Reusable blocks an author can insert as a new page.

Each block is a title plus a list of field definitions. Blocks may also
carry completion actions (the PHQ-9 block scores itself).
"""

from typing import Dict, List, NamedTuple, Optional, Tuple

from formflow.schemas.form import (
    Aggregator,
    CalculateScoreAction,
    CompletionAction,
    ConditionalAlertAction,
    ConditionOperator,
    FieldOption,
    FieldType,
    FormField,
    RuleTrigger,
    ValidationKind,
    ValidationRule,
)


class TemplateBlock(NamedTuple):
    title: str
    description: str
    fields: Tuple[FormField, ...]
    completion_actions: Tuple[CompletionAction, ...] = ()


def _text(field_id: str, label: str, required: bool = False, placeholder: Optional[str] = None) -> FormField:
    return FormField(
        id=field_id, type=FieldType.SHORT_TEXT, label=label,
        required=required, placeholder=placeholder,
    )


def _long_text(field_id: str, label: str, placeholder: str) -> FormField:
    return FormField(id=field_id, type=FieldType.LONG_TEXT, label=label, placeholder=placeholder)


PHQ9_QUESTIONS: List[str] = [
    "Little interest or pleasure in doing things",
    "Feeling down, depressed, or hopeless",
    "Trouble falling or staying asleep, or sleeping too much",
    "Feeling tired or having little energy",
    "Poor appetite or overeating",
    "Feeling bad about yourself, or that you are a failure or have let yourself or your family down",
    "Trouble concentrating on things, such as reading the newspaper or watching television",
    "Moving or speaking so slowly that other people could have noticed, or the opposite",
    "Thoughts that you would be better off dead, or of hurting yourself in some way",
]

PHQ9_ANSWERS: List[Tuple[str, str]] = [
    ("0", "Not at all"),
    ("1", "Several days"),
    ("2", "More than half the days"),
    ("3", "Nearly every day"),
]

PHQ9_SCORE_FIELD = "phq9_score"
PHQ9_ALERT_THRESHOLD = 9


def _phq9_fields() -> Tuple[FormField, ...]:
    fields = []
    for number, question in enumerate(PHQ9_QUESTIONS, start=1):
        field_id = f"phq9_q{number}"
        fields.append(FormField(
            id=field_id,
            type=FieldType.SINGLE_CHOICE,
            label=question,
            required=True,
            options=[
                FieldOption(id=f"{field_id}_{value}", value=value, label=label)
                for value, label in PHQ9_ANSWERS
            ],
        ))
    return tuple(fields)


def _phq9_actions(fields: Tuple[FormField, ...]) -> Tuple[CompletionAction, ...]:
    return (
        CalculateScoreAction(
            source_field_ids=[f.id for f in fields],
            aggregator=Aggregator.SUM,
            result_field_id=PHQ9_SCORE_FIELD,
        ),
        ConditionalAlertAction(
            condition=RuleTrigger(
                field_id=PHQ9_SCORE_FIELD,
                operator=ConditionOperator.GREATER_THAN,
                value=PHQ9_ALERT_THRESHOLD,
            ),
            message="PHQ-9 score indicates moderate or worse depression; clinician review required",
        ),
    )


_PHQ9_FIELDS = _phq9_fields()

TEMPLATE_BLOCKS: Dict[str, TemplateBlock] = {
    "personal_info": TemplateBlock(
        title="Personal Information",
        description="Basic contact and personal details.",
        fields=(
            _text("first_name", "First Name", True, "Enter first name"),
            _text("last_name", "Last Name", True, "Enter last name"),
            FormField(
                id="email", type=FieldType.EMAIL, label="Email Address",
                required=True, placeholder="you@example.com",
                validation_rules=[ValidationRule(kind=ValidationKind.EMAIL_FORMAT)],
            ),
            FormField(
                id="phone", type=FieldType.PHONE, label="Phone Number",
                required=True, placeholder="(555) 123-4567",
                validation_rules=[ValidationRule(kind=ValidationKind.PHONE_FORMAT)],
            ),
            FormField(
                id="dob", type=FieldType.DATE, label="Date of Birth", required=True,
                validation_rules=[ValidationRule(
                    kind=ValidationKind.MAX_DATE, value="today",
                    message="Date of birth cannot be in the future",
                )],
            ),
        ),
    ),
    "medical_history": TemplateBlock(
        title="Medical History",
        description="Patient medical background information.",
        fields=(
            _long_text("conditions", "Pre-existing medical conditions", "List any relevant medical conditions"),
            _long_text("medications", "Current medications", "List all current medications and dosages"),
            _long_text("allergies", "Allergies", "List any known allergies"),
        ),
    ),
    "insurance_info": TemplateBlock(
        title="Insurance Information",
        description="Health insurance details.",
        fields=(
            _text("insurance_provider", "Insurance Provider", placeholder="e.g., Blue Cross"),
            _text("policy_number", "Policy Number", placeholder="Enter policy number"),
            _text("group_number", "Group Number", placeholder="Enter group number"),
        ),
    ),
    "phq9": TemplateBlock(
        title="PHQ-9 Depression Screening",
        description="Over the last 2 weeks, how often have you been bothered by the following problems?",
        fields=_PHQ9_FIELDS,
        completion_actions=_phq9_actions(_PHQ9_FIELDS),
    ),
}


def template_names() -> List[str]:
    return list(TEMPLATE_BLOCKS)
