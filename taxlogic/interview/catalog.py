"""Default question graph for the employee tax assessment interview."""

from decimal import Decimal

from taxlogic.interview.questions import (
    AnswerType,
    ChoiceOptions,
    Equals,
    InRange,
    NumberRange,
    Question,
    QuestionGraph,
    SkipRule,
    TextPattern,
    Truthy,
)

# Choice options referenced by skip rules and the profile builder
MARITAL_STATUS_OPTIONS = (
    "Single",
    "Married or registered partnership",
    "Divorced",
    "Widowed",
)
EMPLOYMENT_TYPE_OPTIONS = (
    "Employed full-time",
    "Employed part-time",
    "Marginally employed",
    "Self-employed",
    "Employed and self-employed",
    "Unemployed / parental leave",
    "Retired",
)
SELF_EMPLOYED_ONLY = "Self-employed"
SELF_EMPLOYED_MIXED = "Employed and self-employed"
NOT_WORKING = "Unemployed / parental leave"
PUBLIC_TRANSPORT_OPTIONS = (
    "Yes, public transport is readily available",
    "No, public transport is unavailable or unreasonable",
    "Partly, for some of the distance",
)
FAMILY_CREDIT_OPTIONS = ("No", "Single earner", "Single parent")

COMMUTE_QUESTIONS = ("commute_exists", "commute_distance", "commute_public_feasible")
CHILDREN_QUESTIONS = (
    "children_count",
    "adult_children_count",
    "adult_children_income",
    "childcare_costs",
    "childcare_children",
    "childcare_amount",
    "shared_custody",
)

_AMOUNT_ERROR = "Please enter a valid amount."


def _amount(maximum: int) -> NumberRange:
    return NumberRange(min=Decimal(0), max=Decimal(maximum), error_message=_AMOUNT_ERROR)


def _count(minimum: int, maximum: int, message: str) -> NumberRange:
    return NumberRange(
        min=Decimal(minimum), max=Decimal(maximum), integer=True, error_message=message
    )


def _flag_followup(source: str, *skips: str) -> tuple[SkipRule, ...]:
    """Skip the follow-up questions when a yes/no gate is answered "no"."""
    return (SkipRule(source=source, condition=Truthy(expected=False), skips=skips),)


DEFAULT_QUESTIONS: tuple[Question, ...] = (
    # Personal data
    Question(
        id="full_name",
        prompt="Let's prepare your employee tax assessment. What is your full name?",
        answer_type=AnswerType.TEXT,
        help_text="Please enter your first and last name.",
    ),
    Question(
        id="marital_status",
        prompt="What was your marital status during the tax year?",
        answer_type=AnswerType.CHOICE,
        constraint=ChoiceOptions(MARITAL_STATUS_OPTIONS),
    ),
    # Employment and income
    Question(
        id="employment_type",
        prompt="How were you employed during the tax year?",
        answer_type=AnswerType.CHOICE,
        help_text="If you had several activities, choose the main one.",
        constraint=ChoiceOptions(EMPLOYMENT_TYPE_OPTIONS),
        skip_rules=(
            SkipRule(
                source="employment_type",
                condition=Equals(SELF_EMPLOYED_ONLY),
                skips=("employer_count",),
            ),
            SkipRule(
                source="employment_type",
                condition=Equals(NOT_WORKING),
                skips=(*COMMUTE_QUESTIONS, "home_office_days"),
            ),
        ),
    ),
    Question(
        id="employer_count",
        prompt="How many employers did you work for?",
        answer_type=AnswerType.NUMBER,
        constraint=_count(0, 10, "Please enter a number between 0 and 10."),
    ),
    Question(
        id="gross_income",
        prompt="What was your annual gross income according to your payslip (L16)?",
        answer_type=AnswerType.NUMBER,
        help_text="Add up the amounts if you had several employers.",
        constraint=_amount(10_000_000),
    ),
    Question(
        id="withheld_tax",
        prompt="How much wage tax was withheld during the year?",
        answer_type=AnswerType.NUMBER,
        help_text="Listed on the payslip as withheld income tax.",
        constraint=_amount(10_000_000),
    ),
    # Commute
    Question(
        id="commute_exists",
        prompt="Did you regularly commute to a workplace?",
        answer_type=AnswerType.BOOLEAN,
        help_text='Answer "no" if you worked from home only.',
        skip_rules=_flag_followup("commute_exists", "commute_distance", "commute_public_feasible"),
    ),
    Question(
        id="commute_distance",
        prompt="How far is the one-way distance from home to work in kilometres?",
        answer_type=AnswerType.NUMBER,
        help_text="Use the shortest road connection, not the route actually driven.",
        constraint=NumberRange(
            min=Decimal(0),
            max=Decimal(500),
            error_message="Please enter a distance between 0 and 500 km.",
        ),
    ),
    Question(
        id="commute_public_feasible",
        prompt="Is using public transport for the commute reasonable?",
        answer_type=AnswerType.CHOICE,
        help_text=(
            "Public transport is unreasonable if the daily trip takes more than "
            "2.5 hours or no connection exists."
        ),
        constraint=ChoiceOptions(PUBLIC_TRANSPORT_OPTIONS),
    ),
    # Home office
    Question(
        id="home_office_days",
        prompt="On how many days did you work from home?",
        answer_type=AnswerType.NUMBER,
        help_text="The home office allowance is paid per day up to an annual ceiling.",
        constraint=_count(0, 365, "Please enter a number of days between 0 and 365."),
    ),
    # Income-related expenses
    Question(
        id="work_equipment",
        prompt="Did you pay for work equipment yourself?",
        answer_type=AnswerType.BOOLEAN,
        help_text="For example computers, software, specialist literature, tools or work clothing.",
        skip_rules=_flag_followup(
            "work_equipment", "work_equipment_amount", "work_equipment_details"
        ),
    ),
    Question(
        id="work_equipment_amount",
        prompt="How much did you spend on work equipment in total?",
        answer_type=AnswerType.NUMBER,
        constraint=_amount(1_000_000),
    ),
    Question(
        id="work_equipment_details",
        prompt="Briefly describe what you bought:",
        answer_type=AnswerType.TEXT,
        required=False,
        help_text='For example "Laptop for home office 800, office software 100".',
    ),
    Question(
        id="education_expenses",
        prompt="Did you have costs for job-related training or further education?",
        answer_type=AnswerType.BOOLEAN,
        help_text="Courses, seminars, conferences or literature related to your job.",
        skip_rules=_flag_followup("education_expenses", "education_amount"),
    ),
    Question(
        id="education_amount",
        prompt="How much did you spend on training in total?",
        answer_type=AnswerType.NUMBER,
        constraint=_amount(1_000_000),
    ),
    # Special expenses
    Question(
        id="church_tax",
        prompt="Did you pay church contributions?",
        answer_type=AnswerType.BOOLEAN,
        skip_rules=_flag_followup("church_tax", "church_tax_amount"),
    ),
    Question(
        id="church_tax_amount",
        prompt="How much church contribution did you pay?",
        answer_type=AnswerType.NUMBER,
        help_text="Only up to an annual maximum is deductible.",
        constraint=_amount(10_000),
    ),
    Question(
        id="donations",
        prompt="Did you make tax-deductible donations?",
        answer_type=AnswerType.BOOLEAN,
        help_text="For example to the Red Cross or other approved charities.",
        skip_rules=_flag_followup("donations", "donations_amount"),
    ),
    Question(
        id="donations_amount",
        prompt="How much did you donate in total?",
        answer_type=AnswerType.NUMBER,
        constraint=_amount(1_000_000),
    ),
    # Extraordinary burdens
    Question(
        id="medical_expenses",
        prompt="Did you have medical expenses that were not reimbursed by health insurance?",
        answer_type=AnswerType.BOOLEAN,
        help_text="For example dental treatment, glasses, medication or therapy.",
        skip_rules=_flag_followup("medical_expenses", "medical_amount"),
    ),
    Question(
        id="medical_amount",
        prompt="How much were your unreimbursed medical expenses?",
        answer_type=AnswerType.NUMBER,
        constraint=_amount(1_000_000),
    ),
    Question(
        id="disability",
        prompt="Do you have an officially recognised degree of disability?",
        answer_type=AnswerType.BOOLEAN,
        skip_rules=_flag_followup("disability", "disability_degree"),
    ),
    Question(
        id="disability_degree",
        prompt="What is the degree of disability in percent?",
        answer_type=AnswerType.NUMBER,
        constraint=_count(25, 100, "The degree of disability must be between 25% and 100%."),
    ),
    # Family
    Question(
        id="has_children",
        prompt="Do you have children for whom you receive family allowance?",
        answer_type=AnswerType.BOOLEAN,
        skip_rules=_flag_followup("has_children", *CHILDREN_QUESTIONS),
    ),
    Question(
        id="children_count",
        prompt="For how many children do you receive family allowance?",
        answer_type=AnswerType.NUMBER,
        constraint=_count(1, 20, "Please enter a number of children between 1 and 20."),
    ),
    Question(
        id="adult_children_count",
        prompt="How many of them were between 18 and 24 years old?",
        answer_type=AnswerType.NUMBER,
        constraint=_count(0, 20, "Please enter a number between 0 and 20."),
        skip_rules=(
            SkipRule(
                source="adult_children_count",
                condition=InRange(0, 0),
                skips=("adult_children_income",),
            ),
        ),
    ),
    Question(
        id="adult_children_income",
        prompt="What was the annual own income of each of these children?",
        answer_type=AnswerType.NUMBER,
        help_text="The family bonus for adult children lapses above an income limit.",
        constraint=_amount(1_000_000),
    ),
    Question(
        id="childcare_costs",
        prompt="Did you have childcare costs?",
        answer_type=AnswerType.BOOLEAN,
        skip_rules=_flag_followup("childcare_costs", "childcare_children", "childcare_amount"),
    ),
    Question(
        id="childcare_children",
        prompt="For how many children did you pay for childcare?",
        answer_type=AnswerType.NUMBER,
        constraint=_count(1, 20, "Please enter a number of children between 1 and 20."),
    ),
    Question(
        id="childcare_amount",
        prompt="How much were the childcare costs in total?",
        answer_type=AnswerType.NUMBER,
        constraint=_amount(1_000_000),
    ),
    Question(
        id="shared_custody",
        prompt="Do you share custody of the children with the other parent?",
        answer_type=AnswerType.BOOLEAN,
        help_text="Under shared custody only part of the childcare costs is deductible.",
    ),
    Question(
        id="single_earner",
        prompt="Are you a single earner (partner has little or no income) or a single parent?",
        answer_type=AnswerType.CHOICE,
        constraint=ChoiceOptions(FAMILY_CREDIT_OPTIONS),
    ),
    # Closing
    Question(
        id="bank_iban",
        prompt="What is your IBAN for a possible refund?",
        answer_type=AnswerType.TEXT,
        required=False,
        help_text="Format: AT12 3456 7890 1234 5678",
        constraint=TextPattern(
            pattern=r"AT[0-9]{2}\s?[0-9]{4}\s?[0-9]{4}\s?[0-9]{4}\s?[0-9]{4}",
            error_message="Please enter a valid Austrian IBAN.",
        ),
    ),
    Question(
        id="additional_info",
        prompt="Is there anything else you would like to add?",
        answer_type=AnswerType.TEXT,
        required=False,
        help_text="Special circumstances, questions or remarks.",
    ),
)


def default_question_graph() -> QuestionGraph:
    """Build the default interview graph (entry: ``full_name``)."""
    return QuestionGraph(questions=DEFAULT_QUESTIONS, entry="full_name")
