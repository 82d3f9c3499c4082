"""
Assistant Action Models

The completion service is told to answer with a JSON object:

    {"actions": [ {"type": "create_account", ...}, ... ], "message": "..."}

These models are the closed schema that answer is decoded into. Each action
is a tagged variant selected by its "type" field; any tag we do not know is
routed to UnrecognizedAction so that one unknown action does not invalidate
the rest of the response.

CRITICAL: Decoding is all-or-nothing. If the payload does not fit this
schema, the caller treats the whole text as a plain message.

Decoding is STRICT: "isCredit": "yes" or 1 is not a boolean, and
"amount": "12.5" is not a number. Nothing is coerced.
"""

from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator
from pydantic.alias_generators import to_camel


CREATE_ACCOUNT = "create_account"
CREATE_PERSON = "create_person"
CREATE_ACCOUNT_TYPE = "create_account_type"
UNRECOGNIZED = "unrecognized"

KNOWN_ACTION_TYPES = frozenset({CREATE_ACCOUNT, CREATE_PERSON, CREATE_ACCOUNT_TYPE})


class _ActionBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateAccountAction(_ActionBase):
    """Create one account, resolving person and account type by name."""

    type: Literal["create_account"]
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    is_credit: Optional[bool] = None
    notes: Optional[str] = None
    person_name: Optional[str] = None
    account_type_name: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_number(cls, v: Any) -> Any:
        """Accept JSON numbers only; strings and booleans are rejected."""
        if v is None or isinstance(v, Decimal):
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("amount must be a number")
        amount = Decimal(str(v))
        if not amount.is_finite():
            raise ValueError("amount must be a finite number")
        return amount


class CreatePersonAction(_ActionBase):
    type: Literal["create_person"]
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class CreateAccountTypeAction(_ActionBase):
    type: Literal["create_account_type"]
    name: Optional[str] = None
    description: Optional[str] = None


class UnrecognizedAction(_ActionBase):
    """Any action whose type we do not handle. Skipped, never counted."""

    type: Optional[str] = None


def _action_tag(value: Any) -> str:
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    return tag if tag in KNOWN_ACTION_TYPES else UNRECOGNIZED


AiAction = Annotated[
    Union[
        Annotated[CreateAccountAction, Tag(CREATE_ACCOUNT)],
        Annotated[CreatePersonAction, Tag(CREATE_PERSON)],
        Annotated[CreateAccountTypeAction, Tag(CREATE_ACCOUNT_TYPE)],
        Annotated[UnrecognizedAction, Tag(UNRECOGNIZED)],
    ],
    Discriminator(_action_tag),
]


class AiResponse(BaseModel):
    """The structured answer expected from the completion service."""

    actions: Optional[list[AiAction]] = None
    message: Optional[str] = None

    @classmethod
    def from_json(cls, text: str) -> "AiResponse":
        """
        Strictly decode the service's JSON text.

        Raises:
            ValidationError: If any field does not have the expected JSON type
        """
        return cls.model_validate_json(text, strict=True)


class AssistantReply(BaseModel):
    """What the assistant pipeline hands back to its caller."""

    message: str = Field(
        ...,
        description="User-facing message"
    )
    records_created: int = Field(
        default=0,
        ge=0,
        description="Number of actions applied to the store"
    )


class PlainTextResponse(BaseModel):
    """
    The fallback variant: the service answered with something that is not
    the structured object, so the text is shown to the user as-is.
    """

    text: str
    reason: str = Field(
        default="",
        description="Why structured decoding was abandoned (for the audit log)"
    )
