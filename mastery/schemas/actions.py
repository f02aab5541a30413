"""
Pydantic schemas for workflow action specs.

A workflow stores its actions as a JSON list of ``{type, config,
delay_minutes?}`` objects. They are parsed into a tagged union discriminated
on ``type`` so that each executor only ever sees a config of the right shape.
"""

from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from mastery.services.errors import InvalidActionConfig


class _ActionConfig(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)


class CreateContactConfig(_ActionConfig):
    mapping_config: Optional[Dict[str, str]] = None


class SendEmailConfig(_ActionConfig):
    template_id: str = Field(..., min_length=1)


class ListConfig(_ActionConfig):
    list_id: str = Field(..., min_length=1)


class TagConfig(_ActionConfig):
    tag: str = Field(..., min_length=1, max_length=100)


class NotificationConfig(_ActionConfig):
    message: Optional[str] = None
    recipient: Optional[str] = None


class WaitConfig(_ActionConfig):
    minutes: Optional[int] = Field(default=0, ge=0)

    # a cleared minutes input in the editor is stored as null
    @field_validator('minutes', mode='before')
    @classmethod
    def null_minutes_is_zero(cls, value):
        return 0 if value is None else value


class _Action(BaseModel):
    model_config = ConfigDict(extra='ignore')

    delay_minutes: Optional[int] = Field(default=None, ge=0)

    # actions that need a current contact name their purpose for MissingContact
    contact_purpose: ClassVar[Optional[str]] = None

    @property
    def requires_contact(self) -> bool:
        return self.contact_purpose is not None

    def delay(self) -> int:
        """Minutes to wait before running this action."""
        return self.delay_minutes or 0


class CreateContactAction(_Action):
    type: Literal['create_contact']
    config: CreateContactConfig = Field(default_factory=CreateContactConfig)


class SendEmailAction(_Action):
    type: Literal['send_email']
    config: SendEmailConfig
    contact_purpose: ClassVar[Optional[str]] = 'envoyer email'


class AddToListAction(_Action):
    type: Literal['add_to_list']
    config: ListConfig
    contact_purpose: ClassVar[Optional[str]] = 'ajouter à liste'


class RemoveFromListAction(_Action):
    type: Literal['remove_from_list']
    config: ListConfig
    contact_purpose: ClassVar[Optional[str]] = 'retirer de liste'


class AddTagAction(_Action):
    type: Literal['add_tag']
    config: TagConfig
    contact_purpose: ClassVar[Optional[str]] = 'ajouter tag'


class RemoveTagAction(_Action):
    type: Literal['remove_tag']
    config: TagConfig
    contact_purpose: ClassVar[Optional[str]] = 'retirer tag'


class SendNotificationAction(_Action):
    type: Literal['send_notification']
    config: NotificationConfig = Field(default_factory=NotificationConfig)
    contact_purpose: ClassVar[Optional[str]] = 'notification'


class WaitAction(_Action):
    type: Literal['wait']
    config: WaitConfig = Field(default_factory=WaitConfig)

    def delay(self) -> int:
        return max(self.delay_minutes or 0, self.config.minutes or 0)


ActionSpec = Annotated[
    Union[
        CreateContactAction,
        SendEmailAction,
        AddToListAction,
        RemoveFromListAction,
        AddTagAction,
        RemoveTagAction,
        SendNotificationAction,
        WaitAction,
    ],
    Field(discriminator='type'),
]

ACTION_TYPES = (
    'create_contact', 'send_email', 'add_to_list', 'remove_from_list',
    'add_tag', 'remove_tag', 'send_notification', 'wait',
)

_action_adapter = TypeAdapter(ActionSpec)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = '.'.join(str(part) for part in item['loc'][1:]) or 'type'
        parts.append(f"{location}: {item['msg']}")
    return '; '.join(parts)


def action_type_of(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        return raw.get('type')
    return None


def parse_action(raw: Any):
    """Parse one stored action dict into its typed variant."""
    action_type = action_type_of(raw)
    if action_type not in ACTION_TYPES:
        raise InvalidActionConfig(action_type, "type d'action inconnu")
    data = dict(raw)
    # tolerate "config": null from older editors
    if data.get('config') is None:
        data.pop('config', None)
    try:
        return _action_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidActionConfig(action_type, _describe(exc)) from exc


def parse_actions(raw_actions: Any) -> List:
    """Parse a whole action list, failing on the first invalid entry."""
    if not isinstance(raw_actions, list):
        raise InvalidActionConfig(None, "la liste d'actions doit être un tableau")
    return [parse_action(raw) for raw in raw_actions]
