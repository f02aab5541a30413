"""
Request schemas for the workflow endpoints.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mastery.schemas.actions import parse_actions
from mastery.services.errors import InvalidActionConfig

TriggerType = Literal['form_submission', 'contact_created', 'inactivity', 'manual']
WorkflowStatus = Literal['active', 'inactive', 'draft']


class ExecuteWorkflowRequest(BaseModel):
    """Body of POST /api/v1/workflows/execute."""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    workflow_id: str = Field(..., min_length=1, alias='workflowId')
    contact_id: Optional[str] = Field(default=None, alias='contactId')
    trigger_data: Dict[str, Any] = Field(default_factory=dict, alias='triggerData')

    @field_validator('trigger_data', mode='before')
    @classmethod
    def none_means_empty(cls, value):
        return {} if value is None else value


class WorkflowDefinition(BaseModel):
    """Create/replace body for a workflow definition."""
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: WorkflowStatus = 'draft'
    trigger_type: TriggerType
    trigger_config: Dict[str, Any] = Field(default_factory=dict)
    actions: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator('actions')
    @classmethod
    def actions_must_parse(cls, value):
        try:
            parse_actions(value)
        except InvalidActionConfig as exc:
            raise ValueError(exc.message) from exc
        return value

    @model_validator(mode='after')
    def trigger_config_matches_type(self):
        if self.trigger_type == 'form_submission' and not self.trigger_config.get('form_id'):
            raise ValueError("trigger_config.form_id est requis pour un déclencheur form_submission")
        if self.trigger_type == 'inactivity':
            days = self.trigger_config.get('days', 7)
            if not isinstance(days, int) or isinstance(days, bool) or days < 1:
                raise ValueError("trigger_config.days doit être un entier positif")
        return self


class WorkflowStatusUpdate(BaseModel):
    status: WorkflowStatus


class FormSubmitRequest(BaseModel):
    """Body of POST /api/v1/forms/submit."""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    form_id: str = Field(..., min_length=1, alias='formId')
    data: Dict[str, Any]

    @field_validator('data')
    @classmethod
    def data_not_empty(cls, value):
        if not value:
            raise ValueError('data must not be empty')
        return value
